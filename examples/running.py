"""A single unit: pace from elapsed time and distance.

Try it:

    reflow run examples/running.py --set Run.distance=5
    reflow run examples/running.py --set Run.distance=0   # not committed
"""

import reflow as rf

network = rf.Network("Running")

run = network.unit("Run", description="One training run")
run.input("time", 30.0, type=float, description="Elapsed minutes")
run.input("distance", 10.0, type=float, description="Distance in kilometres")


@run.derived(depends_on=["time", "distance"])
def pace(deps):
    """Minutes per kilometre."""
    if deps["distance"] == 0:
        return rf.Err("distance must be non-zero")
    return deps["time"] / deps["distance"]


@run.derived(depends_on=["pace"])
def speed(deps):
    """Kilometres per hour."""
    return 60 / deps["pace"]
