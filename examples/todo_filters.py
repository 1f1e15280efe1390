"""Two connected units: a filter bar feeding a todo list.

Changing ``Filters.status`` recomputes ``Filters.spec``, the connected
``Todos.filter`` input and ``Todos.visible`` in a single frame.
Events such as ``Todos.add`` and ``Filters.cycle_status`` do the same from a
handler:

    executor = network.build()
    executor.apply_event("Todos", "add", {"title": "Book venue"})
    executor.apply_event("Filters", "cycle_status")
"""

import reflow as rf

STATUSES = ("all", "open", "done")

network = rf.Network("Todos")

filters = network.unit("Filters")
filters.input("status", "all", type=str).input("query", "", type=str)


@filters.derived(depends_on=["status", "query"])
def spec(deps):
    if deps["status"] not in STATUSES:
        return rf.Err(f"unknown status '{deps['status']}'")
    return {"status": deps["status"], "query": deps["query"].lower()}


todos = network.unit("Todos")
todos.input(
    "items",
    [
        {"title": "Write tests", "done": True},
        {"title": "Ship release", "done": False},
        {"title": "Write changelog", "done": False},
    ],
    type=list[dict],
)
todos.input("filter", description="Connected from Filters.spec")


@todos.derived(depends_on=["items", "filter"])
def visible(deps):
    status = deps["filter"]["status"]
    query = deps["filter"]["query"]
    return [
        item["title"]
        for item in deps["items"]
        if (status == "all" or item["done"] == (status == "done")) and query in item["title"].lower()
    ]


@todos.derived(depends_on=["visible"])
def count(deps):
    return len(deps["visible"])


network.connect("Filters.spec", "Todos.filter")


@todos.event()
def add(values, payload):
    """Append a new open item titled ``payload["title"]``."""
    return {"items": [*values["items"], {"title": payload["title"], "done": False}]}


@todos.event()
def complete(values, payload):
    """Mark every item titled ``payload["title"]`` as done."""
    return {
        "items": [
            {**item, "done": True} if item["title"] == payload["title"] else item for item in values["items"]
        ],
    }


@filters.event()
def cycle_status(values):
    """Switch to the next status filter."""
    index = STATUSES.index(values["status"]) if values["status"] in STATUSES else -1
    return {"status": STATUSES[(index + 1) % len(STATUSES)]}
