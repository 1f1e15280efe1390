from dataclasses import dataclass

_SEPARATOR = "::"


@dataclass(slots=True, frozen=True, order=True)
class NodeId:
    """Identity of an input or derived value in the global graph.

    Attributes:
        unit: Name of the unit owning the node.
        name: Name of the input or derived value within the unit.

    """

    unit: str
    name: str

    def __str__(self) -> str:
        return f"{self.unit}{_SEPARATOR}{self.name}"


def parse_node_id(text: str) -> NodeId:
    """Parse a node identity string like ``"Pace::distance"``.

    The dotted form ``"Pace.distance"`` is accepted as well.

    Raises:
        ValueError: If the text is not a well-formed node identity.

    """
    s = text.strip()
    if _SEPARATOR in s:
        unit, _, name = s.partition(_SEPARATOR)
    elif "." in s:
        unit, _, name = s.partition(".")
    else:
        msg = f"Invalid node format: '{text}'. Expected 'unit::name'"
        raise ValueError(msg)

    if not unit:
        msg = f"Unit name cannot be empty in '{text}'"
        raise ValueError(msg)
    if not name:
        msg = f"Member name cannot be empty in '{text}'"
        raise ValueError(msg)
    return NodeId(unit=unit, name=name)
