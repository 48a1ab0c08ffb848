"""Node capability helpers."""
from typing import Any, Protocol, runtime_checkable

from .errors import ContractViolation

DEFAULT_CAPACITY = 1


@runtime_checkable
class WeightedNode(Protocol):
    """Node declaring its share of the keyspace.

    ``capacity`` may be a plain attribute or a zero-argument method. Nodes
    without it count as capacity 1, which makes the weighted ranking degrade
    to uniform selection.
    """

    capacity: Any


def capacity_of(node: Any) -> int:
    """Read a node's capacity.

    Args:
        node: Node to inspect

    Returns:
        Non-negative integer capacity (1 when the node declares none)

    Raises:
        ContractViolation: If the capacity is not a non-negative int
    """
    capacity = getattr(node, "capacity", DEFAULT_CAPACITY)
    if callable(capacity):
        capacity = capacity()

    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ContractViolation(
            f"capacity of {node!r} must be an int, got {type(capacity).__name__}"
        )
    if capacity < 0:
        raise ContractViolation(f"capacity of {node!r} must be >= 0, got {capacity}")
    return capacity
