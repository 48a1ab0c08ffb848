"""Key distribution helpers: assignment tables and balance checks."""
from collections import Counter
from typing import Any, Dict, Iterable, List, Mapping

from .registry import NodeRegistry


def calculate_assignments(
    registry: NodeRegistry,
    keys: Iterable[Any],
    replicas: int = 1
) -> Dict[Any, List[Any]]:
    """Calculate complete key-to-replicas assignment.

    Args:
        registry: Registry to rank with
        keys: Keys to assign (must be hashable)
        replicas: Replication factor

    Returns:
        Dictionary mapping key -> nodes, most preferred first
    """
    return {key: registry.top(key, replicas) for key in keys}


def replica_counts(registry: NodeRegistry, keys: Iterable[Any], replicas: int = 1) -> Counter:
    """Count how many keys each node holds a replica of.

    Nodes that receive nothing are present with a count of 0.
    """
    counts = Counter({node: 0 for node in registry})
    for key in keys:
        counts.update(registry.top(key, replicas))
    return counts


def min_max_ratio(counts: Mapping[Any, int]) -> float:
    """Ratio of the least to the most loaded node (1.0 is perfectly even)."""
    if not counts:
        return 0.0
    most = max(counts.values())
    if most == 0:
        return 0.0
    return min(counts.values()) / most


def moved_keys(before: NodeRegistry, after: NodeRegistry, keys: Iterable[Any]) -> List[Any]:
    """Keys whose primary owner differs between two registries.

    Args:
        before: Registry before a membership change
        after: Registry after the change

    Returns:
        Keys that would move, in input order
    """
    return [key for key in keys if before.select(key) != after.select(key)]
