"""Highest Random Weight (HRW) ranking with uniform node capacity."""
from typing import Any

from .hasher import merge
from .registry import Entry, NodeRegistry, N


class HrwNodes(NodeRegistry[N]):
    """Nodes ranked per key by ascending merged digest.

    Each node's affinity depends only on its own digest and the key, so
    adding or removing a node never reorders the others.

    Usage:
        nodes = HrwNodes(f"node{i}" for i in range(10))
        replicas = nodes.top("shard-42", 3)
    """

    variant = "uniform"

    def _score(self, node: N, node_digest: int, key_digest: int) -> Entry:
        return (merge(node_digest, key_digest), node_digest, node)

    def _order(self, entry: Entry) -> Any:
        # ties (practically impossible) fall back to node digest, then registry order
        return entry[0], entry[1]
