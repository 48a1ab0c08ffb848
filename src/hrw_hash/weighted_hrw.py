"""Capacity-weighted Highest Random Weight (HRW) ranking."""
import math
from typing import Any

import structlog

from .errors import ContractViolation
from .hasher import MAX_U64, merge
from .node import capacity_of
from .registry import Entry, NodeRegistry, N

logger = structlog.get_logger()

# Stand-in for a zero affinity so the logarithm stays finite
SMALLEST_POSITIVE = math.ulp(0.0)


def weighted_score(raw: int, weight: float) -> float:
    """Turn a raw affinity into a capacity-weighted score.

    score = weight / -ln(raw / MAX_U64)

    The maximum of these scores over all nodes lands on each node with
    probability proportional to its weight.

    Args:
        raw: Merged node/key digest
        weight: Node capacity divided by total capacity

    Returns:
        Score (higher is better); NaN signals a broken precondition
    """
    normalized = raw / MAX_U64 if raw else SMALLEST_POSITIVE
    distance = -math.log(normalized)
    base = math.inf if distance == 0.0 else 1.0 / distance
    return base * weight


class WeightedHrwNodes(NodeRegistry[N]):
    """Nodes ranked per key by descending capacity-weighted score.

    Capacity is read once at construction from the node's ``capacity``
    attribute or method (default 1). A node with capacity 0 always ranks
    after every node with positive capacity.

    Usage:
        nodes = WeightedHrwNodes([Server("a", capacity=3), Server("b", capacity=1)])
        owner = nodes.select("user:1001")
    """

    variant = "weighted"

    def _read_capacity(self, node: N) -> int:
        return capacity_of(node)

    def _score(self, node: N, node_digest: int, key_digest: int) -> Entry:
        raw = merge(node_digest, key_digest)
        capacity = self._capacities[node]
        weight = capacity / self.total_capacity if self.total_capacity else math.nan
        score = weighted_score(raw, weight)

        if math.isnan(score):
            if self.metrics is not None:
                self.metrics.increment_contract_violation(self.variant, self.name)
            logger.error(
                "score_contract_violation",
                node=repr(node),
                capacity=capacity,
                total_capacity=self.total_capacity,
                raw=raw
            )
            raise ContractViolation(
                f"score of {node!r} is NaN (capacity={capacity}, "
                f"total_capacity={self.total_capacity}, raw={raw})"
            )

        return (score, raw, node)

    def _order(self, entry: Entry) -> Any:
        return -entry[0], entry[1]
