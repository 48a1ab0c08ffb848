"""Immutable node registry shared by both ranking variants."""
import heapq
from abc import ABC, abstractmethod
import time
from types import MappingProxyType
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

import structlog

from .hasher import HashProvider, resolve_hash_provider
from .metrics.prometheus import RankingMetrics

logger = structlog.get_logger()

N = TypeVar('N')

# (sort value, tie-break value, node)
Entry = Tuple[Any, int, Any]


class NodeRegistry(ABC, Generic[N]):
    """Fixed node set with precomputed digests and capacities.

    Subclasses define how a node is scored against a key digest and how the
    scored entries are ordered. The registry never changes after construction;
    to change membership, build a new one.
    """

    variant = "base"

    def __init__(
        self,
        nodes: Iterable[N],
        hash_provider: Optional[HashProvider] = None,
        metrics: Optional[RankingMetrics] = None,
        name: str = "default"
    ):
        """Build the registry, digesting every node once.

        Args:
            nodes: Nodes to register (consumed once; equal nodes: last wins)
            hash_provider: Digest provider for nodes and keys (default: BLAKE2b-64)
            metrics: Optional Prometheus metrics sink
            name: Registry name, used as the "registry" metrics label
        """
        self.hash_provider = resolve_hash_provider(hash_provider)
        self.metrics = metrics
        self.name = name

        digests: Dict[N, int] = {}
        duplicates = 0
        for node in nodes:
            digest = self.hash_provider.hash(node)
            if node in digests:
                # Re-insert so the later object replaces the stored key
                del digests[node]
                duplicates += 1
                logger.warning("duplicate_node_replaced", node=repr(node), variant=self.variant)
            digests[node] = digest

        self._digests = MappingProxyType(digests)
        self._capacities = MappingProxyType({node: self._read_capacity(node) for node in digests})
        self.total_capacity = sum(self._capacities.values())

        if self.metrics is not None:
            self.metrics.set_registry_size(self.variant, self.name, len(digests), self.total_capacity)

        logger.debug(
            "registry_built",
            variant=self.variant,
            name=name,
            nodes=len(digests),
            duplicates=duplicates,
            total_capacity=self.total_capacity
        )

    @classmethod
    def with_hash_provider(cls, hash_provider: HashProvider, nodes: Iterable[N], **kwargs):
        """Build a registry with a custom hash provider."""
        return cls(nodes, hash_provider=hash_provider, **kwargs)

    def _read_capacity(self, node: N) -> int:
        return 1

    @abstractmethod
    def _score(self, node: N, node_digest: int, key_digest: int) -> Entry:
        """Score one node against a key digest as (sort value, tie-break, node)."""

    @abstractmethod
    def _order(self, entry: Entry):
        """Sort key for a scored entry; smallest ranks first."""

    def _entries(self, key: Any) -> List[Entry]:
        key_digest = self.hash_provider.hash(key)
        score = self._score
        return [score(node, node_digest, key_digest) for node, node_digest in self._digests.items()]

    def _timed(self, func: Callable[[], List[N]]) -> List[N]:
        if self.metrics is None:
            return func()

        start = time.perf_counter()
        try:
            return func()
        finally:
            self.metrics.record_ranking(self.variant, self.name, (time.perf_counter() - start) * 1000)

    def rank(self, key: Any) -> List[N]:
        """Rank every node for key, most preferred first.

        Args:
            key: Lookup key (any value the hash provider accepts)

        Returns:
            All registered nodes, each exactly once
        """
        def run():
            entries = self._entries(key)
            entries.sort(key=self._order)
            return [entry[2] for entry in entries]

        return self._timed(run)

    def top(self, key: Any, n: int) -> List[N]:
        """Return the n most preferred nodes for key (same as rank(key)[:n]).

        Args:
            key: Lookup key
            n: Replication factor

        Returns:
            Up to n nodes, most preferred first
        """
        if n <= 0:
            return []

        def run():
            entries = heapq.nsmallest(n, self._entries(key), key=self._order)
            return [entry[2] for entry in entries]

        return self._timed(run)

    def select(self, key: Any) -> Optional[N]:
        """Return the most preferred node for key, or None if the registry is empty."""
        chosen = self.top(key, 1)
        return chosen[0] if chosen else None

    @property
    def nodes(self) -> Tuple[N, ...]:
        return tuple(self._digests)

    def digest_of(self, node: N) -> int:
        """Return the precomputed digest of a registered node.

        Raises:
            KeyError: If node is not registered
        """
        return self._digests[node]

    def capacity_of(self, node: N) -> int:
        """Return the capacity recorded for a registered node.

        Raises:
            KeyError: If node is not registered
        """
        return self._capacities[node]

    def __len__(self) -> int:
        return len(self._digests)

    def __iter__(self) -> Iterator[N]:
        return iter(self._digests)

    def __contains__(self, node: object) -> bool:
        return node in self._digests

    def __repr__(self) -> str:
        return f"{type(self).__name__}(nodes={len(self)}, total_capacity={self.total_capacity})"
