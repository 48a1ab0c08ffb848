import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import pytest

from hrw_hash.errors import ContractViolation
from hrw_hash.hasher import MAX_U64, FunctionHashProvider
from hrw_hash.node import WeightedNode, capacity_of
from hrw_hash.weighted_hrw import SMALLEST_POSITIVE, WeightedHrwNodes, weighted_score

# merge(DIGEST_AT_MAX, 0) == MAX_U64
DIGEST_AT_MAX = 9918480051203340458


@dataclass(frozen=True)
class Server:
    name: Any
    capacity: int = field(default=1, compare=False)

    def hrw_key(self):
        return self.name


class MethodCapacity:
    def __init__(self, name, capacity):
        self.name = name
        self._capacity = capacity

    def capacity(self):
        return self._capacity

    def hrw_key(self):
        return self.name


class TableHashProvider:
    def __init__(self, table):
        self.table = table

    def hash(self, value):
        return self.table[getattr(value, "name", value)]


def test_golden_rankings():
    assert WeightedHrwNodes(range(10)).rank(42) == [9, 4, 3, 0, 8, 2, 5, 7, 1, 6]

    hrw = WeightedHrwNodes(Server(i, capacity=i + 1) for i in range(10))
    assert [server.name for server in hrw.rank(42)] == [9, 4, 8, 3, 7, 5, 2, 0, 6, 1]
    assert [server.name for server in hrw.top(42, 3)] == [9, 4, 8]


def test_total_capacity():
    hrw = WeightedHrwNodes([Server("a", 5), Server("b", 15), MethodCapacity("c", 30), "plain"])
    assert hrw.total_capacity == 51
    assert hrw.capacity_of(Server("a")) == 5
    assert hrw.capacity_of("plain") == 1


def test_deterministic_and_complete():
    nodes = [Server(f"node{i}", capacity=i % 4 + 1) for i in range(20)]
    hrw = WeightedHrwNodes(nodes)
    for key in range(100):
        ranked = hrw.rank(key)
        assert ranked == hrw.rank(key)
        assert sorted(ranked, key=lambda s: s.name) == sorted(nodes, key=lambda s: s.name)
        assert hrw.top(key, 5) == ranked[:5]


def test_empty():
    hrw = WeightedHrwNodes([])
    assert hrw.rank("key") == []
    assert hrw.select("key") is None
    assert hrw.total_capacity == 0


def test_duplicate_nodes_last_write_wins():
    hrw = WeightedHrwNodes([Server("a", 1), Server("b", 2), Server("a", 7)])
    assert len(hrw) == 2
    assert hrw.capacity_of(Server("a")) == 7
    assert hrw.total_capacity == 9


def test_minimal_disruption():
    base = [Server(f"node{i}", capacity=i + 1) for i in range(10)]
    extra = Server("node10", capacity=4)
    hrw = WeightedHrwNodes(base)
    grown = WeightedHrwNodes(base + [extra])

    for key in range(200):
        assert [node for node in grown.rank(key) if node != extra] == hrw.rank(key)


@pytest.mark.parametrize("capacity", [-1, 1.5, "3", True, None])
def test_invalid_capacity_rejected(capacity):
    with pytest.raises(ContractViolation):
        WeightedHrwNodes([Server("a", 1), Server("b", capacity)])


def test_zero_capacity_ranks_last():
    hrw = WeightedHrwNodes([Server(f"node{i}") for i in range(5)] + [Server("idle", 0)])
    for key in range(300):
        assert hrw.rank(key)[-1] == Server("idle")


def test_all_zero_capacity_is_contract_violation():
    hrw = WeightedHrwNodes([Server("a", 0), Server("b", 0)])
    with pytest.raises(ContractViolation):
        hrw.rank("key")


def test_nan_score_is_contract_violation():
    table = {"dead": DIGEST_AT_MAX, "alive": 1, "key": 0}
    hrw = WeightedHrwNodes.with_hash_provider(TableHashProvider(table), [Server("dead", 0), Server("alive", 1)])
    with pytest.raises(ContractViolation):
        hrw.rank("key")


def test_max_affinity_scores_infinite():
    table = {"top": DIGEST_AT_MAX, "other": 1, "key": 0}
    hrw = WeightedHrwNodes.with_hash_provider(TableHashProvider(table), [Server("other", 100), Server("top", 1)])
    assert hrw.rank("key") == [Server("top"), Server("other")]


def test_zero_affinity_has_no_singularity():
    hrw = WeightedHrwNodes.with_hash_provider(
        FunctionHashProvider(lambda value: 0),
        [Server("a", 1), Server("b", 3), Server("c", 2)],
    )
    # every raw affinity is 0: scores differ only by capacity
    assert [s.name for s in hrw.rank("key")] == ["b", "c", "a"]

    flat = WeightedHrwNodes.with_hash_provider(FunctionHashProvider(lambda value: 0), ["y", "x", "z"])
    assert flat.rank("key") == ["y", "x", "z"]


def test_weighted_score():
    assert weighted_score(MAX_U64, 0.5) == math.inf
    assert weighted_score(0, 1.0) == pytest.approx(1.0 / -math.log(SMALLEST_POSITIVE))
    assert weighted_score(MAX_U64 // 2, 1.0) == pytest.approx(1.0 / math.log(2))
    assert weighted_score(MAX_U64 // 2, 0.0) == 0.0
    assert math.isnan(weighted_score(MAX_U64, 0.0))


WEIGHTED_KEYS = 65535


@dataclass(frozen=True)
class Member:
    id: int
    capacity: int = field(default=1, compare=False)


def proportion_tolerance(expected):
    # 10%, widened to four standard deviations of a binomial count for small shares
    return max(0.1, 4 / math.sqrt(expected))


def test_proportion_tolerance():
    assert proportion_tolerance(655 * 30) == 0.1
    assert proportion_tolerance(655 * 5) == 0.1
    assert proportion_tolerance(655) == pytest.approx(0.1563, abs=1e-4)


def test_weighted_distribution():
    # 3 nodes with total capacity of 50, plus 50 nodes with capacity 1
    nodes = [Member(1, 5), Member(2, 15), Member(3, 30)]
    nodes += [Member(i, 1) for i in range(4, 54)]
    hrw = WeightedHrwNodes(nodes)
    assert hrw.total_capacity == 100

    counts = Counter(hrw.select(key).id for key in range(WEIGHTED_KEYS))

    # one share of capacity gives a node k keys on a perfectly balanced run
    k = WEIGHTED_KEYS // 100
    for node in nodes:
        expected = k * node.capacity
        count = counts[node.id]
        diff = (count - expected) / expected
        assert abs(diff) < proportion_tolerance(expected), f"node {node.id}: expected {expected}, got {count}"

    small = sum(counts[node.id] for node in nodes if node.capacity == 1)
    assert abs(small - 50 * k) / (50 * k) < 0.1
