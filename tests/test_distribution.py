from collections import Counter

from hrw_hash.distribution import calculate_assignments, min_max_ratio, moved_keys, replica_counts
from hrw_hash.hrw import HrwNodes
from hrw_hash.weighted_hrw import WeightedHrwNodes


def test_calculate_assignments():
    hrw = HrwNodes(range(10))
    assignments = calculate_assignments(hrw, [42, 7], replicas=3)
    assert assignments == {42: [6, 1, 7], 7: [7, 6, 2]}


def test_replica_counts_include_idle_nodes():
    hrw = HrwNodes(["a", "b", "c"])
    counts = replica_counts(hrw, [], replicas=2)
    assert counts == Counter({"a": 0, "b": 0, "c": 0})
    assert set(counts) == {"a", "b", "c"}

    counts = replica_counts(hrw, range(300), replicas=2)
    assert sum(counts.values()) == 600
    assert all(count > 0 for count in counts.values())


def test_min_max_ratio():
    assert min_max_ratio({}) == 0.0
    assert min_max_ratio({"a": 0, "b": 0}) == 0.0
    assert min_max_ratio({"a": 5, "b": 10}) == 0.5
    assert min_max_ratio(Counter({"a": 4, "b": 4})) == 1.0


def test_moved_keys_only_go_to_new_node():
    keys = [f"key-{i}" for i in range(1000)]
    before = HrwNodes(f"node{i}" for i in range(10))
    after = HrwNodes(f"node{i}" for i in range(11))

    moved = moved_keys(before, after, keys)
    assert 0 < len(moved) < len(keys)
    assert all(after.select(key) == "node10" for key in moved)


def test_moved_keys_on_removal_only_leave_removed_node():
    keys = range(1000)
    before = WeightedHrwNodes(range(8))
    after = WeightedHrwNodes(range(1, 8))

    moved = moved_keys(before, after, keys)
    assert moved
    assert all(before.select(key) == 0 for key in moved)
    assert len(moved) == sum(1 for key in keys if before.select(key) == 0)
