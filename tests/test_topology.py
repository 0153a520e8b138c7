"""Tests for the tree topology generator."""

import random

import pytest

from treeagg.bootstrapper.topology import (
    BalanceType, RankPriority, TreeTopologyGenerator, TreeType, format_topology,
)
from treeagg.proto.descriptor import Descriptor


def _views(entries):
    return {descriptor.node_id: view for descriptor, view in entries}


def _assert_spanning_tree(entries, n):
    views = _views(entries)
    assert len(views) == n
    roots = [node_id for node_id, view in views.items() if view.is_root()]
    assert len(roots) == 1
    assert sum(len(view.children) for view in views.values()) == n - 1

    # every non-root node is the child of exactly one parent, and that parent agrees
    child_of = {}
    for node_id, view in views.items():
        for child in view.children:
            assert child.node_id not in child_of
            child_of[child.node_id] = node_id
            assert views[child.node_id].parent.node_id == node_id
    assert set(child_of) == set(views) - set(roots)

    # walking up from any node reaches the root without revisiting a node
    for node_id in views:
        seen = set()
        current = node_id
        while views[current].parent is not None:
            assert current not in seen
            seen.add(current)
            current = views[current].parent.node_id
        assert current == roots[0]


def _depths(entries):
    views = _views(entries)
    depths = {}
    for node_id in views:
        depth, current = 0, node_id
        while views[current].parent is not None:
            depth += 1
            current = views[current].parent.node_id
        depths[node_id] = depth
    return depths


@pytest.mark.parametrize("tree_type", list(TreeType))
@pytest.mark.parametrize("balance_type", list(BalanceType))
@pytest.mark.parametrize("n", [1, 2, 7, 50])
def test_generates_spanning_tree(tree_type, balance_type, n):
    rng = random.Random(n)
    peers = [Descriptor.create(f"n{i}", f"n{i}", rng.random(), rng.choice([2, 3, 4])) for i in range(n)]
    generator = TreeTopologyGenerator(RankPriority.HIGH_RANK, tree_type=tree_type, balance_type=balance_type,
                                      rng=random.Random(1))
    _assert_spanning_tree(generator.generate_topology(peers), n)


def test_empty_set_gives_empty_topology():
    assert TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology([]) == ()


def test_single_peer_is_root_without_children():
    peer = Descriptor.create("only", "only", 0.5, 1)
    ((descriptor, view),) = TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology([peer])
    assert descriptor == peer
    assert view.is_root() and view.is_leaf()


def test_sorted_high_to_low_puts_max_rank_at_root(descriptors):
    peers = descriptors([0.3, 0.9, 0.1, 0.5, 0.7, 0.2])
    generator = TreeTopologyGenerator(RankPriority.HIGH_RANK, tree_type=TreeType.SORTED_HtL)

    buffer = generator.organize_peers(peers)
    ranks = [p.rank for p in buffer]
    assert ranks == sorted(ranks, reverse=True)

    entries = generator.generate_topology(peers)
    root = next(d for d, view in entries if view.is_root())
    assert root.rank == 0.9
    assert entries[0][0] == root


def test_low_rank_priority_puts_min_rank_at_root(descriptors):
    peers = descriptors([0.3, 0.9, 0.1, 0.5])
    entries = TreeTopologyGenerator(RankPriority.LOW_RANK, tree_type=TreeType.SORTED_LtH).generate_topology(peers)
    root = next(d for d, view in entries if view.is_root())
    assert root.rank == 0.1


def test_sort_is_stable_for_equal_ranks(descriptors):
    peers = descriptors([0.5, 0.5, 0.5, 0.9])
    generator = TreeTopologyGenerator(RankPriority.HIGH_RANK)
    assert [p.node_id for p in generator.organize_peers(peers)] == ["n3", "n0", "n1", "n2"]


def test_sort_uses_selected_descriptor_type():
    peers = [Descriptor(f"n{i}", f"n{i}", {"RANK": r, "LOAD": load, "NODE_DEGREE": 2})
             for i, (r, load) in enumerate([(0.9, 1.0), (0.1, 8.0), (0.5, 3.0)])]
    generator = TreeTopologyGenerator(RankPriority.HIGH_RANK, descriptor_type="LOAD")
    assert [p.node_id for p in generator.organize_peers(peers)] == ["n1", "n2", "n0"]


def test_weight_balanced_fills_breadth_first(descriptors):
    # degree 3: up to 2 children per node; 10 nodes -> levels of 1, 2, 4, 3
    peers = descriptors([1.0 - i / 10 for i in range(10)], degree=3)
    entries = TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology(peers)
    views = _views(entries)
    depths = _depths(entries)

    assert [depths[f"n{i}"] for i in range(10)] == [0, 1, 1, 2, 2, 2, 2, 3, 3, 3]
    assert [c.node_id for c in views["n0"].children] == ["n1", "n2"]
    assert [c.node_id for c in views["n1"].children] == ["n3", "n4"]
    assert [c.node_id for c in views["n2"].children] == ["n5", "n6"]
    assert [c.node_id for c in views["n3"].children] == ["n7", "n8"]
    assert [c.node_id for c in views["n4"].children] == ["n9"]
    assert all(len(view.children) <= 2 for view in views.values())


def test_short_buffer_gives_fewer_children(descriptors):
    peers = descriptors([0.9, 0.8, 0.7], degree=5)
    views = _views(TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology(peers))
    assert [c.node_id for c in views["n0"].children] == ["n1", "n2"]
    assert views["n1"].is_leaf() and views["n2"].is_leaf()


def test_list_balance_with_degree_two_is_a_path(descriptors):
    peers = descriptors([0.9, 0.7, 0.5, 0.3, 0.1], degree=2)
    entries = TreeTopologyGenerator(RankPriority.HIGH_RANK, balance_type=BalanceType.LIST).generate_topology(peers)
    views = _views(entries)

    for parent, child in [("n0", "n1"), ("n1", "n2"), ("n2", "n3"), ("n3", "n4")]:
        assert [c.node_id for c in views[parent].children] == [child]
    assert views["n4"].is_leaf()
    assert views["n0"].is_root()


def test_list_balance_with_larger_degree_only_extends_last_child(descriptors):
    # degree 3: every level keeps one leaf and carries its last node forward
    peers = descriptors([0.9, 0.8, 0.7, 0.6, 0.5, 0.4, 0.3], degree=3)
    entries = TreeTopologyGenerator(RankPriority.HIGH_RANK, balance_type=BalanceType.LIST).generate_topology(peers)
    views = _views(entries)

    assert [c.node_id for c in views["n0"].children] == ["n1", "n2"]
    assert views["n1"].is_leaf()
    assert [c.node_id for c in views["n2"].children] == ["n3", "n4"]
    assert views["n3"].is_leaf()
    assert [c.node_id for c in views["n4"].children] == ["n5", "n6"]


def test_random_tree_is_reproducible_with_seeded_rng(descriptors):
    peers = descriptors([i / 20 for i in range(20)])
    first = TreeTopologyGenerator(RankPriority.HIGH_RANK, tree_type=TreeType.RANDOM, rng=random.Random(7))
    second = TreeTopologyGenerator(RankPriority.HIGH_RANK, tree_type=TreeType.RANDOM, rng=random.Random(7))
    assert first.generate_topology(peers) == second.generate_topology(peers)


def test_each_call_builds_an_independent_topology(descriptors):
    peers = descriptors([0.9, 0.5, 0.1])
    generator = TreeTopologyGenerator(RankPriority.HIGH_RANK)
    first = generator.generate_topology(peers)
    second = generator.generate_topology(peers[:2])
    assert len(first) == 3
    assert len(second) == 2
    assert len(_views(first)["n0"].children) == 2


def test_no_capacity_left_raises(descriptors):
    with pytest.raises(ValueError):
        TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology(descriptors([0.9, 0.5], degree=1))


def test_enum_values_accepted_as_strings():
    generator = TreeTopologyGenerator("LOW_RANK", "RANK", "RANDOM", "LIST")
    assert generator.priority == RankPriority.LOW_RANK
    assert generator.tree_type == TreeType.RANDOM
    assert generator.balance_type == BalanceType.LIST
    with pytest.raises(ValueError):
        TreeTopologyGenerator("MIDDLE_RANK")


def test_format_topology_indents_children(descriptors):
    entries = TreeTopologyGenerator(RankPriority.HIGH_RANK).generate_topology(descriptors([0.9, 0.5, 0.1]))
    lines = format_topology(entries).splitlines()
    assert lines[0].startswith("- n0")
    assert lines[1].startswith("  - n1")
    assert lines[2].startswith("  - n2")
