# File: src/treeagg/bootstrapper/topology.py
import random
from enum import Enum

from treeagg.node.aux_files.colors import debug_enabled, debug_log
from treeagg.proto.descriptor import DescriptorType, rank_key
from treeagg.proto.tree_view import TreeView


class TreeType(Enum):
    """How the peers are ordered before the tree is built"""
    RANDOM = "RANDOM"
    SORTED_HtL = "SORTED_HtL"
    SORTED_LtH = "SORTED_LtH"


class RankPriority(Enum):
    """Direction of the rank sort: high ranks first or low ranks first"""
    HIGH_RANK = "HIGH_RANK"
    LOW_RANK = "LOW_RANK"


class BalanceType(Enum):
    """
    WEIGHT_BALANCED: every node of a level can parent the next level.
    LIST: only the last node of a level carries forward (degenerate tree).
    """
    WEIGHT_BALANCED = "WEIGHT_BALANCED"
    LIST = "LIST"


class TreeTopologyGenerator:
    """
    Builds a tree topology out of a set of peer descriptors.

    The tree is filled level by level from an ordered buffer of peers: the
    first peer is the root and every parent of a level takes the next
    (degree - 1) unassigned peers of the buffer as its children.
    """

    def __init__(self, priority, descriptor_type=DescriptorType.RANK, tree_type=TreeType.SORTED_HtL,
                 balance_type=BalanceType.WEIGHT_BALANCED, rng=None):
        """
        Args:
            priority: RankPriority used to sort the peers (high or low ranks first)
            descriptor_type: attribute tag the sort is performed on
            tree_type: TreeType, random tree or sorted tree
            balance_type: BalanceType, weight balanced tree or list
            rng: optional random.Random used by RANDOM trees

        Raises:
            ValueError: if one of the enum arguments is not recognised
        """
        self.priority = RankPriority(priority)
        self.descriptor_type = descriptor_type
        self.tree_type = TreeType(tree_type)
        self.balance_type = BalanceType(balance_type)
        self.rng = rng if rng is not None else random.Random()

    def organize_peers(self, peers):
        """
        Returns the peers in the order in which they are placed in the tree.
        RANDOM shuffles them, the sorted types apply a stable sort on the rank
        attribute in the direction given by the priority.
        """
        buffer = list(peers)
        if self.tree_type == TreeType.RANDOM:
            self.rng.shuffle(buffer)
        else:
            buffer.sort(key=rank_key(self.descriptor_type),
                        reverse=self.priority == RankPriority.HIGH_RANK)
        return buffer

    def generate_topology(self, peers):
        """
        Creates the tree view of every peer.

        Args:
            peers: iterable of Descriptor participating in the tree

        Returns:
            Tuple of (Descriptor, TreeView) entries, root first, in buffer order

        Raises:
            ValueError: if the peers left to place can never get a parent
                        because every candidate parent has degree 1
        """
        buffer = self.organize_peers(peers)
        if not buffer:
            return ()

        # node_id -> [parent, [children]]
        topology = {buffer[0].node_id: [None, []]}
        p_left, p_right = 0, 0

        while p_right + 1 < len(buffer):
            level_size = sum(buffer[p].max_children() for p in range(p_left, p_right + 1))
            if level_size == 0:
                raise ValueError(
                    f"Cannot place {len(buffer) - p_right - 1} remaining peers: "
                    f"no child capacity left at buffer positions {p_left}..{p_right}"
                )
            c_left = p_right + 1
            c_right = c_left + level_size - 1

            c_counter = c_left
            for i in range(p_left, p_right + 1):
                parent = buffer[i]
                for j in range(c_counter, min(c_counter + parent.max_children(), len(buffer))):
                    child = buffer[j]
                    topology[parent.node_id][1].append(child)
                    topology[child.node_id] = [parent, []]
                c_counter += parent.max_children()
                if c_counter >= len(buffer):
                    break

            if self.balance_type == BalanceType.LIST:
                p_left = c_right
            else:
                p_left = c_left
            p_right = c_right

        entries = tuple(
            (peer, TreeView(topology[peer.node_id][0], topology[peer.node_id][1]))
            for peer in buffer
        )
        if debug_enabled():
            print(debug_log(f"[Topology] Generated tree over {len(entries)} peers:\n"
                            f"{format_topology(entries)}"))
        return entries


def format_topology(entries):
    """Renders the generated topology as an indented tree, one peer per line."""
    views = {descriptor.node_id: view for descriptor, view in entries}
    roots = [descriptor for descriptor, view in entries if view.is_root()]
    lines = []

    stack = [(root, 0) for root in reversed(roots)]
    while stack:
        descriptor, depth = stack.pop()
        lines.append(f"{'  ' * depth}- {descriptor}")
        for child in reversed(views[descriptor.node_id].children):
            stack.append((child, depth + 1))
    return "\n".join(lines)
