from treeagg.proto.descriptor import Descriptor


class TreeView:
    """
    The tree neighbours of one participant: its parent (None for the root)
    and its children. A view is a read-only snapshot once built.
    """

    __slots__ = ("_parent", "_children")

    def __init__(self, parent=None, children=()):
        object.__setattr__(self, "_parent", parent)
        object.__setattr__(self, "_children", tuple(children))

    def __setattr__(self, name, value):
        raise AttributeError("TreeView is immutable")

    @property
    def parent(self):
        return self._parent

    @property
    def children(self):
        return self._children

    def is_root(self):
        return self._parent is None

    def is_leaf(self):
        return len(self._children) == 0

    def to_dict(self):
        """Converts the view to a dictionary (the payload of a tree view reply)."""
        return {
            "parent": self._parent.to_dict() if self._parent is not None else None,
            "children": [child.to_dict() for child in self._children],
        }

    @classmethod
    def from_dict(cls, data):
        """
        Creates a view from a dictionary.

        Returns:
            TreeView instance or None if a descriptor in it is invalid
        """
        if not isinstance(data, dict):
            return None
        parent = None
        if data.get("parent") is not None:
            parent = Descriptor.from_dict(data["parent"])
            if parent is None:
                return None
        children = [Descriptor.from_dict(c) for c in data.get("children") or []]
        if any(child is None for child in children):
            return None
        return cls(parent, children)

    def __eq__(self, other):
        if not isinstance(other, TreeView):
            return NotImplemented
        return self._parent == other._parent and self._children == other._children

    def __hash__(self):
        return hash((self._parent, self._children))

    def __repr__(self):
        parent = self._parent.node_id if self._parent is not None else None
        children = [c.node_id for c in self._children]
        return f"TreeView(parent={parent}, children={children})"
