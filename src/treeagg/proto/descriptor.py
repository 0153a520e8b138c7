# File: src/treeagg/proto/descriptor.py
import math
from types import MappingProxyType


class DescriptorType:
    """Attribute tags carried by a descriptor"""

    RANK = "RANK"
    NODE_DEGREE = "NODE_DEGREE"


class Descriptor:
    """
    Identity of one participant plus its tagged numeric attributes.

    Two descriptors are equal when they share the same node_id. The
    attributes (rank, degree, ...) never take part in equality or hashing,
    so a descriptor is a safe dict/set key.

    Wire structure:
    {
        "node_id": stable identifier,
        "address": routable address of the participant,
        "attributes": {tag: number}
    }
    """

    __slots__ = ("_node_id", "_address", "_attributes")

    def __init__(self, node_id, address, attributes=None):
        """
        Creates a descriptor.

        Args:
            node_id: Stable identifier of the participant
            address: Address used by the transport to reach the participant
            attributes: Dictionary {DescriptorType tag: number}, RANK required

        Raises:
            ValueError: if node_id is empty, RANK is missing, an attribute is
                        not a finite number or NODE_DEGREE is below 1
        """
        if node_id is None or node_id == "":
            raise ValueError("Descriptor requires a node_id")
        attributes = dict(attributes or {})
        if DescriptorType.RANK not in attributes:
            raise ValueError(f"Descriptor {node_id!r} has no {DescriptorType.RANK} attribute")
        for tag, value in attributes.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"Attribute {tag} of {node_id!r} must be a finite number, got {value!r}")
        degree = attributes.get(DescriptorType.NODE_DEGREE)
        if degree is not None:
            if int(degree) != degree or degree < 1:
                raise ValueError(f"Node degree must be an integer >= 1, got {degree!r}")
            attributes[DescriptorType.NODE_DEGREE] = int(degree)
        object.__setattr__(self, "_node_id", node_id)
        object.__setattr__(self, "_address", address)
        object.__setattr__(self, "_attributes", MappingProxyType(attributes))

    @classmethod
    def create(cls, node_id, address, rank, degree):
        """Builds a descriptor with the RANK and NODE_DEGREE attributes set."""
        return cls(node_id, address, {
            DescriptorType.RANK: float(rank),
            DescriptorType.NODE_DEGREE: degree,
        })

    def __setattr__(self, name, value):
        raise AttributeError("Descriptor is immutable")

    @property
    def node_id(self):
        return self._node_id

    @property
    def address(self):
        return self._address

    @property
    def attributes(self):
        return self._attributes

    def get_descriptor(self, descriptor_type):
        """
        Gets one attribute value.

        Raises:
            KeyError: if the descriptor does not carry that attribute
        """
        return self._attributes[descriptor_type]

    @property
    def rank(self):
        return self._attributes.get(DescriptorType.RANK)

    @property
    def degree(self):
        return self._attributes.get(DescriptorType.NODE_DEGREE, 1)

    def max_children(self):
        """Maximum number of children in a tree = node degree - 1"""
        return self.degree - 1

    def to_dict(self):
        """Converts the descriptor to a dictionary."""
        address = self._address
        if isinstance(address, tuple):
            address = list(address)
        return {
            "node_id": self._node_id,
            "address": address,
            "attributes": dict(self._attributes),
        }

    @classmethod
    def from_dict(cls, data):
        """
        Creates a descriptor from a dictionary.

        Returns:
            Descriptor instance or None if invalid
        """
        if not isinstance(data, dict):
            return None
        try:
            address = data.get("address")
            if isinstance(address, list):
                address = tuple(address)
            return cls(data["node_id"], address, data.get("attributes", {}))
        except (KeyError, TypeError, ValueError):
            return None

    def __eq__(self, other):
        if not isinstance(other, Descriptor):
            return NotImplemented
        return self._node_id == other._node_id

    def __hash__(self):
        return hash(self._node_id)

    def __str__(self):
        return f"{self._node_id}(rank={self.rank}, degree={self.degree})"

    def __repr__(self):
        return f"Descriptor({self.to_dict()})"


def rank_key(descriptor_type=DescriptorType.RANK):
    """Sort key reading one numeric attribute of a descriptor."""
    def key(descriptor):
        return descriptor.get_descriptor(descriptor_type)
    return key
