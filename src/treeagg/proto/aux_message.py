import json
import time
import uuid

from treeagg.proto.descriptor import Descriptor
from treeagg.proto.tree_view import TreeView


class MsgType:
    """Message type constants"""

    # Bootstrap protocol (client <-> tree server)
    TREE_VIEW_REQUEST = "TREE_VIEW_REQUEST"
    TREE_VIEW_REPLY = "TREE_VIEW_REPLY"

    # Aggregation protocol (node <-> node)
    AGGREGATION = "AGGREGATION"

    ALL = (TREE_VIEW_REQUEST, TREE_VIEW_REPLY, AGGREGATION)


class Message:
    """
    One protocol message, sent as a single JSON object per TCP connection.

    Message structure:
    {
        "id": unique ID,
        "type": message type (from MsgType),
        "src": source address,
        "dest": destination address,
        "timestamp": when the message was created,
        "payload": message-specific data
    }

    Addresses may be "host:port" strings or (host, port) tuples; tuples
    travel as JSON lists and come back as tuples.
    """

    def __init__(self, msg_type, src, dest=None, payload=None, msg_id=None):
        """
        Creates a new message.

        Args:
            msg_type: Message type (use MsgType constants)
            src: Source address
            dest: Destination address
            payload: Dictionary with message-specific data
            msg_id: Optional message ID (automatically generated if None)
        """
        self.id = msg_id if msg_id else str(uuid.uuid4())
        self.type = msg_type
        self.src = src
        self.dest = dest
        self.timestamp = int(time.time())
        self.payload = payload if payload else {}

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "src": _address_to_wire(self.src),
            "dest": _address_to_wire(self.dest),
            "timestamp": self.timestamp,
            "payload": self.payload,
        }

    def to_bytes(self):
        """Serializes the message for the wire (UTF-8 JSON)."""
        return self.to_json().encode("utf-8")

    def to_json(self):
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data):
        """
        Rebuilds a message from its decoded JSON object. The envelope is
        checked here; payload contents are checked by the typed getters.

        Returns:
            Message instance, or None if the type is unknown or a field of
            the envelope has the wrong shape
        """
        if not isinstance(data, dict) or data.get("type") not in MsgType.ALL:
            return None
        payload = data.get("payload", {})
        msg_id = data.get("id")
        timestamp = data.get("timestamp")
        if not isinstance(payload, dict):
            return None
        if msg_id is not None and not isinstance(msg_id, str):
            return None
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, (int, float))):
            return None

        msg = cls(data["type"], _address_from_wire(data.get("src")), _address_from_wire(data.get("dest")),
                  payload=payload, msg_id=msg_id)
        if timestamp is not None:
            msg.timestamp = timestamp
        return msg

    @classmethod
    def from_json(cls, raw):
        """Parses a JSON string or UTF-8 bytes. Returns None if it does not decode."""
        try:
            text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            return cls.from_dict(json.loads(text))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None

    from_bytes = from_json

    def get_type(self):
        return self.type

    def get_payload(self):
        return self.payload

    def get_src(self):
        return self.src

    def get_dest(self):
        return self.dest

    def get_descriptor(self):
        """Descriptor carried by a TREE_VIEW_REQUEST (None if missing or invalid)."""
        return Descriptor.from_dict(self.payload.get("descriptor"))

    def get_tree_view(self):
        """Tree view carried by a TREE_VIEW_REPLY (None if invalid)."""
        return TreeView.from_dict(self.payload)

    def get_aggregate(self):
        """Numeric aggregate carried by an AGGREGATION message (None if invalid)."""
        aggregate = self.payload.get("aggregate")
        if isinstance(aggregate, bool) or not isinstance(aggregate, (int, float)):
            return None
        return aggregate

    def __str__(self):
        return f"{self.type} {self.src} -> {self.dest} [{self.id[:8]}]"

    def __repr__(self):
        return f"Message({self.to_dict()})"

    @classmethod
    def create_request_message(cls, src, dest, descriptor):
        """Create a TREE_VIEW_REQUEST message carrying the sender's descriptor."""
        return cls(MsgType.TREE_VIEW_REQUEST, src, dest, payload={"descriptor": descriptor.to_dict()})

    @classmethod
    def create_reply_message(cls, src, dest, view):
        """Create a TREE_VIEW_REPLY message. Parent and children provided by the tree server."""
        return cls(MsgType.TREE_VIEW_REPLY, src, dest, payload=view.to_dict())

    @classmethod
    def create_aggregation_message(cls, src, dest, aggregate):
        """Create an AGGREGATION message (partial sum or global value)."""
        return cls(MsgType.AGGREGATION, src, dest, payload={"aggregate": aggregate})


def _address_to_wire(address):
    return list(address) if isinstance(address, tuple) else address


def _address_from_wire(address):
    return tuple(address) if isinstance(address, list) else address


def parse_message(raw_data):
    """Bytes or str off the wire -> Message, or None if it is not a valid message."""
    return Message.from_json(raw_data)
