"""Shared fixtures: a transport that records sends and timers fired by hand."""

import pytest

from treeagg.node.peer import Peer
from treeagg.proto.descriptor import Descriptor


class RecordingTransport:
    def __init__(self):
        self.sent = []

    def send(self, address, message):
        self.sent.append((address, message))
        return True

    def of_type(self, msg_type):
        return [(address, msg) for address, msg in self.sent if msg.get_type() == msg_type]


class ManualTimers:
    def __init__(self):
        self.pending = []

    def schedule_once(self, delay_millis, callback):
        self.pending.append((delay_millis, callback))

    def fire_all(self):
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def timers():
    return ManualTimers()


@pytest.fixture
def make_peer(transport, timers):
    def factory(node_id, *peerlets, address=None):
        peer = Peer(node_id, address or node_id, transport, timers)
        for peerlet in peerlets:
            peer.add_peerlet(peerlet)
        peer.init()
        peer.start(run_thread=False)
        peer.drain()
        return peer
    return factory


def make_descriptors(ranks, degree=3):
    """One descriptor per rank, ids n0, n1, ... in the given order."""
    degrees = degree if isinstance(degree, (list, tuple)) else [degree] * len(ranks)
    return [Descriptor.create(f"n{i}", f"n{i}", rank, d) for i, (rank, d) in enumerate(zip(ranks, degrees))]


@pytest.fixture
def descriptors():
    return make_descriptors
