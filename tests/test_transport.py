"""Tests for the threaded runtime: TCP transport, control server, local network and timers."""

import socket
import threading

import pytest

from treeagg.bootstrapper.bootstrapper import TreeServer
from treeagg.bootstrapper.topology import RankPriority
from treeagg.node.control_server import ControlServer
from treeagg.node.node import create_node, get_aggregator
from treeagg.node.transport import LocalNetwork, TcpTransport, ThreadTimerService, format_address, parse_address
from treeagg.proto.aux_message import Message, MsgType

WAIT = 10.0


@pytest.mark.parametrize("address, expected", [
    ("127.0.0.1:6000", ("127.0.0.1", 6000)),
    ("node-a:5000", ("node-a", 5000)),
    (("10.0.0.1", "7000"), ("10.0.0.1", 7000)),
    (["10.0.0.1", 7000], ("10.0.0.1", 7000)),
])
def test_parse_address(address, expected):
    assert parse_address(address) == expected


@pytest.mark.parametrize("address", ["127.0.0.1", ":6000", "host:port"])
def test_parse_address_rejects_bad_input(address):
    with pytest.raises(ValueError):
        parse_address(address)


def test_format_address():
    assert format_address("127.0.0.1", 6000) == "127.0.0.1:6000"


def _start_control_server(handler):
    control = ControlServer("127.0.0.1", 0, handler)
    control.start()
    assert control.ready.wait(WAIT)
    return control


def test_tcp_message_reaches_the_control_server():
    received = []
    arrived = threading.Event()

    def handler(msg):
        received.append(msg)
        arrived.set()

    control = _start_control_server(handler)
    try:
        address = format_address("127.0.0.1", control.TCPport)
        sent = Message.create_aggregation_message("127.0.0.1:1", address, 6.5)
        assert TcpTransport().send(address, sent)
        assert arrived.wait(WAIT)
    finally:
        control.stop()

    (msg,) = received
    assert msg.get_type() == MsgType.AGGREGATION
    assert msg.get_aggregate() == 6.5
    assert msg.id == sent.id


def test_control_server_drops_garbage():
    received = []
    control = _start_control_server(received.append)
    try:
        with socket.create_connection(("127.0.0.1", control.TCPport), timeout=WAIT) as sock:
            sock.sendall(b"definitely not json")
        # a valid message sent afterwards still gets through
        arrived = threading.Event()
        control.handler_callback = lambda msg: (received.append(msg), arrived.set())
        address = format_address("127.0.0.1", control.TCPport)
        assert TcpTransport().send(address, Message.create_aggregation_message("x", address, 1))
        assert arrived.wait(WAIT)
    finally:
        control.stop()

    assert [msg.get_aggregate() for msg in received] == [1]


def test_send_to_closed_port_reports_failure():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    msg = Message.create_aggregation_message("x", "y", 1)
    assert TcpTransport(timeout=1.0).send(format_address("127.0.0.1", port), msg) is False


def test_thread_timer_service_fires_callback():
    fired = threading.Event()
    timers = ThreadTimerService()
    timers.schedule_once(10, fired.set)
    assert fired.wait(WAIT)


def test_thread_timer_service_cancel_all():
    fired = threading.Event()
    timers = ThreadTimerService()
    timers.schedule_once(500, fired.set)
    timers.cancel_all()
    assert not fired.wait(1.0)


def _wait_for_globals(peers):
    done = {}
    events = {}
    for peer in peers:
        event = threading.Event()
        events[peer.node_id] = event
        get_aggregator(peer).on_complete(lambda value, node_id=peer.node_id, event=event: (
            done.__setitem__(node_id, value), event.set()))
    return done, events


def test_threaded_run_over_local_network():
    """Root R with leaves A and B on real threads: every node learns 6."""
    network = LocalNetwork()
    timers = ThreadTimerService()
    server = TreeServer(3, RankPriority.HIGH_RANK)
    # leaves wait longer than the root so their aggregates never reach it before its timer
    peers = [
        create_node("r", "r", "r", 0.9, 1.0, network, timers, delay_millis=100, server=server),
        create_node("a", "a", "r", 0.5, 2.0, network, timers, delay_millis=400),
        create_node("b", "b", "r", 0.1, 3.0, network, timers, delay_millis=400),
    ]
    done, events = _wait_for_globals(peers)
    for peer in peers:
        network.register(peer.address, peer)
        peer.init()
    try:
        # the server's peer starts first so no request lands before it is waiting
        for peer in peers:
            peer.start()
        assert all(event.wait(WAIT) for event in events.values())
    finally:
        timers.cancel_all()
        for peer in peers:
            peer.stop()

    assert done == {"r": 6.0, "a": 6.0, "b": 6.0}


def test_local_network_unknown_destination():
    network = LocalNetwork()
    assert network.send("nowhere", Message.create_aggregation_message("x", "nowhere", 1)) is False


def test_two_nodes_over_tcp():
    """The same protocol over loopback TCP, each node behind its own control server."""
    transport = TcpTransport()
    timers = ThreadTimerService()
    root_control = _start_control_server(None)
    leaf_control = _start_control_server(None)
    root_address = format_address("127.0.0.1", root_control.TCPport)
    leaf_address = format_address("127.0.0.1", leaf_control.TCPport)

    root = create_node("r", root_address, root_address, 0.9, 4.0, transport, timers, delay_millis=200,
                       server=TreeServer(2, RankPriority.HIGH_RANK))
    leaf = create_node("l", leaf_address, root_address, 0.1, 5.0, transport, timers, delay_millis=800)
    root_control.handler_callback = root.deliver
    leaf_control.handler_callback = leaf.deliver
    done, events = _wait_for_globals([root, leaf])

    try:
        for peer in (root, leaf):
            peer.init()
            peer.start()
        assert all(event.wait(WAIT) for event in events.values())
    finally:
        timers.cancel_all()
        for peer, control in ((root, root_control), (leaf, leaf_control)):
            control.stop()
            peer.stop()

    assert done == {"r": 9.0, "l": 9.0}
