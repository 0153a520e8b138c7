# Ficheiro: src/treeagg/bootstrapper/bootstrapper.py
import sys
import threading
import time
from enum import Enum

from treeagg.bootstrapper.config import BALANCE_TYPE, DEBUG, DESCRIPTOR_TYPE, HOST, N, PORT, PRIORITY, TREE_TYPE
from treeagg.bootstrapper.overlay_configs import overlay_configs
from treeagg.bootstrapper.topology import TreeTopologyGenerator, format_topology
from treeagg.node.aux_files.colors import (
    bootstrap_log, debug_enabled, debug_log, error_log, set_debug, topology_log, warning_log,
)
from treeagg.node.control_server import ControlServer
from treeagg.node.peer import Peer, Peerlet
from treeagg.node.transport import TcpTransport, ThreadTimerService, format_address
from treeagg.proto.aux_message import Message, MsgType


class ServerState(Enum):
    INIT = "INIT"
    WAITING = "WAITING"
    COMPLETED = "COMPLETED"


class TreeServer(Peerlet):
    """
    Bootstraps a tree topology. It waits for N tree view requests, builds
    the topology once over the collected descriptors and sends every peer
    its parent and children.

    Requests carrying an equal descriptor (same node_id) collapse into one
    entry but are still counted. With fewer than N requests the server
    waits forever.
    """

    def __init__(self, n, priority=PRIORITY, descriptor_type=DESCRIPTOR_TYPE, tree_type=TREE_TYPE,
                 balance_type=BALANCE_TYPE, rng=None):
        """
        Args:
            n: number of requests to wait for before building the tree
            priority, descriptor_type, tree_type, balance_type, rng: fed to
                the TreeTopologyGenerator
        """
        super().__init__()
        if n < 1:
            raise ValueError(f"The tree server needs at least one request, got N={n}")
        self.N = n
        self.n = 0
        self.peers = {}  # node_id -> Descriptor, first one received wins
        self.generator = TreeTopologyGenerator(priority, descriptor_type, tree_type, balance_type, rng=rng)
        self.state = ServerState.INIT
        # handlers may also be called directly, outside the peer's dispatch loop
        self.lock = threading.Lock()

    def start(self):
        """Server enters the waiting state."""
        with self.lock:
            self.state = ServerState.WAITING
        print(bootstrap_log(f"[BOOT] Tree server waiting for {self.N} requests"))

    def handle_incoming_message(self, message):
        if message.get_type() == MsgType.TREE_VIEW_REQUEST:
            self.handle_request(message)

    def handle_request(self, message):
        """
        Collects one request. The N-th request triggers the topology
        generation and the replies.
        """
        descriptor = message.get_descriptor()
        if descriptor is None:
            print(warning_log(f"[BOOT] Invalid tree view request from {message.get_src()}"))
            return
        if self.generator.descriptor_type not in descriptor.attributes:
            print(warning_log(f"[BOOT] Request from {descriptor.node_id} has no "
                              f"{self.generator.descriptor_type} attribute, dropped"))
            return

        with self.lock:
            if self.state != ServerState.WAITING:
                if debug_enabled():
                    print(debug_log(f"[BOOT] Ignoring request from {descriptor.node_id} in state {self.state.value}"))
                return
            if debug_enabled():
                print(debug_log(f"[BOOT] Received a tree view request from: {descriptor}"))
            if descriptor.node_id in self.peers:
                print(warning_log(f"[BOOT] Duplicate request from {descriptor.node_id}, collapsed into one peer"))
            else:
                self.peers[descriptor.node_id] = descriptor
            self.n += 1
            if self.n < self.N:
                return
            self.state = ServerState.COMPLETED
            peers = list(self.peers.values())

        try:
            views = self.generator.generate_topology(peers)
        except ValueError as e:
            print(error_log(f"[BOOT] Topology generation failed: {e}"))
            return
        print(topology_log(f"[BOOT] Topology built over {len(views)} peers:\n{format_topology(views)}"))
        self.reply_views(views)

    def reply_views(self, views):
        """Sends each peer of the topology its tree view."""
        if debug_enabled():
            print(debug_log("[BOOT] Sending tree views to all peers..."))
        for descriptor, view in views:
            reply = Message.create_reply_message(self.peer.address, descriptor.address, view)
            self.peer.send_message(descriptor.address, reply)
        print(bootstrap_log(f"[BOOT] Sent {len(views)} tree views"))


def create_bootstrapper(config, n, host=HOST, port=PORT):
    """Builds a TCP peer hosting only a tree server, listening on host:port."""
    peer = Peer("bootstrapper", format_address(host, port), TcpTransport(), ThreadTimerService())
    server = peer.add_peerlet(TreeServer(n, descriptor_type=DESCRIPTOR_TYPE, **overlay_configs[config]))
    control = ControlServer(host, port, peer.deliver)
    return peer, server, control


if __name__ == "__main__":
    # Check command line arguments
    if len(sys.argv) not in (2, 3):
        print("Usage: python -m treeagg.bootstrapper.bootstrapper CONFIG [N]")
        print("  CONFIG:    Configuration name (c1, c2, c3, c4 or c5)")
        print(f"  N:         Number of peers in the tree (default {N})")
        print("\nExample: python -m treeagg.bootstrapper.bootstrapper c1 10")
        sys.exit(1)

    # Parse arguments
    config = sys.argv[1]
    if config not in overlay_configs:
        print(f"Error: Invalid CONFIG '{config}'. Must be one of {', '.join(sorted(overlay_configs))}")
        sys.exit(1)
    try:
        n = int(sys.argv[2]) if len(sys.argv) == 3 else N
    except ValueError:
        print(f"Error: Invalid N '{sys.argv[2]}'")
        sys.exit(1)

    set_debug(DEBUG)
    print(f"[BOOT] Loaded configuration: {config} {overlay_configs[config]}")

    try:
        peer, server, control = create_bootstrapper(config, n)
        peer.init()
        # the server must be WAITING before the first request is queued
        peer.start()
        control.start()
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n[BOOT] Shutting down server...")
    except Exception as e:
        print(error_log(f"[BOOT] Fatal error: {e}"))
        sys.exit(1)
