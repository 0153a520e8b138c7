# File: src/treeagg/node/node.py
import sys
import threading

from treeagg.bootstrapper.bootstrapper import TreeServer
from treeagg.node.aggregator import Aggregator
from treeagg.node.aux_files.colors import error_log, result_log
from treeagg.node.config import BOOTSTRAPPER_PORT, DELAY_MILLIS, NODE_DEGREE
from treeagg.node.control_client import TreeClient
from treeagg.node.control_server import ControlServer
from treeagg.node.peer import Peer
from treeagg.node.transport import TcpTransport, ThreadTimerService, format_address
from treeagg.node.tree_provider import TreeProvider


def create_node(node_id, address, bootstrapper_address, rank, value, transport, timers,
                degree=NODE_DEGREE, delay_millis=DELAY_MILLIS, server=None):
    """
    Assembles one participant: tree client, tree provider and aggregator
    (plus the tree server when this participant also bootstraps the tree).

    Returns:
        The Peer, ready for init() and start()
    """
    peer = Peer(node_id, address, transport, timers)
    if server is not None:
        peer.add_peerlet(server)
    peer.add_peerlet(TreeClient(bootstrapper_address, rank, degree))
    aggregator = Aggregator(value, delay_millis)
    peer.add_peerlet(TreeProvider(aggregator))
    peer.add_peerlet(aggregator)
    return peer


def get_aggregator(peer):
    return peer.get_peerlet_of_type(Aggregator)


def get_tree_server(peer):
    return peer.get_peerlet_of_type(TreeServer)


def _bootstrapper_address(arg):
    return arg if ":" in arg else format_address(arg, BOOTSTRAPPER_PORT)


if __name__ == "__main__":
    if len(sys.argv) not in (8, 9):
        print("Use: python -m treeagg.node.node NODE_ID NODE_IP NODE_PORT BOOTSTRAPPER_ADDR RANK DEGREE VALUE "
              "[DELAY_MILLIS]")
        print("  BOOTSTRAPPER_ADDR: host[:port] of the tree server")
        sys.exit(1)

    node_id = sys.argv[1]
    node_ip = sys.argv[2]
    try:
        node_port = int(sys.argv[3])
        rank = float(sys.argv[5])
        degree = int(sys.argv[6])
        value = float(sys.argv[7])
        delay_millis = int(sys.argv[8]) if len(sys.argv) == 9 else DELAY_MILLIS
    except ValueError as e:
        print(f"Error: invalid argument: {e}")
        sys.exit(1)

    done = threading.Event()
    peer = create_node(node_id, format_address(node_ip, node_port), _bootstrapper_address(sys.argv[4]),
                       rank, value, TcpTransport(), ThreadTimerService(), degree=degree,
                       delay_millis=delay_millis)
    get_aggregator(peer).on_complete(lambda global_value: done.set())
    control = ControlServer(node_ip, node_port, peer.deliver)

    try:
        peer.init()
        control.start()
        control.ready.wait()
        peer.start()
        # no timeout: the protocol has none, Ctrl+C bounds the wait
        while not done.wait(1.0):
            pass
        print(result_log(f"[{node_id}] global = {get_aggregator(peer).global_value}"))
    except KeyboardInterrupt:
        print(f"\n[{node_id}] A terminar...")
    except Exception as e:
        print(error_log(f"[{node_id}] Erro fatal: {e}"))
        sys.exit(1)
    finally:
        control.stop()
        peer.stop()
