# File: src/treeagg/node/transport.py
import socket
import threading

from treeagg.node.config import SEND_TIMEOUT
from treeagg.node.aux_files.colors import debug_enabled, debug_log, error_log, warning_log
from treeagg.proto.aux_message import Message


def parse_address(address):
    """
    Splits a "host:port" string (or a (host, port) pair) into (host, port).

    Raises:
        ValueError: if the address has no valid port
    """
    if isinstance(address, (tuple, list)):
        host, port = address
        return host, int(port)
    host, sep, port = str(address).rpartition(":")
    if not sep or not host:
        raise ValueError(f"Address '{address}' is not of the form host:port")
    return host, int(port)


def format_address(host, port):
    return f"{host}:{port}"


class TcpTransport:
    """
    Sends each message over its own short-lived TCP connection. Fire and
    forget: a failed send is logged and reported as False.
    """

    def __init__(self, timeout=SEND_TIMEOUT):
        self.timeout = timeout

    def send(self, address, message):
        """
        Sends a protocol message (Message object) to a node.

        Returns:
            True if the message was written, False otherwise
        """
        try:
            host, port = parse_address(address)
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.settimeout(self.timeout)
                sock.connect((host, port))
                sock.sendall(message.to_bytes())
            return True
        except (OSError, ValueError) as e:
            print(error_log(f"[Transporte] Falha ao enviar {message.get_type()} para {address}: {e}"))
            return False


class LocalNetwork:
    """
    In-process transport: routes messages straight into the mailbox of the
    node registered under the destination address. Messages are serialized
    and parsed again, so nodes never share payload objects.
    """

    def __init__(self):
        self.nodes = {}
        self.lock = threading.Lock()

    def register(self, address, node):
        with self.lock:
            self.nodes[address] = node

    def unregister(self, address):
        with self.lock:
            self.nodes.pop(address, None)

    def send(self, address, message):
        with self.lock:
            node = self.nodes.get(address)
        if node is None:
            print(warning_log(f"[Transporte] Destino desconhecido {address} para {message.get_type()}"))
            return False
        copy = Message.from_bytes(message.to_bytes())
        if debug_enabled():
            print(debug_log(f"[Transporte] {message.get_src()} -> {address}: {message.get_type()}"))
        node.deliver(copy)
        return True


class ThreadTimerService:
    """One-shot timers backed by threading.Timer. Delays are in milliseconds."""

    def __init__(self):
        self.timers = []

    def schedule_once(self, delay_millis, callback):
        timer = threading.Timer(max(0.0, delay_millis) / 1000.0, callback)
        timer.daemon = True
        self.timers.append(timer)
        timer.start()
        return timer

    def cancel_all(self):
        for timer in self.timers:
            timer.cancel()
        self.timers = []
