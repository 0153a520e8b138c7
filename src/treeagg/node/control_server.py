# File: control_server.py
import socket
import threading

from treeagg.node.config import MAX_MESSAGE_SIZE
from treeagg.node.aux_files.colors import error_log, topology_log, warning_log
from treeagg.proto.aux_message import parse_message


class ControlServer:
    """
    Server: accepts TCP connections and hands every decoded message to the
    handler callback. One message per connection; the sender closes the
    connection once the message is written.
    """

    def __init__(self, host_ip, port, handler_callback):
        self.host_ip = host_ip
        self.TCPport = port
        self.handler_callback = handler_callback

        self.server_socket = None
        self.ready = threading.Event()
        self.running = False

    def start(self):
        """Starts the main TCP listener."""
        self.running = True
        threading.Thread(target=self._run_server, daemon=True).start()

    def stop(self):
        self.running = False
        if self.server_socket is not None:
            try:
                self.server_socket.close()
            except OSError:
                pass

    def _run_server(self):
        """TCP Loop to accept control connections."""
        try:
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.host_ip, self.TCPport))
            # port 0 asks the OS for a free port
            self.TCPport = self.server_socket.getsockname()[1]
            self.server_socket.listen()
            print(topology_log(f"[Servidor] Controlo TCP em {self.host_ip}:{self.TCPport}"))
            self.ready.set()

            while self.running:
                conn, addr = self.server_socket.accept()
                threading.Thread(target=self._handle_connection, args=(conn, addr), daemon=True).start()

        except OSError as e:
            if self.running:
                print(error_log(f"[Servidor] Erro fatal: {e}"))
        finally:
            self.ready.set()

    def _handle_connection(self, conn, addr):
        """Reads one message until the peer closes its side."""
        try:
            chunks = []
            size = 0
            while size <= MAX_MESSAGE_SIZE:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
                size += len(chunk)
            raw = b"".join(chunks)
            if not raw:
                return
            if size > MAX_MESSAGE_SIZE:
                print(warning_log(f"[Servidor] Mensagem demasiado grande de {addr} ({size} bytes)"))
                return
            msg = parse_message(raw)
            if msg is None:
                print(warning_log(f"[Servidor] Mensagem inválida de {addr}"))
                return
            self.handler_callback(msg)
        except OSError as e:
            print(error_log(f"[Servidor] Erro na ligação {addr}: {e}"))
        finally:
            conn.close()
