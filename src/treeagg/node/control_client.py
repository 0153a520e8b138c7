from enum import Enum

from treeagg.node.aux_files.colors import bootstrap_log, debug_enabled, debug_log, error_log, warning_log
from treeagg.node.peer import Peerlet
from treeagg.node.tree_provider import TreeProvider
from treeagg.proto.aux_message import Message, MsgType
from treeagg.proto.descriptor import Descriptor


class ClientState(Enum):
    INIT = "INIT"
    WAITING = "WAITING"
    COMPLETED = "COMPLETED"


class TreeClient(Peerlet):
    """
    Client: bootstrapping side of a participant. It sends its descriptor
    (rank and node degree) to the tree server, waits for the tree view and
    hands it to the TreeProvider of the peer.

    There is no retry: if the reply never arrives the client stays WAITING.
    """

    def __init__(self, bootstrap_server_address, rank, degree):
        """
        Args:
            bootstrap_server_address: address of the tree server
            rank: the rank of the local peer
            degree: the node degree of the local peer
        """
        super().__init__()
        self.bootstrap_server_address = bootstrap_server_address
        self.rank = rank
        self.degree = degree
        self.local_descriptor = None
        self.state = ClientState.INIT

    def create_descriptor(self):
        """Creates the local descriptor sent to the tree server."""
        self.local_descriptor = Descriptor.create(self.peer.node_id, self.peer.address, self.rank, self.degree)
        return self.local_descriptor

    def get_my_local_descriptor(self):
        return self.local_descriptor

    def get_tree_provider(self):
        return self.peer.get_peerlet_of_type(TreeProvider)

    def start(self):
        """Sends the tree view request and enters the WAITING state."""
        self.create_descriptor()
        request = Message.create_request_message(self.peer.address, self.bootstrap_server_address,
                                                 self.local_descriptor)
        self.state = ClientState.WAITING
        print(bootstrap_log(f"[Cliente] {self.peer.node_id} a pedir vista da árvore a {self.bootstrap_server_address}"))
        self.peer.send_message(self.bootstrap_server_address, request)

    def handle_incoming_message(self, message):
        if message.get_type() != MsgType.TREE_VIEW_REPLY:
            return
        if self.state != ClientState.WAITING:
            if debug_enabled():
                print(debug_log(f"[Cliente] {self.peer.node_id} ignorou resposta no estado {self.state.value}"))
            return

        view = message.get_tree_view()
        if view is None:
            print(error_log(f"[Cliente] {self.peer.node_id} recebeu uma vista inválida de {message.get_src()}"))
            return

        self.state = ClientState.COMPLETED
        print(bootstrap_log(f"[Cliente] {self.peer.node_id} recebeu a vista da árvore"))
        self.deliver_tree_view(view.parent, list(view.children))

    def deliver_tree_view(self, parent, children):
        """Provides the received tree view to the tree provider."""
        provider = self.get_tree_provider()
        if provider is None:
            print(warning_log(f"[Cliente] {self.peer.node_id} não tem TreeProvider instalado"))
            return
        provider.provide_tree_view(parent, children)
