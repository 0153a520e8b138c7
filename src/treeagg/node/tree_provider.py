from treeagg.node.aux_files.colors import topology_log, warning_log
from treeagg.node.peer import Peerlet


class TreeProvider(Peerlet):
    """
    Hands the tree view obtained by the bootstrapping middleware to the tree
    application of the same peer (any peerlet with a set_tree_view method).
    Exactly one view is delivered per peer.
    """

    def __init__(self, application=None):
        super().__init__()
        self.application = application
        self.parent = None
        self.children = ()
        self.delivered = False

    def get_application(self):
        if self.application is None and self.peer is not None:
            for peerlet in self.peer.peerlets:
                if peerlet is not self and hasattr(peerlet, "set_tree_view"):
                    self.application = peerlet
                    break
        return self.application

    def provide_tree_view(self, parent, children):
        """
        Receives the tree view from the tree client and passes it on.

        Args:
            parent: Descriptor of the parent, None for the root
            children: list of child Descriptors
        """
        if self.delivered:
            print(warning_log(f"[{self._name()}] Tree view already provided, ignoring a second one."))
            return
        self.delivered = True
        self.parent = parent
        self.children = tuple(children)

        role = "root" if parent is None else f"parent {parent.node_id}"
        print(topology_log(f"[{self._name()}] Tree view: {role}, children {[c.node_id for c in self.children]}"))

        application = self.get_application()
        if application is None:
            print(warning_log(f"[{self._name()}] No tree application installed, view kept locally."))
            return
        application.set_tree_view(parent, list(self.children))

    def _name(self):
        return self.peer.node_id if self.peer is not None else "provider"
