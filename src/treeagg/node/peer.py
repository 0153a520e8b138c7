# File: src/treeagg/node/peer.py
import queue
import threading
from collections import namedtuple

from treeagg.node.aux_files.colors import debug_enabled, debug_log, error_log, topology_log

# Mailbox events. A message arrival and a timer expiry are both just
# entries of the node's mailbox, handled one at a time.
MessageArrived = namedtuple("MessageArrived", ["message"])
TimerFired = namedtuple("TimerFired", ["callback"])
Started = namedtuple("Started", [])

_STOP = object()


class Peerlet:
    """
    A protocol component hosted by a Peer (tree server, tree client, tree
    provider, aggregator ...). All its handlers run on the peer's dispatch
    loop, never concurrently.
    """

    def __init__(self):
        self.peer = None

    def init(self, peer):
        self.peer = peer

    def start(self):
        pass

    def stop(self):
        pass

    def handle_incoming_message(self, message):
        pass

    def get_peer(self):
        return self.peer


class Peer:
    """
    One participant: an actor owning a mailbox and a set of peerlets.

    Transport and timers only ever post events into the mailbox; a single
    dispatch loop drains it, so the state of the peerlets is never touched
    from two execution paths at once.
    """

    def __init__(self, node_id, address, transport, timers):
        self.node_id = node_id
        self.address = address
        self.transport = transport
        self.timers = timers
        self.peerlets = []
        self.mailbox = queue.Queue()
        self.thread = None

    def add_peerlet(self, peerlet):
        self.peerlets.append(peerlet)
        return peerlet

    def get_peerlet_of_type(self, peerlet_type):
        """Returns the first peerlet that is an instance of peerlet_type, or None."""
        for peerlet in self.peerlets:
            if isinstance(peerlet, peerlet_type):
                return peerlet
        return None

    def init(self):
        for peerlet in self.peerlets:
            peerlet.init(self)

    def start(self, run_thread=True):
        """
        Starts every peerlet. The start itself goes through the mailbox, so
        it runs on the dispatch loop like any other event. With run_thread
        the mailbox is drained by a daemon thread; otherwise the owner calls
        drain() itself.
        """
        self.post(Started())
        if run_thread:
            self.thread = threading.Thread(target=self._run, name=f"peer-{self.node_id}", daemon=True)
            self.thread.start()

    def _start_peerlets(self):
        for peerlet in self.peerlets:
            peerlet.start()
        print(topology_log(f"[{self.node_id}] Nó iniciado em {self.address}"))

    def stop(self):
        for peerlet in self.peerlets:
            peerlet.stop()
        if self.thread is not None:
            self.mailbox.put(_STOP)
            self.thread.join(timeout=2.0)
            self.thread = None

    # ------------------------------------------------------------------
    # Mailbox
    # ------------------------------------------------------------------
    def deliver(self, message):
        """Entry point of the transport: enqueue an incoming message."""
        self.mailbox.put(MessageArrived(message))

    def post(self, event):
        self.mailbox.put(event)

    def drain(self):
        """Processes every queued event. Returns the number of events handled."""
        handled = 0
        while True:
            try:
                event = self.mailbox.get_nowait()
            except queue.Empty:
                return handled
            if event is _STOP:
                continue
            self.dispatch(event)
            handled += 1

    def _run(self):
        while True:
            event = self.mailbox.get()
            if event is _STOP:
                return
            try:
                self.dispatch(event)
            except Exception as e:
                print(error_log(f"[{self.node_id}] Erro ao processar {event}: {e}"))

    def dispatch(self, event):
        if isinstance(event, TimerFired):
            event.callback()
        elif isinstance(event, Started):
            self._start_peerlets()
        elif isinstance(event, MessageArrived):
            if debug_enabled():
                print(debug_log(f"[{self.node_id}] Recebido {event.message}"))
            for peerlet in self.peerlets:
                peerlet.handle_incoming_message(event.message)
        else:
            raise TypeError(f"Unknown mailbox event {event!r}")

    # ------------------------------------------------------------------
    # Services offered to the peerlets
    # ------------------------------------------------------------------
    def send_message(self, address, message):
        """Stamps the local address as the source and hands the message to the transport."""
        message.src = self.address
        message.dest = address
        return self.transport.send(address, message)

    def schedule_once(self, delay_millis, callback):
        """Runs callback on the dispatch loop once delay_millis have passed."""
        return self.timers.schedule_once(delay_millis, lambda: self.post(TimerFired(callback)))
