# File: src/treeagg/node/aggregator.py
from treeagg.node.aggregation import (
    AggregateReceived, AggregationState, Completed, Ignored, ScheduleTimer, SendAggregate, Start,
    TimerExpired, TreeViewDelivered, initial_state, transition,
)
from treeagg.node.aux_files.colors import aggregation_log, debug_enabled, debug_log, result_log, warning_log
from treeagg.node.peer import Peerlet
from treeagg.proto.aux_message import Message, MsgType


class Aggregator(Peerlet):
    """
    Tree application computing the sum of the local values of all nodes.

    The values are aggregated up the tree (convergecast) and the global sum
    computed at the root is broadcast back down, so every node ends up
    holding the same global value. The decisions are taken by the pure
    transition function of treeagg.node.aggregation; this peerlet feeds it
    events and carries out the effects it returns.
    """

    def __init__(self, value, delay_millis):
        """
        Args:
            value: the local value of the node
            delay_millis: waiting time between receiving the tree view and
                starting the aggregation, so that all the other nodes also
                hold their tree view
        """
        super().__init__()
        self.state = initial_state(value, delay_millis)
        self.completion_callbacks = []

    @property
    def phase(self):
        return self.state.phase

    @property
    def value(self):
        return self.state.value

    @property
    def aggregate(self):
        return self.state.aggregate

    @property
    def global_value(self):
        return self.state.global_value

    def is_complete(self):
        return self.state.phase == AggregationState.COMPLETE

    def on_complete(self, callback):
        """Registers callback(global_value), called once the node is COMPLETE."""
        self.completion_callbacks.append(callback)

    def start(self):
        self._apply(Start())

    def set_tree_view(self, parent, children):
        """
        Sets the tree view provided by the TreeProvider.

        Args:
            parent: Descriptor of the parent, None for the root
            children: Descriptors of the children
        """
        parent_address = parent.address if parent is not None else None
        self._apply(TreeViewDelivered(parent_address, tuple(child.address for child in children)))

    def handle_incoming_message(self, message):
        if message.get_type() != MsgType.AGGREGATION:
            return
        aggregate = message.get_aggregate()
        if aggregate is None:
            print(warning_log(f"[{self._name()}] Invalid aggregation message from {message.get_src()}"))
            return
        self._apply(AggregateReceived(aggregate))

    def _timer_expired(self):
        self._apply(TimerExpired())

    def _apply(self, event):
        previous = self.state.phase
        self.state, effects = transition(self.state, event)
        if self.state.phase != previous and debug_enabled():
            print(debug_log(f"[{self._name()}] {previous.value} -> {self.state.phase.value}"))
        for effect in effects:
            self._execute(effect)

    def _execute(self, effect):
        if isinstance(effect, ScheduleTimer):
            self.peer.schedule_once(effect.delay_millis, self._timer_expired)
        elif isinstance(effect, SendAggregate):
            print(aggregation_log(f"[{self._name()}] Sending aggregate {effect.aggregate} to {effect.address}"))
            message = Message.create_aggregation_message(self.peer.address, effect.address, effect.aggregate)
            self.peer.send_message(effect.address, message)
        elif isinstance(effect, Completed):
            print(result_log(f"[{self._name()}] Aggregation complete: global = {effect.global_value}"))
            for callback in self.completion_callbacks:
                callback(effect.global_value)
        elif isinstance(effect, Ignored):
            self._log_ignored(effect)

    def _log_ignored(self, effect):
        event = type(effect.event).__name__
        if effect.phase == AggregationState.COMPLETE:
            if debug_enabled():
                print(debug_log(f"[{self._name()}] Already complete, dropped {event}."))
        elif effect.phase == AggregationState.IDLE:
            print(warning_log(f"[{self._name()}] Peer has not been started yet, dropped {event}."))
        elif effect.phase == AggregationState.WAITING_TREE_VIEW:
            print(warning_log(f"[{self._name()}] Tree view or timer still expected, dropped {event}."))
        else:
            print(warning_log(f"[{self._name()}] Unexpected {event} in state {effect.phase.value}, dropped."))

    def _name(self):
        return self.peer.node_id if self.peer is not None else "aggregator"
