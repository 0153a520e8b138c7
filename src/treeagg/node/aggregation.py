# File: src/treeagg/node/aggregation.py
"""
Aggregation state machine of one node, as a pure transition function.

    transition(state, event) -> (new_state, effects)

The node keeps a local value. Once the tree view is known it waits a fixed
delay, then the values travel up the tree (convergecast) and the sum
computed at the root travels back down (broadcast):

    IDLE -> WAITING_TREE_VIEW -> WAITING_AGGREGATES -> WAITING_BROADCAST -> COMPLETE

The root skips WAITING_BROADCAST. A (phase, event) pair missing from the
transition table leaves the state untouched and yields a single Ignored
effect, which the caller logs.
"""
from collections import namedtuple
from enum import Enum


class AggregationState(Enum):
    IDLE = "IDLE"
    WAITING_TREE_VIEW = "WAITING_TREE_VIEW"
    WAITING_AGGREGATES = "WAITING_AGGREGATES"
    WAITING_BROADCAST = "WAITING_BROADCAST"
    COMPLETE = "COMPLETE"


# parent: address of the parent (None for the root); children: tuple of addresses
AggregatorState = namedtuple("AggregatorState", [
    "phase", "value", "delay_millis", "has_view", "parent", "children",
    "received", "aggregate", "global_value",
])

# Events
Start = namedtuple("Start", [])
TreeViewDelivered = namedtuple("TreeViewDelivered", ["parent", "children"])
TimerExpired = namedtuple("TimerExpired", [])
AggregateReceived = namedtuple("AggregateReceived", ["aggregate"])

# Effects
ScheduleTimer = namedtuple("ScheduleTimer", ["delay_millis"])
SendAggregate = namedtuple("SendAggregate", ["address", "aggregate"])
Completed = namedtuple("Completed", ["global_value"])
Ignored = namedtuple("Ignored", ["phase", "event"])


def initial_state(value, delay_millis):
    return AggregatorState(
        phase=AggregationState.IDLE,
        value=value,
        delay_millis=delay_millis,
        has_view=False,
        parent=None,
        children=(),
        received=0,
        aggregate=0,
        global_value=None,
    )


def is_root(state):
    return state.has_view and state.parent is None


def is_leaf(state):
    return state.has_view and len(state.children) == 0


def _start(state, event):
    return state._replace(phase=AggregationState.WAITING_TREE_VIEW), ()


def _tree_view(state, event):
    if state.has_view:
        return _ignore(state, event)
    state = state._replace(has_view=True, parent=event.parent, children=tuple(event.children))
    return state, (ScheduleTimer(state.delay_millis),)


def _timer(state, event):
    if not state.has_view:
        return _ignore(state, event)
    state = state._replace(phase=AggregationState.WAITING_AGGREGATES)
    if state.children:
        return state, ()
    if state.parent is not None:
        # leaf: nothing to wait for
        aggregate = state.aggregate + state.value
        state = state._replace(phase=AggregationState.WAITING_BROADCAST, aggregate=aggregate)
        return state, (SendAggregate(state.parent, aggregate),)
    # lone root
    return _complete(state._replace(aggregate=state.value), state.value, ())


def _child_aggregate(state, event):
    received = state.received + 1
    aggregate = state.aggregate + event.aggregate
    state = state._replace(received=received, aggregate=aggregate)
    if received < len(state.children):
        return state, ()

    aggregate += state.value
    state = state._replace(aggregate=aggregate)
    if state.parent is None:
        effects = tuple(SendAggregate(child, aggregate) for child in state.children)
        return _complete(state, aggregate, effects)
    state = state._replace(phase=AggregationState.WAITING_BROADCAST)
    return state, (SendAggregate(state.parent, aggregate),)


def _broadcast(state, event):
    effects = tuple(SendAggregate(child, event.aggregate) for child in state.children)
    return _complete(state, event.aggregate, effects)


def _complete(state, global_value, effects):
    state = state._replace(phase=AggregationState.COMPLETE, global_value=global_value)
    return state, effects + (Completed(global_value),)


def _ignore(state, event):
    return state, (Ignored(state.phase, event),)


_TRANSITIONS = {
    (AggregationState.IDLE, Start): _start,
    (AggregationState.WAITING_TREE_VIEW, TreeViewDelivered): _tree_view,
    (AggregationState.WAITING_TREE_VIEW, TimerExpired): _timer,
    (AggregationState.WAITING_AGGREGATES, AggregateReceived): _child_aggregate,
    (AggregationState.WAITING_BROADCAST, AggregateReceived): _broadcast,
}


def transition(state, event):
    handler = _TRANSITIONS.get((state.phase, type(event)))
    if handler is None:
        return _ignore(state, event)
    return handler(state, event)
