# File: src/treeagg/simulation.py
"""
Deterministic in-process run of the whole protocol.

A discrete-event scheduler with a virtual clock in milliseconds stands in
for the network and the timers: a message is delivered `latency_millis`
after it is sent, a timer fires after its delay, and nothing ever runs
concurrently. Constant latency plus a sequence number on every event keeps
delivery in order for each sender/receiver pair.
"""
import heapq
import itertools
import random
import sys
from collections import namedtuple

from treeagg.bootstrapper.bootstrapper import TreeServer
from treeagg.bootstrapper.topology import BalanceType, RankPriority, TreeType
from treeagg.node.aux_files.colors import result_log, warning_log
from treeagg.node.config import DELAY_MILLIS
from treeagg.node.node import create_node, get_aggregator
from treeagg.proto.aux_message import Message
from treeagg.proto.descriptor import DescriptorType

ExperimentResult = namedtuple("ExperimentResult", ["peers", "expected", "globals", "complete"])


class Simulation:

    def __init__(self):
        self.now = 0
        self.events = []
        self.sequence = itertools.count()
        self.peers = []

    def schedule(self, delay_millis, action):
        heapq.heappush(self.events, (self.now + max(0, delay_millis), next(self.sequence), action))

    def add_peer(self, peer):
        self.peers.append(peer)
        return peer

    def drain(self):
        handled = 0
        for peer in self.peers:
            handled += peer.drain()
        return handled

    def run(self, until_millis=None):
        """
        Runs events in time order until none are left or the clock would pass
        until_millis. Returns the number of scheduled events executed.
        """
        executed = 0
        self.drain()
        while self.events:
            at, _, action = self.events[0]
            if until_millis is not None and at > until_millis:
                break
            heapq.heappop(self.events)
            self.now = at
            action()
            self.drain()
            executed += 1
        if until_millis is not None:
            self.now = max(self.now, until_millis)
        return executed


class SimulatedNetwork:
    """Transport delivering messages into peer mailboxes after a fixed latency."""

    def __init__(self, simulation, latency_millis=1):
        self.simulation = simulation
        self.latency_millis = latency_millis
        self.peers = {}
        self.sent = 0

    def register(self, address, peer):
        self.peers[address] = peer

    def send(self, address, message):
        peer = self.peers.get(address)
        if peer is None:
            print(warning_log(f"[Simulação] Destino desconhecido {address}"))
            return False
        copy = Message.from_bytes(message.to_bytes())
        self.sent += 1
        self.simulation.schedule(self.latency_millis, lambda: peer.deliver(copy))
        return True


class SimulatedTimerService:

    def __init__(self, simulation):
        self.simulation = simulation

    def schedule_once(self, delay_millis, callback):
        self.simulation.schedule(delay_millis, callback)


def run_experiment(n=100, degrees=(3,), delay_millis=DELAY_MILLIS, priority=RankPriority.HIGH_RANK,
                   descriptor_type=DescriptorType.RANK, tree_type=TreeType.SORTED_HtL,
                   balance_type=BalanceType.WEIGHT_BALANCED, seed=None, latency_millis=1,
                   run_duration_millis=400_000, values=None, ranks=None):
    """
    Runs N peers aggregating over a tree built by a tree server hosted on
    peer 0. Ranks and values are drawn at random unless given; every peer
    draws its degree from `degrees`.

    Returns:
        ExperimentResult(peers, expected sum, {node_id: global}, all complete)
    """
    rng = random.Random(seed)
    simulation = Simulation()
    network = SimulatedNetwork(simulation, latency_millis)
    timers = SimulatedTimerService(simulation)
    server_address = "peer-0"

    for i in range(n):
        address = f"peer-{i}"
        server = None
        if i == 0:
            server = TreeServer(n, priority, descriptor_type, tree_type, balance_type,
                                rng=random.Random(rng.random()))
        rank = ranks[i] if ranks is not None else rng.random()
        value = values[i] if values is not None else rng.random()
        peer = create_node(address, address, server_address, rank, value, network, timers,
                           degree=rng.choice(list(degrees)), delay_millis=delay_millis, server=server)
        network.register(address, peer)
        simulation.add_peer(peer)

    for peer in simulation.peers:
        peer.init()
    for peer in simulation.peers:
        peer.start(run_thread=False)
    simulation.run(until_millis=run_duration_millis)

    aggregators = {peer.node_id: get_aggregator(peer) for peer in simulation.peers}
    expected = sum(aggregator.value for aggregator in aggregators.values())
    globals_ = {node_id: aggregator.global_value for node_id, aggregator in aggregators.items()}
    complete = all(aggregator.is_complete() for aggregator in aggregators.values())
    return ExperimentResult(simulation.peers, expected, globals_, complete)


if __name__ == "__main__":
    n = int(sys.argv[1]) if len(sys.argv) > 1 else 100
    print("System started.")
    result = run_experiment(n=n)
    distinct = set(result.globals.values())
    print(result_log(f"Expected sum: {result.expected}"))
    print(result_log(f"Global values seen: {sorted(distinct, key=str)}"))
    print(result_log(f"All peers complete: {result.complete}"))
    print("System finished.")
