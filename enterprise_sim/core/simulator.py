"""Network simulator class for the enterprise simulation.

This module defines the NetworkSimulator class, which owns the SimPy
environment, the topology graph and the socket table, and carries
application bytes hop by hop between nodes.
"""

import logging
import random
import numpy as np
import networkx as nx
import simpy
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from enterprise_sim.core.errors import ConnectionRefused, TopologyError
from enterprise_sim.core.flow_monitor import FlowMonitor
from enterprise_sim.core.link import Link
from enterprise_sim.core.node import Node
from enterprise_sim.core.packet import Packet
from enterprise_sim.core.scheduler import SimPyScheduler
from enterprise_sim.core.sockets import AcceptCallback, Connection, Listener

if TYPE_CHECKING:
    from enterprise_sim.apps.application import Application

logger = logging.getLogger(__name__)

# (local address, local port, peer address, peer port)
SocketKey = Tuple[str, int, str, int]


class NetworkSimulator:
    """Network simulation environment.

    Attributes:
        env: SimPy environment.
        scheduler: Scheduler handed to applications.
        graph: NetworkX graph of the topology.
        nodes: Node objects keyed by node ID.
        links: Link objects keyed by (source, destination) tuple.
        address_table: Node ID owning each interface address.
        connections: Open and closed connection ends keyed by socket key.
        completed_packets: Packets that reached their destination.
        dropped_packets: Packets that were dropped, with the reason.
    """

    def __init__(
        self,
        env: simpy.Environment,
        seed: int = 42,
        header_size: int = 40,
        loss_rate: float = 0.0,
    ):
        """Initialize the network simulator.

        Args:
            env: SimPy environment.
            seed: Random seed for reproducibility.
            header_size: Header bytes added to every payload.
            loss_rate: Probability that a link loses a packet on one hop.
        """
        if not 0.0 <= loss_rate <= 1.0:
            raise ValueError(f"Loss rate must be within [0, 1], got {loss_rate}")
        self.env = env
        self.loss_rate = loss_rate
        self.scheduler = SimPyScheduler(env)
        self.header_size = header_size
        self.graph = nx.Graph()
        self.nodes: Dict[int, Node] = {}
        self.links: Dict[Tuple[int, int], Link] = {}
        self.address_table: Dict[str, int] = {}
        self.connections: Dict[SocketKey, Connection] = {}
        self.completed_packets: List[Packet] = []
        self.dropped_packets: List[Tuple[Packet, str]] = []
        self.flow_monitor: Optional[FlowMonitor] = None

        random.seed(seed)
        np.random.seed(seed)

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "packet_sent": [],  # packet handed to the network
            "packet_arrived": [],  # packet reaches destination
            "packet_dropped": [],  # packet dropped
        }

    def add_node(self, node_id: int, description: str = "") -> Node:
        """Add a node to the network.

        Args:
            node_id: Unique identifier for the node.
            description: Human-readable role of the node.

        Returns:
            The created Node object.
        """
        if node_id in self.nodes:
            raise TopologyError(f"Node {node_id} already exists")
        node = Node(node_id, description)
        self.nodes[node_id] = node
        self.graph.add_node(node_id)
        return node

    def add_link(
        self,
        source: int,
        destination: int,
        capacity: float,
        propagation_delay: float,
        addresses: Tuple[str, str],
    ) -> Tuple[Link, Link]:
        """Add a BIDIRECTIONAL point-to-point link between nodes.

        Args:
            source: Source node ID.
            destination: Destination node ID.
            capacity: Link capacity in bits per second.
            propagation_delay: Propagation delay in seconds.
            addresses: Interface addresses of (source, destination).

        Returns:
            Tuple of created Link objects.
        """
        if source not in self.nodes or destination not in self.nodes:
            raise TopologyError(f"Nodes {source} and/or {destination} do not exist")
        for address in addresses:
            if address in self.address_table:
                raise TopologyError(f"Address {address} is already assigned")

        source_address, destination_address = addresses
        link_to = Link(
            self.env, source, destination, capacity, propagation_delay,
            source_address, destination_address,
        )
        link_from = Link(
            self.env, destination, source, capacity, propagation_delay,
            destination_address, source_address,
        )
        self.links[(source, destination)] = link_to
        self.links[(destination, source)] = link_from
        self.nodes[source].add_link(link_to)
        self.nodes[destination].add_link(link_from)
        self.address_table[source_address] = source
        self.address_table[destination_address] = destination
        self.graph.add_edge(
            source,
            destination,
            capacity=capacity,
            delay=propagation_delay,
        )
        return link_to, link_from

    def compute_shortest_paths(self) -> None:
        """Compute shortest paths and set routing tables for all nodes."""
        shortest_paths = nx.all_pairs_dijkstra_path(self.graph, weight="delay")

        for source, paths in shortest_paths:
            routing_table = {}
            for destination, path in paths.items():
                if source != destination and len(path) > 1:
                    routing_table[destination] = path[1]
            self.nodes[source].set_routing_table(routing_table)

    def resolve_address(self, address: str) -> int:
        """Return the node owning an interface address.

        Raises:
            TopologyError: If no node owns the address.
        """
        try:
            return self.address_table[address]
        except KeyError:
            raise TopologyError(f"No node owns address {address}") from None

    def interface_address(self, node_id: int, neighbour: int) -> str:
        """Return a node's address on the link towards a neighbour."""
        link = self.links.get((node_id, neighbour))
        if link is None:
            raise TopologyError(f"No link between {node_id} and {neighbour}")
        return link.source_address

    def enable_flow_monitor(self) -> FlowMonitor:
        """Install a flow monitor on every node and return it."""
        if self.flow_monitor is None:
            monitor = FlowMonitor()
            self.register_hook("packet_sent", monitor.packet_sent)
            self.register_hook("packet_arrived", monitor.packet_arrived)
            self.register_hook("packet_dropped", monitor.packet_dropped)
            self.flow_monitor = monitor
        return self.flow_monitor

    def listen(self, node_id: int, port: int, on_accept: AcceptCallback) -> Listener:
        """Bind a listening socket on every address of a node.

        Args:
            node_id: Node to bind on.
            port: Port to listen on.
            on_accept: Called with (connection, peer_address) per new connection.

        Returns:
            The Listener.
        """
        node = self.nodes[node_id]
        existing = node.listeners.get(port)
        if existing is not None and not existing.closed:
            raise TopologyError(f"Port {port} already in use on node {node_id}")
        listener = Listener(node_id, port, on_accept)
        node.listeners[port] = listener
        logger.debug("Node %d listening on port %d", node_id, port)
        return listener

    def connect(self, node_id: int, peer_address: str, peer_port: int) -> Connection:
        """Open a connection from a node to a listening peer.

        The listening side is accepted immediately; bytes then travel
        through the network with the usual per-hop delays.

        Args:
            node_id: Node opening the connection.
            peer_address: Address of the listening peer.
            peer_port: Port of the listening peer.

        Returns:
            The local end of the connection.

        Raises:
            ConnectionRefused: If the peer is unknown, unreachable or not listening.
        """
        node = self.nodes[node_id]
        peer_id = self.address_table.get(peer_address)
        if peer_id is None:
            raise ConnectionRefused(f"No node owns address {peer_address}")
        peer = self.nodes[peer_id]
        listener = peer.listeners.get(peer_port)
        if listener is None or listener.closed:
            raise ConnectionRefused(f"Nothing listening on {peer_address}:{peer_port}")
        local_address = node.source_address_for(peer_id)
        if local_address is None:
            raise ConnectionRefused(f"No route from node {node_id} to {peer_address}")

        local_port = node.allocate_port()
        local = Connection(
            self, node_id, local_address, local_port, peer_address, peer_port
        )
        remote = Connection(
            self, peer_id, peer_address, peer_port, local_address, local_port
        )
        self.connections[(local_address, local_port, peer_address, peer_port)] = local
        self.connections[(peer_address, peer_port, local_address, local_port)] = remote
        local.link(remote)
        listener.accept(remote)
        return local

    def transmit(self, connection: Connection, data: bytes) -> Packet:
        """Send one segment from a connection end to its peer."""
        source = connection.node_id
        destination = self.address_table[connection.peer_address]
        packet = Packet(
            source,
            destination,
            connection.local_address,
            connection.peer_address,
            connection.local_port,
            connection.peer_port,
            data,
            header_size=self.header_size,
            creation_time=self.env.now,
        )
        self.call_hooks("packet_sent", packet, self.env.now)
        self.env.process(self.process_packet(packet))
        return packet

    def process_packet(self, packet: Packet) -> simpy.events.Process:
        """Process a packet's journey through the network.

        Args:
            packet: The Packet object to process.

        Returns:
            Generator for the packet journey.
        """

        def packet_journey(packet: Packet):
            while packet.current_node != packet.destination:
                current_node = self.nodes[packet.current_node]
                next_hop = current_node.next_hop(packet.destination)
                if next_hop is None:
                    self.packet_dropped(packet, "No route to destination")
                    return

                link = current_node.links[next_hop]
                with link.resource.request() as link_resource:
                    yield link_resource
                    transmission_delay = link.calculate_transmission_delay(packet.size)
                    yield self.env.timeout(transmission_delay)

                yield self.env.timeout(link.propagation_delay)
                link.bytes_sent += packet.size
                link.packets_sent += 1

                if self.loss_rate > 0 and random.random() < self.loss_rate:
                    self.packet_dropped(packet, "Link loss")
                    return

                packet.record_hop(next_hop, self.env.now)

            self.packet_arrived(packet)

        return packet_journey(packet)

    def packet_arrived(self, packet: Packet) -> None:
        """Handle packet arrival at destination.

        Packets addressed to a closed or unknown socket are dropped.

        Args:
            packet: The packet that arrived.
        """
        key = (
            packet.destination_address,
            packet.destination_port,
            packet.source_address,
            packet.source_port,
        )
        connection = self.connections.get(key)
        if connection is None or connection.closed:
            self.packet_dropped(packet, "Socket closed")
            return

        packet.arrival_time = self.env.now
        self.completed_packets.append(packet)
        self.nodes[packet.destination].packets_arrived += 1
        self.call_hooks("packet_arrived", packet, packet.destination, self.env.now)
        connection.deliver(packet.payload, packet.source_address)

    def packet_dropped(self, packet: Packet, reason: str) -> None:
        """Handle packet drop.

        Args:
            packet: The packet that was dropped.
            reason: Reason for dropping the packet.
        """
        packet.dropped = True
        self.dropped_packets.append((packet, reason))
        self.nodes[packet.current_node].packets_dropped += 1
        logger.debug("Packet %d dropped at node %d: %s", packet.id, packet.current_node, reason)
        self.call_hooks(
            "packet_dropped", packet, packet.current_node, reason, self.env.now
        )

    def install_application(
        self, application: "Application", start: float, stop: float
    ) -> None:
        """Start and stop an application at the given simulated times.

        Args:
            application: Application to start and stop.
            start: Start time in seconds.
            stop: Stop time in seconds.
        """
        if stop < start:
            raise ValueError(f"Stop time {stop} precedes start time {start}")
        self.scheduler.schedule_after(max(start - self.env.now, 0), application.start)
        self.scheduler.schedule_after(max(stop - self.env.now, 0), application.stop)

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type.

        Args:
            event_type: The type of event that occurred.
            *args, **kwargs: Arguments to pass to the callback functions.
        """
        if event_type in self.hooks:
            for callback in self.hooks[event_type]:
                callback(*args, **kwargs)

    def run(self, duration: float, max_packet_delay: float = 10.0) -> float:
        """Run the simulation for a specified duration.

        Args:
            duration: Simulation duration in seconds.
            max_packet_delay: Age after which in-flight packets count as lost.

        Returns:
            The simulated time at which the run stopped.
        """
        self.env.run(until=duration)

        if self.flow_monitor is not None:
            self.flow_monitor.check_for_lost_packets(self.env.now, max_packet_delay)

        return self.env.now
