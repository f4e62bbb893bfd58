"""Node class for the enterprise simulation.

This module defines the Node class, which represents a host or switch in
the simulated enterprise network.
"""

from typing import Dict, List, Optional

from enterprise_sim.core.link import Link
from enterprise_sim.core.sockets import Listener

EPHEMERAL_PORT_START = 49153


class Node:
    """Represents a network node (switch or end host).

    Attributes:
        id: Unique identifier for the node.
        description: Human-readable role of the node.
        links: Outgoing links keyed by neighbour node ID.
        routing_table: Next hop for each destination node.
        addresses: Interface addresses in assignment order.
        listeners: Listening sockets keyed by port.
        packets_arrived: Number of packets delivered to this node.
        packets_dropped: Number of packets dropped at this node.
    """

    def __init__(self, node_id: int, description: str = "") -> None:
        """Initialize a network node.

        Args:
            node_id: Unique identifier for the node.
            description: Human-readable role of the node.
        """
        self.id = node_id
        self.description = description
        self.links: Dict[int, Link] = {}
        self.routing_table: Dict[int, int] = {}
        self.addresses: List[str] = []
        self.listeners: Dict[int, Listener] = {}
        self.packets_arrived = 0
        self.packets_dropped = 0
        self._next_port = EPHEMERAL_PORT_START

    def add_link(self, link: Link) -> None:
        """Add an outgoing link from this node.

        Args:
            link: The link to add.
        """
        if link.source != self.id or link.target == self.id:
            raise ValueError(
                "Link source or destination is incorrect for this node. Verify the link's configuration."
            )
        self.links[link.target] = link
        self.addresses.append(link.source_address)

    def set_routing_table(self, routing_table: Dict[int, int]) -> None:
        """Set the routing table for this node.

        Args:
            routing_table: Dictionary mapping destinations to next hops.
        """
        self.routing_table = routing_table

    def next_hop(self, destination: int) -> Optional[int]:
        """Return the neighbour to forward to, or None without a route."""
        return self.routing_table.get(destination)

    def source_address_for(self, destination: int) -> Optional[str]:
        """Return the address of the interface used to reach a destination.

        Args:
            destination: Destination node ID.

        Returns:
            The outgoing interface address, or None without a route.
        """
        hop = self.next_hop(destination)
        if hop is None:
            return None
        return self.links[hop].source_address

    def allocate_port(self) -> int:
        """Allocate an ephemeral port for an outbound connection."""
        port = self._next_port
        self._next_port += 1
        return port

    def __repr__(self) -> str:
        return f"Node({self.id})"
