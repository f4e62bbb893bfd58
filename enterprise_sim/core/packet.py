"""Packet class for the enterprise simulation.

This module defines the Packet class, which carries one application
message between two sockets through the simulated network.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Optional

TCP_PROTOCOL = 6


@dataclass
class Packet:
    """Represents a network packet.

    Attributes:
        source: Source node ID.
        destination: Destination node ID.
        source_address: Source IPv4 address.
        destination_address: Destination IPv4 address.
        source_port: Source port.
        destination_port: Destination port.
        payload: Application bytes carried by the packet.
        header_size: Header bytes counted on top of the payload.
        creation_time: Time when packet was created.
        id: Unique identifier for the packet.
        current_node: Current node where the packet is located.
        hops: List of (node, time) visited by the packet.
        arrival_time: Time when packet arrived at destination.
        dropped: Whether the packet was dropped.
        times_forwarded: Number of intermediate nodes that relayed it.
    """

    source: int
    destination: int
    source_address: str
    destination_address: str
    source_port: int
    destination_port: int
    payload: bytes
    header_size: int = 40
    creation_time: float = 0
    id: int = field(init=False)
    current_node: int = field(init=False)
    hops: List[Tuple[int, float]] = field(default_factory=list)
    arrival_time: Optional[float] = None
    dropped: bool = False
    times_forwarded: int = 0

    _id_counter: int = field(default=0, init=False, repr=False)

    def __post_init__(self):
        """Initialize derived attributes after initialization."""
        type(self)._id_counter += 1
        self.id = type(self)._id_counter
        self.current_node = self.source

    @property
    def size(self) -> int:
        """Size on the wire in bytes."""
        return len(self.payload) + self.header_size

    @property
    def five_tuple(self) -> Tuple[str, str, int, int, int]:
        """(source address, destination address, protocol, source port, destination port)."""
        return (
            self.source_address,
            self.destination_address,
            TCP_PROTOCOL,
            self.source_port,
            self.destination_port,
        )

    def record_hop(self, node: int, time: float) -> None:
        """Record a hop in the packet's journey.

        Args:
            node: Node ID where the packet has arrived.
            time: Current simulation time.
        """
        if self.current_node != self.source:
            self.times_forwarded += 1
        self.hops.append((node, time))
        self.current_node = node

    def get_total_delay(self) -> Optional[float]:
        """Calculate total delay if packet has arrived.

        Returns:
            Total delay in seconds or None if packet hasn't arrived.
        """
        if self.arrival_time is None:
            return None
        return self.arrival_time - self.creation_time
