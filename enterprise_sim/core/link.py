"""Link class for the enterprise simulation.

This module defines the Link class, which represents one direction of a
point-to-point link between two nodes.
"""

import simpy


class Link:
    """Represents one direction of a point-to-point link.

    Attributes:
        env: SimPy environment.
        source: Source node ID.
        target: Target node ID.
        capacity: Link capacity in bits per second.
        propagation_delay: Propagation delay in seconds.
        source_address: Address of the source node's interface on this link.
        target_address: Address of the target node's interface on this link.
        packets_sent: Number of packets sent through this link.
        bytes_sent: Number of bytes sent through this link.
        resource: SimPy resource serializing transmissions.
    """

    def __init__(
        self,
        env: simpy.Environment,
        source: int,
        target: int,
        capacity: float,
        propagation_delay: float,
        source_address: str,
        target_address: str,
    ):
        """Initialize a link direction.

        Args:
            env: SimPy environment.
            source: Source node ID.
            target: Target node ID.
            capacity: Link capacity in bits per second.
            propagation_delay: Propagation delay in seconds.
            source_address: Source interface address.
            target_address: Target interface address.
        """
        if capacity <= 0:
            raise ValueError(f"Link capacity must be positive, got {capacity}")
        self.env = env
        self.source = source
        self.target = target
        self.capacity = capacity
        self.propagation_delay = propagation_delay
        self.source_address = source_address
        self.target_address = target_address
        self.packets_sent = 0
        self.bytes_sent = 0
        self.resource = simpy.Resource(env, capacity=1)

    def calculate_transmission_delay(self, packet_size: int) -> float:
        """Calculate transmission delay based on packet size and link capacity.

        Args:
            packet_size: Size of the packet in bytes.

        Returns:
            Transmission delay in seconds.
        """
        return (packet_size * 8) / self.capacity

    def __repr__(self) -> str:
        return f"Link({self.source}->{self.target}, {self.capacity/1000000:.1f}Mbps, {self.propagation_delay*1000:.1f}ms)"
