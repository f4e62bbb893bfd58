"""Connection-oriented sockets for the enterprise simulation.

A Connection is one end of an established stream between two nodes. A
Listener accepts connections on a port. Both are created by the
NetworkSimulator, which carries the bytes through the network.
"""

from typing import Callable, NamedTuple, Optional, TYPE_CHECKING

from enterprise_sim.core.errors import TransportError

if TYPE_CHECKING:
    from enterprise_sim.core.simulator import NetworkSimulator

ReceiveCallback = Callable[["Connection", bytes, str], None]
AcceptCallback = Callable[["Connection", str], None]


class Connection:
    """One end of an established connection.

    Attributes:
        node_id: Node owning this end.
        local_address: Address of this end.
        local_port: Port of this end.
        peer_address: Address of the remote end.
        peer_port: Port of the remote end.
        closed: Whether this end has been closed.
        peer: The remote end, linked by the simulator on connect.
        peer_closed: Whether the remote end has been closed.
        bytes_sent: Payload bytes handed to the network.
        bytes_received: Payload bytes delivered to this end.
    """

    def __init__(
        self,
        simulator: "NetworkSimulator",
        node_id: int,
        local_address: str,
        local_port: int,
        peer_address: str,
        peer_port: int,
    ):
        self.simulator = simulator
        self.node_id = node_id
        self.local_address = local_address
        self.local_port = local_port
        self.peer_address = peer_address
        self.peer_port = peer_port
        self.closed = False
        self.peer: Optional["Connection"] = None
        self.peer_closed = False
        self.bytes_sent = 0
        self.bytes_received = 0
        self._receive_callback: Optional[ReceiveCallback] = None

    def link(self, peer: "Connection") -> None:
        """Pair this end with the remote end so closes are seen both ways."""
        self.peer = peer
        peer.peer = self

    def set_receive_callback(self, callback: ReceiveCallback) -> None:
        """Register the function called with (connection, data, from_address)."""
        self._receive_callback = callback

    def send(self, data: bytes) -> int:
        """Send bytes to the peer.

        Args:
            data: Payload to transmit.

        Returns:
            Number of bytes accepted for transmission.

        Raises:
            TransportError: If either end has been closed.
        """
        if self.closed:
            raise TransportError(
                f"Connection {self.local_address}:{self.local_port} -> "
                f"{self.peer_address}:{self.peer_port} is closed"
            )
        if self.peer_closed:
            raise TransportError(
                f"Connection {self.local_address}:{self.local_port} -> "
                f"{self.peer_address}:{self.peer_port} was closed by the peer"
            )
        self.simulator.transmit(self, bytes(data))
        self.bytes_sent += len(data)
        return len(data)

    def deliver(self, data: bytes, from_address: str) -> None:
        """Hand inbound bytes to the registered callback."""
        self.bytes_received += len(data)
        if self._receive_callback is not None:
            self._receive_callback(self, data, from_address)

    def close(self) -> None:
        """Close this end and mark the peer as shut down. Closing twice is a no-op."""
        if self.closed:
            return
        self.closed = True
        self._receive_callback = None
        if self.peer is not None:
            self.peer.peer_closed = True

    def __repr__(self) -> str:
        if self.closed:
            state = "closed"
        elif self.peer_closed:
            state = "peer closed"
        else:
            state = "open"
        return (
            f"Connection({self.local_address}:{self.local_port} -> "
            f"{self.peer_address}:{self.peer_port}, {state})"
        )


class Listener:
    """Listening socket bound to a port on a node.

    Attributes:
        node_id: Node owning the socket.
        port: Bound port.
        closed: Whether the socket stopped accepting.
    """

    def __init__(self, node_id: int, port: int, on_accept: AcceptCallback):
        self.node_id = node_id
        self.port = port
        self.on_accept = on_accept
        self.closed = False

    def accept(self, connection: Connection) -> None:
        """Hand a new connection to the accept callback."""
        if self.closed:
            raise TransportError(f"Listener on port {self.port} is closed")
        self.on_accept(connection, connection.peer_address)

    def close(self) -> None:
        """Stop accepting connections. Closing twice is a no-op."""
        self.closed = True

    def __repr__(self) -> str:
        return f"Listener(node={self.node_id}, port={self.port})"


class SocketAddress(NamedTuple):
    """IPv4 address and port of a socket."""

    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"
