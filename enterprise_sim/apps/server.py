"""Acknowledging server.

The server accepts any number of connections and answers every message
with a reply carrying its running message count.
"""

import logging
from typing import List, Optional

from enterprise_sim.apps.application import Transport
from enterprise_sim.core.enums import ServerState
from enterprise_sim.core.errors import TransportError
from enterprise_sim.core.scheduler import Clock
from enterprise_sim.core.sockets import Connection, Listener

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = "Hello from server! do you want anything else"


class Server:
    """Replies to every received message on the same connection.

    Attributes:
        node_id: Node hosting the server.
        port: Listening port.
        response: Text prefix of every reply.
        state: Current life-cycle state.
        messages_received: Messages received over all connections.
        replies_sent: Replies written back.
        connections: Accepted connections that are still open.
    """

    def __init__(
        self,
        node_id: int,
        transport: Transport,
        clock: Clock,
        port: int = 8080,
        response: str = DEFAULT_RESPONSE,
    ):
        self.node_id = node_id
        self.transport = transport
        self.clock = clock
        self.port = port
        self.response = response
        self.state = ServerState.IDLE
        self.messages_received = 0
        self.replies_sent = 0
        self.connections: List[Connection] = []
        self.listener: Optional[Listener] = None

    def start(self, port: Optional[int] = None) -> None:
        """Bind and listen.

        Args:
            port: Listening port, overriding the one given at construction.
        """
        if self.state is not ServerState.IDLE:
            raise RuntimeError(f"Server {self.node_id} cannot start from {self.state.name}")
        if port is not None:
            self.port = port
        self.listener = self.transport.listen(self.node_id, self.port, self.on_accept)
        self.state = ServerState.LISTENING
        logger.info("Server started on node %d port %d", self.node_id, self.port)

    def on_accept(self, connection: Connection, peer_address: str) -> None:
        """Register the receive handler on a new connection."""
        connection.set_receive_callback(self.on_receive)
        self.connections.append(connection)
        logger.info("Server accepted connection from %s", peer_address)

    def on_receive(self, connection: Connection, data: bytes, from_address: Optional[str] = None) -> None:
        """Count a message and reply with the running count."""
        self.messages_received += 1
        text = data.decode("utf-8", errors="replace")
        now = self.clock.now
        logger.info(
            "Server received message %d at time %.6fs: %s",
            self.messages_received, now, text,
            extra={
                "role": "server",
                "node_id": self.node_id,
                "sequence": self.messages_received,
                "timestamp": now,
                "payload": text,
            },
        )

        response = f"{self.response}{self.messages_received}"
        try:
            connection.send(response.encode("utf-8"))
        except TransportError as error:
            logger.error("Server %d failed to reply on %s: %s", self.node_id, connection, error)
            connection.close()
            if connection in self.connections:
                self.connections.remove(connection)
            return
        self.replies_sent += 1
        logger.info("Server sent response: %s", response)

    def stop(self) -> None:
        """Close the listener and every accepted connection. Idempotent."""
        if self.listener is not None:
            self.listener.close()
            self.listener = None
        for connection in self.connections:
            connection.close()
        self.connections.clear()
        self.state = ServerState.STOPPED

    def __repr__(self) -> str:
        return f"Server(node={self.node_id}, port={self.port}, {self.state.name})"
