"""Periodic request client.

The client opens one connection to a server and sends a numbered message
every interval until it is stopped. Replies are only logged.
"""

import logging
from typing import Optional

from enterprise_sim.apps.application import Transport
from enterprise_sim.core.enums import ClientState
from enterprise_sim.core.errors import TransportError
from enterprise_sim.core.scheduler import ScheduledEvent, Scheduler
from enterprise_sim.core.sockets import Connection, SocketAddress

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Message from client: Hello Server!"


class Client:
    """Sends numbered messages to a peer at a fixed period.

    Attributes:
        node_id: Node hosting the client.
        peer: Address and port of the server.
        interval: Time between messages in seconds.
        message: Text prefix of every message.
        state: Current life-cycle state.
        messages_sent: Messages handed to the connection so far.
        messages_received: Replies received so far.
        connection: Open connection, or None when not connected.
    """

    def __init__(
        self,
        node_id: int,
        transport: Transport,
        scheduler: Scheduler,
        peer: Optional[SocketAddress] = None,
        interval: float = 1.0,
        message: str = DEFAULT_MESSAGE,
    ):
        """Initialize the client.

        Args:
            node_id: Node hosting the client.
            transport: Opens the outbound connection.
            scheduler: Schedules sends and supplies timestamps.
            peer: Server address; may instead be given to start().
            interval: Time between messages in seconds.
            message: Text prefix of every message.
        """
        if interval <= 0:
            raise ValueError(f"Send interval must be positive, got {interval}")
        self.node_id = node_id
        self.transport = transport
        self.scheduler = scheduler
        self.peer = peer
        self.interval = interval
        self.message = message
        self.state = ClientState.IDLE
        self.messages_sent = 0
        self.messages_received = 0
        self.connection: Optional[Connection] = None
        self._send_event: Optional[ScheduledEvent] = None

    def start(self, peer: Optional[SocketAddress] = None) -> None:
        """Connect to the peer and schedule the first send immediately.

        Args:
            peer: Server address, overriding the one given at construction.
        """
        if self.state is not ClientState.IDLE:
            raise RuntimeError(f"Client {self.node_id} cannot start from {self.state.name}")
        if peer is not None:
            self.peer = peer
        if self.peer is None:
            raise ValueError(f"Client {self.node_id} has no peer address")

        self.state = ClientState.CONNECTING
        try:
            self.connection = self.transport.connect(
                self.node_id, self.peer.address, self.peer.port
            )
        except TransportError as error:
            logger.error("Client %d failed to connect to %s: %s", self.node_id, self.peer, error)
            self.stop()
            return

        self.connection.set_receive_callback(self._handle_read)
        self.state = ClientState.CONNECTED
        self.schedule_next_send(0.0)

    def schedule_next_send(self, interval: Optional[float] = None) -> ScheduledEvent:
        """Arm the single pending send.

        Args:
            interval: Delay before the send; defaults to the client interval.

        Returns:
            Handle of the scheduled send.
        """
        if interval is None:
            interval = self.interval
        if self._send_event is not None:
            self.scheduler.cancel(self._send_event)
        self._send_event = self.scheduler.schedule_after(interval, self.send)
        return self._send_event

    def send(self) -> None:
        """Send the next numbered message and re-arm the timer.

        A transport failure stops the client.
        """
        self._send_event = None
        self.messages_sent += 1
        payload = f"{self.message} [{self.messages_sent}]"
        try:
            if self.connection is None:
                raise TransportError(f"Client {self.node_id} is not connected")
            self.connection.send(payload.encode("utf-8"))
        except TransportError as error:
            logger.error(
                "Client %d failed to send message %d: %s",
                self.node_id, self.messages_sent, error,
            )
            self.stop()
            return

        self.state = ClientState.SENDING
        now = self.scheduler.now
        logger.info(
            "Client %d sent message %d at time %.6fs: %s",
            self.node_id, self.messages_sent, now, payload,
            extra={
                "role": "client",
                "node_id": self.node_id,
                "sequence": self.messages_sent,
                "timestamp": now,
                "payload": payload,
            },
        )
        self.schedule_next_send()

    def on_receive(self, data: bytes) -> None:
        """Log a reply from the server."""
        self.messages_received += 1
        text = data.decode("utf-8", errors="replace")
        now = self.scheduler.now
        logger.info(
            "Client %d received at time %.6fs: %s",
            self.node_id, now, text,
            extra={
                "role": "client",
                "node_id": self.node_id,
                "sequence": self.messages_received,
                "timestamp": now,
                "payload": text,
            },
        )

    def _handle_read(self, connection: Connection, data: bytes, from_address: str) -> None:
        self.on_receive(data)

    def stop(self) -> None:
        """Cancel the pending send and close the connection. Idempotent."""
        if self._send_event is not None:
            self.scheduler.cancel(self._send_event)
            self._send_event = None
        if self.connection is not None:
            self.connection.close()
            self.connection = None
        self.state = ClientState.STOPPED

    def __repr__(self) -> str:
        return f"Client(node={self.node_id}, peer={self.peer}, {self.state.name})"
