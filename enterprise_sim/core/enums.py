"""Enumerations for the enterprise simulation.

This module defines the endpoint life-cycle states.
"""

from enum import Enum


class ClientState(Enum):
    """Life-cycle of a periodic request client.

    Attributes:
        IDLE: Created, not started.
        CONNECTING: Outbound connection requested.
        CONNECTED: Connection open, no message sent yet.
        SENDING: Periodic send loop is active.
        STOPPED: Stopped; no further sends will fire.
    """

    IDLE = 1
    CONNECTING = 2
    CONNECTED = 3
    SENDING = 4
    STOPPED = 5


class ServerState(Enum):
    """Life-cycle of an acknowledging server.

    Attributes:
        IDLE: Created, not started.
        LISTENING: Bound and accepting connections.
        STOPPED: Listener closed.
    """

    IDLE = 1
    LISTENING = 2
    STOPPED = 3
