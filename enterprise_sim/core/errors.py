"""Exceptions raised by the simulation host and its transport."""


class SimulationError(Exception):
    """Base class for errors raised by the simulation."""


class TopologyError(SimulationError, ValueError):
    """Raised for invalid nodes, links or addresses."""


class TransportError(SimulationError):
    """Raised when a connection cannot carry data."""


class ConnectionRefused(TransportError):
    """Raised when no listener exists at the requested address and port."""
