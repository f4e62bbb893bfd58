"""Interfaces between endpoint applications and the simulation host."""

from typing import Protocol, runtime_checkable

from enterprise_sim.core.sockets import AcceptCallback, Connection, Listener


@runtime_checkable
class Application(Protocol):
    """Anything the host can start and stop at scheduled times."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


class Transport(Protocol):
    """Opens connections and listening sockets on behalf of a node."""

    def connect(self, node_id: int, peer_address: str, peer_port: int) -> Connection: ...

    def listen(self, node_id: int, port: int, on_accept: AcceptCallback) -> Listener: ...
