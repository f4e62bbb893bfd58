import logging
from typing import List, Optional

import pytest
import simpy

from enterprise_sim.core.errors import ConnectionRefused, TransportError
from enterprise_sim.core.flow_monitor import FiveTuple, RawFlowRecord
from enterprise_sim.core.scheduler import SimPyScheduler
from enterprise_sim.core.sockets import Listener


class FakeConnection:
    """In-memory connection recording everything sent on it."""

    def __init__(self, peer_address: str = "10.0.0.1", fail: bool = False):
        self.peer_address = peer_address
        self.fail = fail
        self.sent: List[bytes] = []
        self.closed = False
        self.close_calls = 0
        self.callback = None

    def set_receive_callback(self, callback) -> None:
        self.callback = callback

    def send(self, data: bytes) -> int:
        if self.closed or self.fail:
            raise TransportError("connection unavailable")
        self.sent.append(data)
        return len(data)

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    def push(self, data: bytes) -> None:
        """Simulate inbound bytes from the peer."""
        self.callback(self, data, self.peer_address)


class FakeTransport:
    """Transport handing out FakeConnections."""

    def __init__(self, refuse: bool = False, fail_sends: bool = False):
        self.refuse = refuse
        self.fail_sends = fail_sends
        self.connections: List[FakeConnection] = []
        self.listener: Optional[Listener] = None

    def connect(self, node_id: int, peer_address: str, peer_port: int) -> FakeConnection:
        if self.refuse:
            raise ConnectionRefused(f"Nothing listening on {peer_address}:{peer_port}")
        connection = FakeConnection(peer_address, fail=self.fail_sends)
        self.connections.append(connection)
        return connection

    def listen(self, node_id: int, port: int, on_accept) -> Listener:
        self.listener = Listener(node_id, port, on_accept)
        return self.listener


@pytest.fixture
def env():
    return simpy.Environment()


@pytest.fixture
def scheduler(env):
    return SimPyScheduler(env)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def info_logs(caplog):
    caplog.set_level(logging.INFO, logger="enterprise_sim")
    return caplog


def make_record(
    flow_id: int,
    rx_packets: int,
    delay_sum: float,
    rx_bytes: int = 1000,
    tx_bytes: int = 500,
    lost_packets: int = 0,
    times_forwarded: int = 0,
    first_tx: float = 0.0,
    last_rx: float = 1.0,
) -> RawFlowRecord:
    return RawFlowRecord(
        flow_id=flow_id,
        tx_bytes=tx_bytes,
        tx_packets=rx_packets + lost_packets,
        rx_bytes=rx_bytes,
        rx_packets=rx_packets,
        lost_packets=lost_packets,
        delay_sum=delay_sum,
        time_first_tx_packet=first_tx,
        time_last_rx_packet=last_rx,
        times_forwarded=times_forwarded,
    )


def flow_tuple(destination: str, source: str = "192.168.80.2", port: int = 49153) -> FiveTuple:
    return FiveTuple(source, destination, 6, port, 8080)
