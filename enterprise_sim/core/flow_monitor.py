"""Per-flow telemetry for the enterprise simulation.

The FlowMonitor listens to the simulator's packet hooks and keeps one
RawFlowRecord per directional flow. Flows are identified by the packet
five tuple and numbered from 1 in the order they are first seen.
"""

from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

from enterprise_sim.core.packet import Packet


class FiveTuple(NamedTuple):
    """Addressing of one directional flow."""

    source_address: str
    destination_address: str
    protocol: int
    source_port: int
    destination_port: int


@dataclass
class RawFlowRecord:
    """Cumulative counters of one directional flow.

    Attributes:
        flow_id: Flow identifier.
        tx_bytes: Bytes sent, headers included.
        tx_packets: Packets sent.
        rx_bytes: Bytes received, headers included.
        rx_packets: Packets received.
        lost_packets: Packets considered lost.
        delay_sum: Sum of end-to-end delays of received packets, in seconds.
        time_first_tx_packet: Time the first packet was sent.
        time_last_rx_packet: Time the last packet was received.
        times_forwarded: Sum of intermediate relays over received packets.
    """

    flow_id: int
    tx_bytes: int = 0
    tx_packets: int = 0
    rx_bytes: int = 0
    rx_packets: int = 0
    lost_packets: int = 0
    delay_sum: float = 0.0
    time_first_tx_packet: Optional[float] = None
    time_last_rx_packet: Optional[float] = None
    times_forwarded: int = 0


class FlowClassifier:
    """Maps five tuples to flow IDs and back."""

    def __init__(self) -> None:
        self._flows: Dict[FiveTuple, int] = {}
        self._tuples: Dict[int, FiveTuple] = {}

    def classify(self, packet: Packet) -> Tuple[int, bool]:
        """Return the packet's flow ID and whether the flow is new."""
        key = FiveTuple(*packet.five_tuple)
        flow_id = self._flows.get(key)
        if flow_id is not None:
            return flow_id, False
        flow_id = len(self._flows) + 1
        self._flows[key] = flow_id
        self._tuples[flow_id] = key
        return flow_id, True

    def find_flow(self, flow_id: int) -> FiveTuple:
        """Resolve a flow ID to its five tuple.

        Raises:
            KeyError: If the flow ID is unknown.
        """
        return self._tuples[flow_id]


class FlowMonitor:
    """Collects RawFlowRecords from packet events.

    Attributes:
        classifier: Flow classifier shared by all records.
    """

    def __init__(self) -> None:
        self.classifier = FlowClassifier()
        self._stats: Dict[int, RawFlowRecord] = {}
        # packet id -> (flow id, send time)
        self._in_flight: Dict[int, Tuple[int, float]] = {}

    def packet_sent(self, packet: Packet, time: float) -> None:
        flow_id, new = self.classifier.classify(packet)
        if new:
            self._stats[flow_id] = RawFlowRecord(flow_id)
        record = self._stats[flow_id]
        if record.time_first_tx_packet is None:
            record.time_first_tx_packet = time
        record.tx_packets += 1
        record.tx_bytes += packet.size
        self._in_flight[packet.id] = (flow_id, time)

    def packet_arrived(self, packet: Packet, node: int, time: float) -> None:
        tracked = self._in_flight.pop(packet.id, None)
        if tracked is None:
            return
        flow_id, sent_at = tracked
        delay = packet.get_total_delay()
        record = self._stats[flow_id]
        record.rx_packets += 1
        record.rx_bytes += packet.size
        record.delay_sum += delay if delay is not None else time - sent_at
        record.time_last_rx_packet = time
        record.times_forwarded += packet.times_forwarded

    def packet_dropped(self, packet: Packet, node: int, reason: str, time: float) -> None:
        tracked = self._in_flight.pop(packet.id, None)
        if tracked is None:
            return
        self._stats[tracked[0]].lost_packets += 1

    def check_for_lost_packets(self, now: float, max_delay: float) -> None:
        """Count packets in flight for longer than max_delay as lost.

        Args:
            now: Current simulation time.
            max_delay: Age in seconds after which a packet is declared lost.
        """
        for packet_id, (flow_id, sent_at) in list(self._in_flight.items()):
            if now - sent_at > max_delay:
                del self._in_flight[packet_id]
                self._stats[flow_id].lost_packets += 1

    def get_flow_stats(self) -> Dict[int, RawFlowRecord]:
        """Return the records keyed by flow ID, in ascending ID order."""
        return dict(sorted(self._stats.items()))
