"""Metrics utilities for the enterprise simulation.

This module reduces the flow monitor's per-flow counters into aggregate
network-quality metrics: throughput, latency, jitter, RTT, bandwidth
utilization, loss and overhead. A metric whose denominator is zero is
reported as NaN and rendered as "undefined", never as 0.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Sequence, Tuple

import numpy as np

from enterprise_sim.core.flow_monitor import FiveTuple, RawFlowRecord

DEFAULT_LINK_CAPACITY_MBPS = 100.0


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning NaN instead of raising on a zero denominator."""
    if denominator == 0:
        return float(np.nan)
    return numerator / denominator


def is_undefined(value: float) -> bool:
    """True for the NaN marker of an undefined metric."""
    return isinstance(value, float) and bool(np.isnan(value))


def compute_jitter(delays: Sequence[float]) -> float:
    """Mean absolute difference between consecutive delays.

    This is a first-difference estimator over per-flow mean delays, not the
    RFC 3550 interarrival jitter.

    Args:
        delays: Delay samples in iteration order.

    Returns:
        Jitter in the unit of the samples; 0 with fewer than two samples.
    """
    if len(delays) < 2:
        return 0.0
    return float(np.mean(np.abs(np.diff(np.asarray(delays, dtype=float)))))


def compute_bandwidth_utilization(
    bytes_received: int, link_capacity_mbps: float, duration: float
) -> float:
    """Percentage of nominal link capacity consumed.

    Not capped at 100: counting both directions can exceed capacity.

    Args:
        bytes_received: Bytes received over the run.
        link_capacity_mbps: Nominal capacity in Mbps.
        duration: Run duration in seconds.

    Returns:
        Utilization in percent, or NaN if duration or capacity is not positive.
    """
    if duration <= 0 or link_capacity_mbps <= 0:
        return float(np.nan)
    actual_throughput = (bytes_received * 8.0) / duration
    return actual_throughput / (link_capacity_mbps * 1e6) * 100


@dataclass
class FlowSummary:
    """Derived values of one flow to the monitored destination.

    Attributes:
        flow_id: Flow identifier.
        five_tuple: Flow addressing.
        throughput: (rx + tx bytes) / active time / 1000, in KB/s.
        latency: Mean one-way delay in seconds.
        rtt: Twice the latency, in seconds.
        lost_packets: Packets lost.
        rx_packets: Packets received.
        control_packets: Relay count used as the control-traffic proxy.
        counted: Whether the flow contributed to the aggregate totals.
    """

    flow_id: int
    five_tuple: FiveTuple
    throughput: float
    latency: float
    rtt: float
    lost_packets: int
    rx_packets: int
    control_packets: int
    counted: bool = True


@dataclass
class NetworkMetrics:
    """Aggregate metrics of one run.

    Attributes:
        avg_throughput: Mean per-flow throughput.
        avg_latency: Mean per-flow mean delay in seconds.
        jitter: First-difference jitter of packet_delays in seconds.
        bandwidth_utilization: Percent of nominal capacity.
        rtt: Approximate round-trip time in seconds.
        total_lost_packets: Lost packets over counted flows.
        total_rx_packets: Received packets over counted flows.
        control_packets: Relay count over counted flows.
        network_overhead: Percent of traffic that is control packets.
        content_retrieval_time: Mean time to retrieve content in seconds.
        packet_delays: Per-flow mean delays in flow iteration order.
        flow_count: Number of flows counted.
    """

    avg_throughput: float = float("nan")
    avg_latency: float = float("nan")
    jitter: float = 0.0
    bandwidth_utilization: float = float("nan")
    rtt: float = float("nan")
    total_lost_packets: int = 0
    total_rx_packets: int = 0
    control_packets: int = 0
    network_overhead: float = float("nan")
    content_retrieval_time: float = float("nan")
    packet_delays: List[float] = field(default_factory=list)
    flow_count: int = 0

    @property
    def packet_loss_ratio(self) -> float:
        """Lost packets as a percent of received plus lost."""
        return safe_divide(
            self.total_lost_packets, self.total_rx_packets + self.total_lost_packets
        ) * 100


def summarize_flow(flow_id: int, five_tuple: FiveTuple, record: RawFlowRecord) -> FlowSummary:
    """Derive throughput, latency and RTT of one flow.

    Args:
        flow_id: Flow identifier.
        five_tuple: Flow addressing.
        record: Raw counters of the flow.

    Returns:
        The flow summary; derived fields are NaN without received packets.
    """
    if record.rx_packets > 0:
        active_time = record.time_last_rx_packet - record.time_first_tx_packet
        throughput = safe_divide(record.rx_bytes + record.tx_bytes, active_time) / 1000
        latency = record.delay_sum / record.rx_packets
        rtt = latency * 2
    else:
        throughput = latency = rtt = float(np.nan)
    return FlowSummary(
        flow_id=flow_id,
        five_tuple=five_tuple,
        throughput=throughput,
        latency=latency,
        rtt=rtt,
        lost_packets=record.lost_packets,
        rx_packets=record.rx_packets,
        control_packets=record.times_forwarded,
        counted=record.rx_packets > 0,
    )


def aggregate_flow_stats(
    stats: Mapping[int, RawFlowRecord],
    find_flow: Callable[[int], FiveTuple],
    target_address: str,
    simulation_time: float,
    link_capacity_mbps: float = DEFAULT_LINK_CAPACITY_MBPS,
) -> Tuple[NetworkMetrics, List[FlowSummary]]:
    """Reduce per-flow counters to NetworkMetrics.

    Only flows destined to target_address are considered. Among those,
    flows without received packets are listed in the summaries but do not
    contribute to any total.

    Args:
        stats: Raw records keyed by flow ID, in iteration order.
        find_flow: Resolves a flow ID to its five tuple.
        target_address: Destination address of the monitored flows.
        simulation_time: Run duration in seconds.
        link_capacity_mbps: Nominal capacity for bandwidth utilization.

    Returns:
        The aggregate metrics and one summary per matching flow.
    """
    metrics = NetworkMetrics()
    summaries: List[FlowSummary] = []
    total_throughput = 0.0
    total_latency = 0.0
    total_bytes = 0

    for flow_id, record in stats.items():
        five_tuple = find_flow(flow_id)
        if five_tuple.destination_address != target_address:
            continue

        summary = summarize_flow(flow_id, five_tuple, record)
        summaries.append(summary)
        if not summary.counted:
            continue

        metrics.flow_count += 1
        metrics.packet_delays.append(summary.latency)
        total_throughput += summary.throughput
        total_latency += summary.latency
        total_bytes += record.rx_bytes
        metrics.total_lost_packets += record.lost_packets
        metrics.total_rx_packets += record.rx_packets
        metrics.control_packets += record.times_forwarded

    metrics.avg_throughput = safe_divide(total_throughput, metrics.flow_count)
    metrics.avg_latency = safe_divide(total_latency, metrics.flow_count)
    metrics.jitter = compute_jitter(metrics.packet_delays)
    metrics.bandwidth_utilization = compute_bandwidth_utilization(
        total_bytes, link_capacity_mbps, simulation_time
    )
    metrics.rtt = safe_divide(total_latency * 2, metrics.flow_count)
    metrics.network_overhead = safe_divide(
        metrics.control_packets, metrics.total_rx_packets + metrics.control_packets
    ) * 100
    metrics.content_retrieval_time = metrics.avg_latency

    return metrics, summaries
