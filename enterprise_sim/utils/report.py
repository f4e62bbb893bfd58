"""Report writers for the enterprise simulation.

The detailed report is rewritten on every run with one block per flow; the
summary report is appended with one block per run. Latency-like values are
written in milliseconds, ratios in percent, and undefined metrics as
"undefined".
"""

import json
import os
from dataclasses import asdict
from typing import Any, Dict, List

from enterprise_sim.utils.metrics import FlowSummary, NetworkMetrics, is_undefined

UNDEFINED = "undefined"


def format_value(value: float, scale: float = 1.0) -> str:
    """Render a metric, scaled, or "undefined" for NaN."""
    if is_undefined(value):
        return UNDEFINED
    return f"{value * scale:g}"


def _ensure_parent(filename: str) -> None:
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)


def write_detailed_report(flows: List[FlowSummary], filename: str) -> None:
    """Write one block per flow, replacing any previous report.

    Args:
        flows: Flow summaries in flow iteration order.
        filename: Output filename.
    """
    _ensure_parent(filename)
    with open(filename, "w") as f:
        f.write("Detailed Enhanced Network Statistics\n")
        f.write("===================================\n\n")
        for flow in flows:
            f.write(f"Flow {flow.flow_id}\n")
            f.write(f"Source: {flow.five_tuple.source_address}\n")
            f.write(f"Destination: {flow.five_tuple.destination_address}\n")
            f.write(f"Throughput: {format_value(flow.throughput)} KBytes/s\n")
            f.write(f"Latency: {format_value(flow.latency, 1000)} ms\n")
            f.write(f"RTT: {format_value(flow.rtt, 1000)} ms\n")
            f.write(f"Lost Packets: {flow.lost_packets}\n")
            f.write(f"Received Packets: {flow.rx_packets}\n")
            f.write(f"Control Packets: {flow.control_packets}\n")
            f.write("---------------------------\n\n")


def write_summary_report(
    metrics: NetworkMetrics, simulation_time: float, filename: str
) -> None:
    """Append one metrics block to the cumulative summary.

    Args:
        metrics: Aggregate metrics of the run.
        simulation_time: Run duration in seconds.
        filename: Output filename.
    """
    _ensure_parent(filename)
    with open(filename, "a") as f:
        f.write("\n=== Enhanced Network Statistics ===\n")
        f.write(f"Average Throughput: {format_value(metrics.avg_throughput)} KBytes/s\n")
        f.write(f"Average Latency: {format_value(metrics.avg_latency, 1000)} ms\n")
        f.write(f"Jitter: {format_value(metrics.jitter, 1000)} ms\n")
        f.write(f"Bandwidth Utilization: {format_value(metrics.bandwidth_utilization)}%\n")
        f.write(f"Average RTT: {format_value(metrics.rtt, 1000)} ms\n")
        f.write(f"Packet Loss Ratio: {format_value(metrics.packet_loss_ratio)}%\n")
        f.write(f"Total Received Packets: {metrics.total_rx_packets}\n")
        f.write(f"Total Lost Packets: {metrics.total_lost_packets}\n")
        f.write(f"Control Packets: {metrics.control_packets}\n")
        f.write(f"Network Overhead: {format_value(metrics.network_overhead)}%\n")
        f.write(
            "Average Content Retrieval Time: "
            f"{format_value(metrics.content_retrieval_time, 1000)} ms\n"
        )
        f.write(f"Simulation Time: {format_value(simulation_time)} seconds\n")
        f.write("================================\n")


def metrics_to_dict(metrics: NetworkMetrics, simulation_time: float) -> Dict[str, Any]:
    """Convert metrics to JSON-ready values, with None for undefined ones."""
    serializable_metrics: Dict[str, Any] = {}
    for key, value in asdict(metrics).items():
        if isinstance(value, float) and is_undefined(value):
            serializable_metrics[key] = None
        else:
            serializable_metrics[key] = value
    loss = metrics.packet_loss_ratio
    serializable_metrics["packet_loss_ratio"] = None if is_undefined(loss) else loss
    serializable_metrics["simulation_time"] = simulation_time
    return serializable_metrics


def save_metrics_to_json(
    metrics: NetworkMetrics, simulation_time: float, filename: str = "results/metrics.json"
) -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Aggregate metrics of the run.
        simulation_time: Run duration in seconds.
        filename: Output filename.
    """
    _ensure_parent(filename)
    with open(filename, "w") as f:
        json.dump(metrics_to_dict(metrics, simulation_time), f, indent=2)
