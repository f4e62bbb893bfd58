"""Configuration for the enterprise simulation.

All constants of a run live in SimulationConfig so the command line and
tests can override them in one place.
"""

import logging
from dataclasses import dataclass
from typing import Optional


@dataclass
class SimulationConfig:
    """Parameters of one simulation run.

    Attributes:
        duration: Simulated time at which the run stops, in seconds.
        seed: Random seed for reproducibility.
        data_rate: Point-to-point link capacity in bits per second.
        link_delay: Point-to-point propagation delay in seconds.
        header_size: IP/TCP header bytes added to every payload.
        loss_rate: Probability that a link loses a packet on one hop.
        server_node: Node hosting the server.
        server_port: Port the server listens on.
        server_neighbour: Switch at the far end of the server link; the
            client targets the server's address on that link.
        server_start: Server start time in seconds.
        server_stop: Server stop time in seconds.
        client_node: Node hosting the client.
        client_start: Client start time in seconds.
        client_stop: Client stop time in seconds.
        send_interval: Time between client messages in seconds.
        nominal_capacity_mbps: Capacity used for bandwidth utilization.
        max_packet_delay: Age after which in-flight packets count as lost.
        output_dir: Directory receiving the report files.
        detailed_report: File name of the per-flow report (overwritten).
        summary_report: File name of the cumulative summary (appended).
        log_file: Optional log file; None logs to the console only.
        log_level: Logging level.
    """

    duration: float = 10.0
    seed: int = 42
    data_rate: float = 1e6
    link_delay: float = 0.002
    header_size: int = 40
    loss_rate: float = 0.0
    server_node: int = 6
    server_port: int = 8080
    server_neighbour: int = 4
    server_start: float = 1.0
    server_stop: float = 10.0
    client_node: int = 22
    client_start: float = 2.0
    client_stop: float = 10.0
    send_interval: float = 1.0
    nominal_capacity_mbps: float = 100.0
    max_packet_delay: float = 10.0
    output_dir: str = "."
    detailed_report: str = "detailed_enhanced_statistics.txt"
    summary_report: str = "enhanced_network_statistics.txt"
    log_file: Optional[str] = None
    log_level: int = logging.INFO
