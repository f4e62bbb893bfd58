"""Enterprise client/server simulation.

Builds the enterprise topology, installs the server and client, runs the
SimPy environment and turns the flow monitor's counters into reports.
"""

import logging
import os
from dataclasses import dataclass
from typing import List

import simpy

from enterprise_sim.apps.client import Client
from enterprise_sim.apps.server import Server
from enterprise_sim.config import SimulationConfig
from enterprise_sim.core.simulator import NetworkSimulator
from enterprise_sim.core.sockets import SocketAddress
from enterprise_sim.core.topology import build_enterprise_topology
from enterprise_sim.utils.metrics import FlowSummary, NetworkMetrics, aggregate_flow_stats
from enterprise_sim.utils.report import write_detailed_report, write_summary_report

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of one run.

    Attributes:
        simulator: The simulator after the run.
        client: The installed client.
        server: The installed server.
        metrics: Aggregate metrics for flows to the server.
        flows: Per-flow summaries for flows to the server.
        simulation_time: Simulated time at which the run stopped.
    """

    simulator: NetworkSimulator
    client: Client
    server: Server
    metrics: NetworkMetrics
    flows: List[FlowSummary]
    simulation_time: float


def create_simulator(config: SimulationConfig) -> NetworkSimulator:
    """Create a simulator populated with the enterprise topology."""
    env = simpy.Environment()
    simulator = NetworkSimulator(
        env,
        seed=config.seed,
        header_size=config.header_size,
        loss_rate=config.loss_rate,
    )
    build_enterprise_topology(simulator, config.data_rate, config.link_delay)
    return simulator


def run_simulation(config: SimulationConfig, write_reports: bool = True) -> SimulationResult:
    """Run the client/server exchange and aggregate flows to the server.

    Args:
        config: Run parameters.
        write_reports: Whether to write the detailed and summary reports.

    Returns:
        The simulation result.
    """
    simulator = create_simulator(config)
    monitor = simulator.enable_flow_monitor()

    server_address = simulator.interface_address(config.server_node, config.server_neighbour)
    server = Server(
        config.server_node, simulator, simulator.scheduler, port=config.server_port
    )
    simulator.install_application(server, config.server_start, config.server_stop)

    client = Client(
        config.client_node,
        simulator,
        simulator.scheduler,
        peer=SocketAddress(server_address, config.server_port),
        interval=config.send_interval,
    )
    simulator.install_application(client, config.client_start, config.client_stop)

    logger.debug(
        "Server on node %d at %s:%d, client on node %d",
        config.server_node, server_address, config.server_port, config.client_node,
    )

    simulation_time = simulator.run(config.duration, config.max_packet_delay)

    metrics, flows = aggregate_flow_stats(
        monitor.get_flow_stats(),
        monitor.classifier.find_flow,
        server_address,
        simulation_time,
        config.nominal_capacity_mbps,
    )

    if write_reports:
        write_detailed_report(flows, os.path.join(config.output_dir, config.detailed_report))
        write_summary_report(
            metrics, simulation_time, os.path.join(config.output_dir, config.summary_report)
        )

    return SimulationResult(simulator, client, server, metrics, flows, simulation_time)
