#!/usr/bin/env python3
"""Run the enterprise client/server simulation and write its reports."""

import argparse
import logging
import os

from enterprise_sim.config import SimulationConfig
from enterprise_sim.simulation import run_simulation
from enterprise_sim.utils.logger import setup_logger
from enterprise_sim.utils.report import format_value, save_metrics_to_json


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Enterprise Network Simulation")
    parser.add_argument(
        "--duration", type=float, default=10.0, help="Simulation duration in seconds"
    )
    parser.add_argument(
        "--interval", type=float, default=1.0, help="Client send interval in seconds"
    )
    parser.add_argument(
        "--capacity",
        type=float,
        default=100.0,
        help="Nominal link capacity in Mbps for bandwidth utilization",
    )
    parser.add_argument(
        "--loss-rate", type=float, default=0.0, help="Per-hop packet loss probability"
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--output-dir", default=".", help="Directory receiving the report files"
    )
    parser.add_argument("--json", action="store_true", help="Also save metrics as JSON")
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    parser.add_argument("--verbose", action="store_true", help="Log host debug output")
    return parser.parse_args()


def main() -> None:
    """Main function to run the simulation."""
    args = parse_args()

    config = SimulationConfig(
        duration=args.duration,
        seed=args.seed,
        loss_rate=args.loss_rate,
        send_interval=args.interval,
        nominal_capacity_mbps=args.capacity,
        output_dir=args.output_dir,
        log_file=args.log_file,
        log_level=logging.DEBUG if args.verbose else logging.INFO,
    )
    logger = setup_logger("enterprise_sim", config.log_file, config.log_level)

    result = run_simulation(config)
    metrics = result.metrics

    if args.json:
        save_metrics_to_json(
            metrics,
            result.simulation_time,
            os.path.join(config.output_dir, "results", "metrics.json"),
        )

    logger.info("Flows to server:   %d", metrics.flow_count)
    logger.info("Average Latency:   %s ms", format_value(metrics.avg_latency, 1000))
    logger.info("Jitter:            %s ms", format_value(metrics.jitter, 1000))
    logger.info("Network Overhead:  %s%%", format_value(metrics.network_overhead))
    logger.info("Simulation complete. Reports saved to '%s'.", config.output_dir)


if __name__ == "__main__":
    main()
