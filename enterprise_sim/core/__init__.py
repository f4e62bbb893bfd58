"""Core components for the enterprise network simulation.

This module contains the scheduling contract, the packet/link/node model,
the NetworkSimulator host and the flow monitor that collects per-flow
counters.
"""
