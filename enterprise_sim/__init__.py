"""Enterprise network simulation with flow-quality metrics.

The package runs a periodic client/server exchange over a simulated
enterprise topology and reduces per-flow counters into aggregate
network-quality metrics.
"""
