import math

import pytest

from conftest import flow_tuple, make_record
from enterprise_sim.utils.metrics import aggregate_flow_stats

SERVER = "192.168.20.4"
OTHER = "192.168.80.2"


def aggregate(stats, tuples, simulation_time=10.0):
    return aggregate_flow_stats(stats, tuples.__getitem__, SERVER, simulation_time)


def test_two_flow_scenario():
    stats = {
        1: make_record(1, 10, 1.0, rx_bytes=1000, tx_bytes=500, lost_packets=0,
                       times_forwarded=1, first_tx=0.0, last_rx=2.0),
        2: make_record(2, 20, 3.0, rx_bytes=2000, tx_bytes=500, lost_packets=2,
                       times_forwarded=1, first_tx=1.0, last_rx=5.0),
    }
    tuples = {1: flow_tuple(SERVER, port=49153), 2: flow_tuple(SERVER, port=49154)}

    metrics, flows = aggregate(stats, tuples)

    assert [f.latency for f in flows] == pytest.approx([0.1, 0.15])
    assert metrics.packet_delays == pytest.approx([0.1, 0.15])
    assert metrics.avg_latency == pytest.approx(0.125)
    assert metrics.rtt == pytest.approx(0.25)
    assert metrics.content_retrieval_time == metrics.avg_latency
    assert metrics.total_lost_packets == 2
    assert metrics.total_rx_packets == 30
    assert metrics.control_packets == 2
    assert metrics.network_overhead == pytest.approx(6.25)
    assert metrics.jitter == pytest.approx(0.05)
    # (1500 / 2 + 2500 / 4) / 1000 / 2 flows
    assert metrics.avg_throughput == pytest.approx(0.6875)
    assert metrics.bandwidth_utilization == pytest.approx(3000 * 8 / 10.0 / 100e6 * 100)
    assert metrics.packet_loss_ratio == pytest.approx(2 / 32 * 100)
    assert metrics.flow_count == 2


def test_no_matching_flows_leaves_averages_undefined():
    stats = {1: make_record(1, 10, 1.0)}
    tuples = {1: flow_tuple(OTHER)}

    metrics, flows = aggregate(stats, tuples)

    assert flows == []
    assert metrics.flow_count == 0
    for value in (
        metrics.avg_throughput,
        metrics.avg_latency,
        metrics.rtt,
        metrics.content_retrieval_time,
        metrics.network_overhead,
    ):
        assert math.isnan(value)
    assert metrics.jitter == 0
    assert metrics.total_rx_packets == 0


def test_non_matching_flows_do_not_contribute():
    stats = {
        1: make_record(1, 10, 1.0, lost_packets=5, times_forwarded=3),
        2: make_record(2, 4, 0.4, lost_packets=1, times_forwarded=2),
    }
    tuples = {1: flow_tuple(OTHER, source=SERVER), 2: flow_tuple(SERVER)}

    metrics, flows = aggregate(stats, tuples)

    assert [f.flow_id for f in flows] == [2]
    assert metrics.total_rx_packets == 4
    assert metrics.total_lost_packets == 1
    assert metrics.control_packets == 2


def test_flows_without_received_packets_are_excluded():
    stats = {
        1: make_record(1, 0, 0.0, lost_packets=7, times_forwarded=0, last_rx=None),
        2: make_record(2, 5, 0.5),
    }
    tuples = {1: flow_tuple(SERVER, port=1), 2: flow_tuple(SERVER, port=2)}

    metrics, flows = aggregate(stats, tuples)

    assert [f.counted for f in flows] == [False, True]
    assert math.isnan(flows[0].latency)
    assert metrics.flow_count == 1
    assert metrics.total_lost_packets == 0
    assert metrics.packet_delays == pytest.approx([0.1])


def test_zero_active_time_makes_throughput_undefined():
    stats = {1: make_record(1, 1, 0.01, first_tx=3.0, last_rx=3.0)}
    tuples = {1: flow_tuple(SERVER)}

    metrics, flows = aggregate(stats, tuples)

    assert math.isnan(flows[0].throughput)
    assert math.isnan(metrics.avg_throughput)
    assert metrics.avg_latency == pytest.approx(0.01)


def test_totals_ignore_order_but_jitter_does_not():
    records = [
        make_record(1, 10, 1.0, lost_packets=1, times_forwarded=3, rx_bytes=100),
        make_record(2, 10, 3.0, lost_packets=2, times_forwarded=3, rx_bytes=200),
        make_record(3, 10, 2.0, lost_packets=3, times_forwarded=3, rx_bytes=300),
    ]
    tuples = {r.flow_id: flow_tuple(SERVER, port=r.flow_id) for r in records}

    forward, _ = aggregate({r.flow_id: r for r in records}, tuples)
    swapped = [records[0], records[2], records[1]]
    reordered, _ = aggregate({r.flow_id: r for r in swapped}, tuples)

    for name in ("total_lost_packets", "total_rx_packets", "control_packets",
                 "bandwidth_utilization", "avg_latency"):
        assert getattr(forward, name) == pytest.approx(getattr(reordered, name))
    assert forward.packet_delays == pytest.approx([0.1, 0.3, 0.2])
    assert reordered.packet_delays == pytest.approx([0.1, 0.2, 0.3])
    assert forward.jitter == pytest.approx(0.15)
    assert reordered.jitter == pytest.approx(0.1)


def test_zero_simulation_time_leaves_utilization_undefined():
    stats = {1: make_record(1, 10, 1.0)}
    tuples = {1: flow_tuple(SERVER)}

    metrics, _ = aggregate(stats, tuples, simulation_time=0.0)

    assert math.isnan(metrics.bandwidth_utilization)
    assert metrics.avg_latency == pytest.approx(0.1)
