import pytest
import simpy

from enterprise_sim.apps.application import Application
from enterprise_sim.apps.server import Server
from enterprise_sim.core.enums import ServerState
from enterprise_sim.core.errors import ConnectionRefused, TopologyError, TransportError
from enterprise_sim.core.simulator import NetworkSimulator
from enterprise_sim.core.topology import AddressAllocator, NUM_NODES, build_enterprise_topology

RATE = 1e6
DELAY = 0.002
HEADER = 40


@pytest.fixture
def simulator():
    simulator = NetworkSimulator(simpy.Environment(), header_size=HEADER)
    build_enterprise_topology(simulator, RATE, DELAY)
    return simulator


def hop_time(payload_size: int) -> float:
    return (payload_size + HEADER) * 8 / RATE + DELAY


def test_enterprise_topology(simulator):
    assert len(simulator.nodes) == NUM_NODES
    # 15 department links plus 9 links per multilayer switch
    assert simulator.graph.number_of_edges() == 33
    assert simulator.nodes[7].description == "Multilayer1"
    assert simulator.interface_address(6, 4) == "192.168.20.4"
    assert simulator.interface_address(4, 6) == "192.168.20.3"
    assert simulator.interface_address(22, 21) == "192.168.80.2"
    assert simulator.interface_address(7, 23) == "192.168.100.17"
    assert simulator.resolve_address("192.168.20.4") == 6


def test_unknown_address(simulator):
    with pytest.raises(TopologyError):
        simulator.resolve_address("10.9.9.9")
    with pytest.raises(TopologyError):
        simulator.interface_address(22, 6)


def test_duplicate_node_and_missing_link_endpoint(simulator):
    with pytest.raises(TopologyError):
        simulator.add_node(3)
    with pytest.raises(TopologyError):
        simulator.add_link(1, 99, RATE, DELAY, ("10.0.0.1", "10.0.0.2"))


def test_address_allocator():
    allocator = AddressAllocator("10.1.1.0/30")
    assert allocator.assign() == ("10.1.1.1", "10.1.1.2")
    with pytest.raises(TopologyError):
        allocator.next_address()


def test_connect_requires_listener(simulator):
    with pytest.raises(ConnectionRefused):
        simulator.connect(22, "192.168.20.4", 8080)
    with pytest.raises(ConnectionRefused):
        simulator.connect(22, "10.9.9.9", 8080)


def test_bytes_cross_the_network(simulator):
    accepted, received = [], []

    def on_accept(connection, peer_address):
        accepted.append(peer_address)
        connection.set_receive_callback(
            lambda conn, data, source: received.append((simulator.env.now, data, source))
        )

    simulator.listen(6, 8080, on_accept)
    connection = simulator.connect(22, "192.168.20.4", 8080)
    assert accepted == ["192.168.80.2"]
    assert connection.local_address == "192.168.80.2"
    assert connection.local_port == 49153

    connection.send(b"hello")
    simulator.env.run()

    # 22 -> 21 -> (7 or 25) -> 4 -> 6
    assert len(received) == 1
    arrival, data, source = received[0]
    assert data == b"hello"
    assert source == "192.168.80.2"
    assert arrival == pytest.approx(4 * hop_time(5))
    packet = simulator.completed_packets[0]
    assert packet.times_forwarded == 3
    assert packet.get_total_delay() == pytest.approx(arrival)


def test_flow_monitor_counts_each_direction(simulator):
    monitor = simulator.enable_flow_monitor()

    def on_accept(connection, peer_address):
        connection.set_receive_callback(lambda conn, data, source: conn.send(b"ack"))

    simulator.listen(6, 8080, on_accept)
    connection = simulator.connect(22, "192.168.20.4", 8080)
    connection.send(b"ping")
    simulator.env.run()

    stats = monitor.get_flow_stats()
    assert list(stats) == [1, 2]
    request, reply = stats[1], stats[2]
    assert monitor.classifier.find_flow(1).destination_address == "192.168.20.4"
    assert monitor.classifier.find_flow(2).destination_address == "192.168.80.2"
    assert request.tx_packets == request.rx_packets == 1
    assert request.tx_bytes == request.rx_bytes == 4 + HEADER
    assert request.delay_sum == pytest.approx(4 * hop_time(4))
    assert request.times_forwarded == 3
    assert request.time_first_tx_packet == 0
    assert reply.rx_packets == 1
    assert reply.time_first_tx_packet == pytest.approx(request.time_last_rx_packet)


def test_packets_to_closed_socket_are_lost(simulator):
    monitor = simulator.enable_flow_monitor()
    listener_conns = []
    simulator.listen(6, 8080, lambda conn, peer: listener_conns.append(conn))
    connection = simulator.connect(22, "192.168.20.4", 8080)

    # closed while the segment is still in flight
    connection.send(b"late")
    listener_conns[0].close()
    simulator.env.run()

    record = monitor.get_flow_stats()[1]
    assert record.rx_packets == 0
    assert record.lost_packets == 1
    assert simulator.dropped_packets[0][1] == "Socket closed"


def test_send_on_closed_connection_fails(simulator):
    simulator.listen(6, 8080, lambda conn, peer: None)
    connection = simulator.connect(22, "192.168.20.4", 8080)
    connection.close()
    connection.close()
    with pytest.raises(TransportError):
        connection.send(b"x")


def test_closing_one_end_fails_sends_on_the_other(simulator):
    accepted = []
    simulator.listen(6, 8080, lambda conn, peer: accepted.append(conn))
    connection = simulator.connect(22, "192.168.20.4", 8080)
    remote = accepted[0]
    assert connection.peer is remote and remote.peer is connection

    remote.close()

    assert connection.peer_closed
    assert not connection.closed
    with pytest.raises(TransportError):
        connection.send(b"x")
    simulator.env.run()
    assert simulator.completed_packets == []
    assert simulator.dropped_packets == []


def test_stopped_server_refuses_new_connections(simulator):
    server = Server(6, simulator, simulator.scheduler, port=8080)
    server.start()
    first = simulator.connect(22, "192.168.20.4", 8080)
    listener = simulator.nodes[6].listeners[8080]
    assert len(server.connections) == 1

    server.stop()

    assert server.connections == []
    assert first.peer_closed
    with pytest.raises(ConnectionRefused):
        simulator.connect(22, "192.168.20.4", 8080)
    with pytest.raises(TransportError):
        listener.accept(first)


def test_installed_applications_start_and_stop_on_time(simulator):
    server = Server(6, simulator, simulator.scheduler, port=8080)
    assert isinstance(server, Application)
    simulator.install_application(server, 1.0, 3.0)

    simulator.env.run(until=2.0)
    assert server.state is ServerState.LISTENING
    simulator.env.run(until=4.0)
    assert server.state is ServerState.STOPPED
    with pytest.raises(ValueError):
        simulator.install_application(server, 5.0, 4.0)


def test_port_in_use(simulator):
    simulator.listen(6, 8080, lambda conn, peer: None)
    with pytest.raises(TopologyError):
        simulator.listen(6, 8080, lambda conn, peer: None)


def test_in_flight_packets_become_lost_after_max_delay(simulator):
    monitor = simulator.enable_flow_monitor()
    simulator.listen(6, 8080, lambda conn, peer: None)
    connection = simulator.connect(22, "192.168.20.4", 8080)
    connection.send(b"slow")

    simulator.env.run(until=0.001)
    monitor.check_for_lost_packets(simulator.env.now, max_delay=1.0)
    assert monitor.get_flow_stats()[1].lost_packets == 0
    monitor.check_for_lost_packets(5.0, max_delay=1.0)
    assert monitor.get_flow_stats()[1].lost_packets == 1


def test_unknown_hook(simulator):
    with pytest.raises(ValueError):
        simulator.register_hook("nope", lambda: None)
    assert sorted(simulator.hooks) == ["packet_arrived", "packet_dropped", "packet_sent"]


def test_lossy_links_drop_everything():
    simulator = NetworkSimulator(simpy.Environment(), header_size=HEADER, loss_rate=1.0)
    build_enterprise_topology(simulator, RATE, DELAY)
    monitor = simulator.enable_flow_monitor()
    simulator.listen(6, 8080, lambda conn, peer: None)
    connection = simulator.connect(22, "192.168.20.4", 8080)

    for _ in range(3):
        connection.send(b"x")
    simulator.env.run()

    record = monitor.get_flow_stats()[1]
    assert record.rx_packets == 0
    assert record.lost_packets == 3
    assert {reason for _, reason in simulator.dropped_packets} == {"Link loss"}


def test_loss_rate_is_validated():
    with pytest.raises(ValueError):
        NetworkSimulator(simpy.Environment(), loss_rate=1.5)
