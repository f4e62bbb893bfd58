"""Enterprise topology for the simulation.

Twenty-six nodes: nine department switches with their end hosts, and two
multilayer switches (7 and 25) that each connect to every department
switch. Every department and each backbone has its own /24 subnet.
"""

import ipaddress
from typing import Dict, Iterator, List, Tuple

from enterprise_sim.core.errors import TopologyError
from enterprise_sim.core.simulator import NetworkSimulator

NUM_NODES = 26

DEPARTMENT_SWITCHES = [0, 4, 8, 11, 15, 17, 19, 21, 23]

NODE_DESCRIPTIONS: Dict[int, str] = {
    7: "Multilayer1",
    25: "Multilayer2",
    0: "Chaine Info",
    4: "Noyau",
    8: "FibreHome",
    11: "Commutation",
    15: "Ericson",
    17: "Chaine mecanique",
    19: "Finance",
    21: "Infermerie",
    23: "PC",
}

# Subnet -> links in address assignment order
SUBNETS: List[Tuple[str, List[Tuple[int, int]]]] = [
    ("192.168.10.0/24", [(0, 1), (0, 2), (0, 3)]),
    ("192.168.20.0/24", [(4, 5), (4, 6)]),
    ("192.168.30.0/24", [(8, 9), (8, 10)]),
    ("192.168.40.0/24", [(11, 12), (11, 13), (11, 14)]),
    ("192.168.50.0/24", [(15, 16)]),
    ("192.168.60.0/24", [(17, 18)]),
    ("192.168.70.0/24", [(19, 20)]),
    ("192.168.80.0/24", [(21, 22)]),
    ("192.168.90.0/24", [(23, 24)]),
    ("192.168.100.0/24", [(7, switch) for switch in DEPARTMENT_SWITCHES]),
    ("192.168.110.0/24", [(25, switch) for switch in DEPARTMENT_SWITCHES]),
]


class AddressAllocator:
    """Hands out consecutive host addresses from one subnet."""

    def __init__(self, network: str):
        self.network = ipaddress.IPv4Network(network)
        self._hosts: Iterator[ipaddress.IPv4Address] = self.network.hosts()

    def next_address(self) -> str:
        """Return the next unassigned host address.

        Raises:
            TopologyError: If the subnet is exhausted.
        """
        try:
            return str(next(self._hosts))
        except StopIteration:
            raise TopologyError(f"Subnet {self.network} has no free addresses") from None

    def assign(self) -> Tuple[str, str]:
        """Return addresses for both ends of a point-to-point link."""
        return self.next_address(), self.next_address()


def build_enterprise_topology(
    simulator: NetworkSimulator,
    data_rate: float = 1e6,
    link_delay: float = 0.002,
) -> None:
    """Create the enterprise nodes, links and routing tables.

    Args:
        simulator: Simulator to populate.
        data_rate: Capacity of every link in bits per second.
        link_delay: Propagation delay of every link in seconds.
    """
    for node_id in range(NUM_NODES):
        simulator.add_node(node_id, NODE_DESCRIPTIONS.get(node_id, ""))

    for network, links in SUBNETS:
        allocator = AddressAllocator(network)
        for source, destination in links:
            simulator.add_link(
                source, destination, data_rate, link_delay, allocator.assign()
            )

    simulator.compute_shortest_paths()
