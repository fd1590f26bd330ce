"""
Network ranger: turns the host's IPv4 interfaces into address ranges to probe.
"""
import ipaddress
import logging
import socket
from typing import Dict, Iterable, List, Optional

import psutil

from shared.models import ScanRange

logger = logging.getLogger(__name__)


def range_for_interface(address: str, netmask: str) -> ScanRange:
    """First and last usable host octet of the subnet ``address/netmask``.

    Only the last octet varies; the first three octets come from the
    network address.
    """
    network = ipaddress.IPv4Interface(f"{address}/{netmask}").network
    if network.num_addresses > 2:
        first = network.network_address + 1
        last = network.broadcast_address - 1
    else:
        first = network.network_address
        last = network.broadcast_address

    base_address = ".".join(str(network.network_address).split(".")[:3])
    return ScanRange(
        base_address=base_address,
        first_octet=int(str(first).split(".")[-1]),
        last_octet=int(str(last).split(".")[-1]),
    )


def _accepted(name: str, address: str, address_prefix: Optional[str],
              interface_names: Iterable[str]) -> bool:
    if ipaddress.IPv4Address(address).is_loopback:
        return False
    if not address_prefix:
        return True
    return address.startswith(address_prefix) or name in interface_names


def local_scan_ranges(
    address_prefix: Optional[str] = None,
    interface_names: Iterable[str] = (),
    interfaces: Optional[Dict[str, list]] = None,
) -> List[ScanRange]:
    """Scan ranges for every non-loopback IPv4 interface.

    Args:
        address_prefix: When set, keep only interfaces whose address starts
            with it (e.g. ``"192.168.1."``), plus any named in ``interface_names``.
        interface_names: Interface names always accepted when filtering.
        interfaces: ``psutil.net_if_addrs()``-shaped mapping; read from the
            host when omitted.
    """
    if interfaces is None:
        interfaces = psutil.net_if_addrs()
    interface_names = set(interface_names)

    ranges: List[ScanRange] = []
    for name, addresses in interfaces.items():
        for addr in addresses:
            if addr.family != socket.AF_INET or not addr.netmask:
                continue
            if not _accepted(name, addr.address, address_prefix, interface_names):
                continue

            scan_range = range_for_interface(addr.address, addr.netmask)
            if scan_range not in ranges:
                logger.debug(f"Interface {name} ({addr.address}/{addr.netmask}) -> {scan_range}")
                ranges.append(scan_range)

    if not ranges:
        logger.info("No IPv4 interfaces matched for scanning")
    return ranges
