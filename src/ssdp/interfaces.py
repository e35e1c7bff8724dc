"""
Local address enumeration and classification
"""

import socket
import logging
import ipaddress
from typing import List, Iterable

import psutil

from .models import AddressType

logger = logging.getLogger(__name__)

_UNIQUE_LOCAL = ipaddress.IPv6Network('fc00::/7')


def classify_address(address: str) -> AddressType:
    """Map a local address (IPv6 may carry a %scope suffix) to its AddressType"""
    try:
        ip = ipaddress.ip_address(address.split('%', 1)[0])
    except ValueError:
        return AddressType.UNKNOWN

    if ip.version == 4:
        return AddressType.IPV4
    if ip.is_link_local:
        return AddressType.IPV6_LINK_LOCAL
    if ip.is_site_local or ip in _UNIQUE_LOCAL:
        return AddressType.IPV6_SITE_LOCAL
    return AddressType.UNKNOWN


class AddressProvider:
    """Supplies the local addresses a search fans out to"""

    def list_local_addresses(self) -> List[str]:
        raise NotImplementedError

    def classify(self, address: str) -> AddressType:
        return classify_address(address)


class StaticAddressProvider(AddressProvider):
    """Fixed address list, used when the configuration names interfaces explicitly"""

    def __init__(self, addresses: Iterable[str]):
        self.addresses = list(addresses)

    def list_local_addresses(self) -> List[str]:
        return list(self.addresses)


class PsutilAddressProvider(AddressProvider):
    """Enumerates addresses of the interfaces that are up"""

    def __init__(self, include_loopback: bool = False):
        self.include_loopback = include_loopback

    def list_local_addresses(self) -> List[str]:
        addresses = []
        stats = psutil.net_if_stats()

        for iface, addrs in psutil.net_if_addrs().items():
            iface_stats = stats.get(iface)
            if iface_stats is not None and not iface_stats.isup:
                logger.debug(f"Skipping interface {iface}: down")
                continue

            for addr in addrs:
                if addr.family not in (socket.AF_INET, socket.AF_INET6):
                    continue
                address = addr.address
                try:
                    ip = ipaddress.ip_address(address.split('%', 1)[0])
                except ValueError:
                    continue
                if ip.is_loopback and not self.include_loopback:
                    continue
                # Link-local needs its zone to be bindable
                if ip.version == 6 and ip.is_link_local and '%' not in address:
                    address = f"{address}%{iface}"
                addresses.append(address)

        logger.debug(f"Local addresses: {', '.join(addresses) or 'none'}")
        return addresses
