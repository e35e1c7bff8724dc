"""
SSDP module for UPnP device discovery
"""

from .manager import SsdpDiscovery, upnp_device_urn
from .models import AddressType, Device, DeviceNotification, DiscoveryResult, FailureKind
from .interfaces import AddressProvider, PsutilAddressProvider, StaticAddressProvider, classify_address
from .transport import AsyncioUdpSocket, UdpSocket

__all__ = [
    'SsdpDiscovery', 'upnp_device_urn',
    'AddressType', 'Device', 'DeviceNotification', 'DiscoveryResult', 'FailureKind',
    'AddressProvider', 'PsutilAddressProvider', 'StaticAddressProvider', 'classify_address',
    'AsyncioUdpSocket', 'UdpSocket'
]
