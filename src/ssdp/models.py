"""
SSDP discovery data structures and models
Header and tag binding tables live in field metadata
"""

from enum import Enum
from typing import Dict, List, Optional
from dataclasses import dataclass, field
from urllib.parse import urljoin

SSDP_PORT = 1900


class AddressType(Enum):
    """Family of a local address, as far as SSDP cares"""
    IPV4 = "ipv4"
    IPV6_LINK_LOCAL = "ipv6_link_local"
    IPV6_SITE_LOCAL = "ipv6_site_local"
    UNKNOWN = "unknown"


MULTICAST_ADDRESSES: Dict[AddressType, str] = {
    AddressType.IPV4: "239.255.255.250",
    AddressType.IPV6_LINK_LOCAL: "FF02::C",
    AddressType.IPV6_SITE_LOCAL: "FF05::C",
}


class FailureKind(Enum):
    """Classification of a failure that was absorbed instead of raised"""
    ADDRESS_UNKNOWN = "address_unknown"
    BIND_TIMEOUT = "bind_timeout"
    SOCKET_CLOSED = "socket_closed"
    SOCKET_ERROR = "socket_error"
    MALFORMED_NOTIFICATION = "malformed_notification"
    DESCRIPTOR_FETCH = "descriptor_fetch"
    DESCRIPTOR_PARSE = "descriptor_parse"


class SearchState(Enum):
    """Lifecycle of a single interface search"""
    IDLE = "idle"
    BOUND = "bound"
    SENDING = "sending"
    LISTENING = "listening"
    CLOSED = "closed"


def _header(name: str, required: bool = False):
    return field(default=None, metadata={'header': name, 'required': required})


def _tag(name: str, required: bool = False):
    return field(default=None, metadata={'tag': name, 'required': required})


@dataclass
class DeviceNotification:
    """Search response from a device, bound from its headers"""
    location: Optional[str] = _header('location', required=True)
    usn: Optional[str] = _header('usn', required=True)
    st: Optional[str] = _header('st')
    server: Optional[str] = _header('server')
    cache_control: Optional[str] = _header('cache-control')
    ext: Optional[str] = _header('ext')
    date: Optional[str] = _header('date')
    boot_id: Optional[str] = _header('bootid.upnp.org')
    config_id: Optional[str] = _header('configid.upnp.org')
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class Icon:
    mime_type: Optional[str] = _tag('mimetype')
    width: Optional[str] = _tag('width')
    height: Optional[str] = _tag('height')
    depth: Optional[str] = _tag('depth')
    url: Optional[str] = _tag('url')


@dataclass
class Service:
    service_type: Optional[str] = _tag('serviceType')
    service_id: Optional[str] = _tag('serviceId')
    scpd_url: Optional[str] = _tag('SCPDURL')
    control_url: Optional[str] = _tag('controlURL')
    event_sub_url: Optional[str] = _tag('eventSubURL')


@dataclass
class Device:
    """Device record bound from a <device> element of a description document"""
    device_type: Optional[str] = _tag('deviceType', required=True)
    friendly_name: Optional[str] = _tag('friendlyName', required=True)
    udn: Optional[str] = _tag('UDN', required=True)
    manufacturer: Optional[str] = _tag('manufacturer')
    manufacturer_url: Optional[str] = _tag('manufacturerURL')
    model_description: Optional[str] = _tag('modelDescription')
    model_name: Optional[str] = _tag('modelName')
    model_number: Optional[str] = _tag('modelNumber')
    model_url: Optional[str] = _tag('modelURL')
    serial_number: Optional[str] = _tag('serialNumber')
    upc: Optional[str] = _tag('UPC')
    presentation_url: Optional[str] = _tag('presentationURL')
    url_base: Optional[str] = None
    icons: List[Icon] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    devices: List['Device'] = field(default_factory=list)

    def resolve_url(self, url: Optional[str]) -> Optional[str]:
        """Resolve a (possibly relative) service or icon URL against url_base"""
        if not url:
            return url
        if not self.url_base:
            return url
        return urljoin(self.url_base, url)


@dataclass
class InterfaceSearchResult:
    """Outcome of searching on one local address"""
    address: str
    address_type: AddressType
    responses: List[str]
    state: SearchState
    failure: Optional[FailureKind] = None


@dataclass
class DescriptorResult:
    """Outcome of resolving one notification into devices"""
    notification: DeviceNotification
    devices: List[Device]
    failure: Optional[FailureKind] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass
class DiscoveryResult:
    """Results from a complete discovery run"""
    devices: List[Device]
    notifications: List[DeviceNotification]
    duration_seconds: float
    addresses_searched: int
    responses_received: int
    success_count: int
