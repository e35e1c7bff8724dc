"""
Main SSDP discovery service
Search -> parse notifications -> fetch descriptions, with per-address and
per-device failures absorbed along the way
"""

import time
import logging
from typing import Dict, List, Optional

from .models import AddressType, Device, DescriptorResult, DeviceNotification, DiscoveryResult, InterfaceSearchResult
from .interfaces import AddressProvider, PsutilAddressProvider, StaticAddressProvider
from .transport import AsyncioUdpSocket, UdpSocket
from .search import SearchOrchestrator, SocketFactory
from .notifications import parse_notifications
from .descriptor import DescriptorFetcher, summarize

logger = logging.getLogger(__name__)

UPNP_DEVICE_URN = "urn:schemas-upnp-org:device:{device_type}:{version}"


def upnp_device_urn(device_type: str, version: int = 1) -> str:
    return UPNP_DEVICE_URN.format(device_type=device_type, version=version)


class SsdpDiscovery:
    """Discovery service for UPnP devices on every local interface"""

    def __init__(
        self,
        config: Optional[Dict] = None,
        address_provider: Optional[AddressProvider] = None,
        socket_factory: Optional[SocketFactory] = None,
        descriptor_fetcher: Optional[DescriptorFetcher] = None
    ):
        config = config or {}
        ssdp_config = config.get('ssdp', {})
        http_config = config.get('http', {})

        self.search_count = ssdp_config.get('search_count', 3)
        self.reception_timeout = ssdp_config.get('reception_timeout_ms', 3000) / 1000.0
        self.mx = ssdp_config.get('mx', 3)
        self.bind_timeout = ssdp_config.get('bind_timeout_seconds', 2)

        if address_provider is None:
            interfaces = ssdp_config.get('interfaces') or []
            if interfaces:
                address_provider = StaticAddressProvider(interfaces)
            else:
                address_provider = PsutilAddressProvider(ssdp_config.get('include_loopback', False))
        self.address_provider = address_provider

        self.socket_factory = socket_factory or self._create_socket

        self.descriptor_fetcher = descriptor_fetcher or DescriptorFetcher(
            request_timeout=http_config.get('request_timeout', 5),
            max_concurrent=http_config.get('max_concurrent_fetches', 5)
        )

        self.orchestrator = SearchOrchestrator(
            self.address_provider,
            self.socket_factory,
            search_count=self.search_count,
            reception_timeout=self.reception_timeout,
            mx=self.mx
        )

    def _create_socket(self, address_type: AddressType) -> UdpSocket:
        return AsyncioUdpSocket(address_type, bind_timeout=self.bind_timeout)

    async def search_interfaces(self, search_target: str) -> List[InterfaceSearchResult]:
        return await self.orchestrator.search_interfaces(search_target)

    async def search_devices(self, device_type: str) -> List[DeviceNotification]:
        """
        Search for a device type (a full ST value) and return unique notifications
        """
        responses = await self.orchestrator.search(device_type)
        notifications = parse_notifications(responses)
        logger.info(f"{len(responses)} responses -> {len(notifications)} unique notifications for {device_type}")
        return notifications

    async def resolve_devices(self, notifications: List[DeviceNotification]) -> List[DescriptorResult]:
        return await self.descriptor_fetcher.resolve_all(notifications)

    async def search_upnp_devices(self, device_type: str, version: int = 1) -> List[Device]:
        """
        Search standard UPnP devices, e.g. ("MediaServer", 1), and resolve their descriptions
        """
        notifications = await self.search_devices(upnp_device_urn(device_type, version))
        results = await self.resolve_devices(notifications)
        return DescriptorFetcher.devices(results)

    async def discover(self, device_type: str, version: int = 1) -> DiscoveryResult:
        """
        Full discovery run with timing and counters
        """
        search_target = upnp_device_urn(device_type, version)
        logger.info(f"[LAUNCH] Starting SSDP discovery for {search_target}...")
        start_time = time.time()

        interface_results = await self.search_interfaces(search_target)
        responses = [response for result in interface_results for response in result.responses]
        for result in interface_results:
            if result.failure is not None:
                logger.debug(f"{result.address}: {result.failure.value}")

        notifications = parse_notifications(responses)
        descriptor_results = await self.resolve_devices(notifications)
        devices = DescriptorFetcher.devices(descriptor_results)
        resolved, failed = summarize(descriptor_results)

        duration = time.time() - start_time
        logger.info(
            f"[PASS] Discovery complete: {len(devices)} devices from {len(notifications)} notifications "
            f"({resolved} resolved, {failed} failed) across {len(interface_results)} addresses in {duration:.1f}s"
        )
        return DiscoveryResult(
            devices=devices,
            notifications=notifications,
            duration_seconds=duration,
            addresses_searched=len(interface_results),
            responses_received=len(responses),
            success_count=resolved
        )
