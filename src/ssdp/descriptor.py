"""
Device description retrieval and parsing
Each notification is resolved independently; one bad device never affects the others
"""

import asyncio
import logging
import xml.etree.ElementTree as ET
from dataclasses import fields
from typing import Awaitable, Callable, List, Optional, Tuple

import aiohttp

from http_helper import create_device_session

from .models import Device, DescriptorResult, DeviceNotification, FailureKind, Icon, Service
from .errors import DescriptorError, DescriptorFetchError, DescriptorParseError

logger = logging.getLogger(__name__)

Fetch = Callable[[str], Awaitable[bytes]]


def _local_name(tag) -> str:
    """Tag name without its {namespace} prefix"""
    if not isinstance(tag, str):
        return ''
    return tag.rsplit('}', 1)[-1]


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _text(element: Optional[ET.Element]) -> Optional[str]:
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _bind(record_type, element: ET.Element, **extra):
    """Bind child element texts onto a dataclass through its tag table"""
    values = {}
    for f in fields(record_type):
        tag = f.metadata.get('tag')
        if tag is None:
            continue
        value = _text(_child(element, tag))
        if value is None and f.metadata.get('required'):
            raise DescriptorParseError(f"<{_local_name(element.tag)}> is missing <{tag}>")
        values[f.name] = value
    values.update(extra)
    return record_type(**values)


def _list_items(element: ET.Element, list_name: str, item_name: str) -> List[ET.Element]:
    container = _child(element, list_name)
    if container is None:
        return []
    return [child for child in container if _local_name(child.tag) == item_name]


def bind_device(element: ET.Element, url_base: Optional[str] = None) -> Device:
    """Build a Device (with icons, services and embedded devices) from a <device> element"""
    return _bind(
        Device,
        element,
        url_base=url_base,
        icons=[_bind(Icon, item) for item in _list_items(element, 'iconList', 'icon')],
        services=[_bind(Service, item) for item in _list_items(element, 'serviceList', 'service')],
        devices=[bind_device(item, url_base) for item in _list_items(element, 'deviceList', 'device')]
    )


def _walk(root: ET.Element, state: dict) -> None:
    # Device subtrees are bound as a whole, so the walk does not descend into them
    pending = [iter(root)]
    while pending:
        child = next(pending[-1], None)
        if child is None:
            pending.pop()
            continue
        name = _local_name(child.tag)
        if name == 'URLBase':
            state['url_base'] = _text(child)
        elif name == 'device':
            state['devices'].append(child)
        else:
            pending.append(iter(child))


def parse_description(document: str, location: str) -> List[Device]:
    """
    Parse a description document into its root device records
    url_base is the document's URLBase when present, else the location it came from
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as e:
        raise DescriptorParseError(f"Invalid XML: {e}") from e

    state = {'url_base': None, 'devices': []}
    if _local_name(root.tag) == 'device':
        state['devices'].append(root)
    else:
        _walk(root, state)

    if not state['devices']:
        raise DescriptorParseError("No <device> element in description")

    url_base = state['url_base'] or location
    return [bind_device(element, url_base) for element in state['devices']]


class DescriptorFetcher:
    """Fetches and parses description documents for notifications"""

    def __init__(self, request_timeout: float = 5, max_concurrent: int = 5, fetch: Optional[Fetch] = None):
        self.request_timeout = request_timeout
        self.max_concurrent = max_concurrent
        self._fetch = fetch

    async def resolve_all(self, notifications: List[DeviceNotification]) -> List[DescriptorResult]:
        """Resolve every notification concurrently; results keep notification order"""
        if not notifications:
            return []

        if self._fetch is not None:
            return await self._resolve_with(self._fetch, notifications)

        async with create_device_session(self.request_timeout) as session:
            async def fetch(url: str) -> bytes:
                return await self._http_get_bytes(session, url)
            return await self._resolve_with(fetch, notifications)

    async def _resolve_with(self, fetch: Fetch, notifications: List[DeviceNotification]) -> List[DescriptorResult]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def resolve_one(notification: DeviceNotification) -> DescriptorResult:
            async with semaphore:
                return await self.resolve(notification, fetch)

        return list(await asyncio.gather(*(resolve_one(n) for n in notifications)))

    async def resolve(self, notification: DeviceNotification, fetch: Fetch) -> DescriptorResult:
        location = notification.location
        try:
            try:
                content = await fetch(location)
            except DescriptorError:
                raise
            except Exception as e:
                raise DescriptorFetchError(f"Fetching {location} failed: {e}") from e

            try:
                document = content.decode('utf-8')
            except UnicodeDecodeError as e:
                raise DescriptorParseError(f"Description is not UTF-8: {e}") from e
            devices = parse_description(document, location)
        except DescriptorError as e:
            logger.debug(f"Skipping {notification.usn}: {e}")
            return DescriptorResult(notification, [], e.failure_kind, str(e))
        except Exception as e:
            # e.g. RecursionError on deeply nested deviceList chains
            logger.warning(f"Skipping {notification.usn}: unusable description at {location}: {e!r}")
            return DescriptorResult(notification, [], FailureKind.DESCRIPTOR_PARSE, str(e) or repr(e))

        for device in devices:
            logger.info(f"[OK] Resolved device: {device.friendly_name} ({device.udn}) at {location}")
        return DescriptorResult(notification, devices)

    async def _http_get_bytes(self, session: aiohttp.ClientSession, url: str) -> bytes:
        """
        Make HTTP GET request and return the raw body
        """
        try:
            async with session.get(url) as response:
                if response.status // 100 != 2:
                    raise DescriptorFetchError(f"HTTP {response.status} for {url}")
                return await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise DescriptorFetchError(f"HTTP GET failed for {url}: {e}") from e

    @staticmethod
    def devices(results: List[DescriptorResult]) -> List[Device]:
        return [device for result in results for device in result.devices]


def summarize(results: List[DescriptorResult]) -> Tuple[int, int]:
    """(resolved, failed) notification counts"""
    failed = sum(1 for r in results if not r.ok)
    return len(results) - failed, failed
