"""
Search response parsing into DeviceNotification records
"""

import re
import logging
from dataclasses import fields
from typing import Dict, Iterable, List

from .models import DeviceNotification
from .errors import MalformedNotificationError

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'\r\n|\n')


def parse_headers(response: str) -> Dict[str, str]:
    """
    Split a response into a lower-cased header map
    Only the first ':' separates name from value; a repeated header keeps its last value
    """
    headers = {}
    for line in _LINE_BREAK.split(response):
        if not line or ':' not in line:
            continue
        name, value = line.split(':', 1)
        headers[name.strip().lower()] = value.strip()
    return headers


def bind_notification(headers: Dict[str, str]) -> DeviceNotification:
    """Bind a header map onto a DeviceNotification through its header table"""
    values = {}
    for f in fields(DeviceNotification):
        header = f.metadata.get('header')
        if header is None:
            continue
        if header in headers:
            values[f.name] = headers[header]
        elif f.metadata.get('required'):
            raise MalformedNotificationError(header)
    return DeviceNotification(headers=dict(headers), **values)


def parse_response(response: str) -> DeviceNotification:
    return bind_notification(parse_headers(response))


def parse_notifications(responses: Iterable[str]) -> List[DeviceNotification]:
    """Parse raw responses, skipping malformed ones, deduplicated by USN (first wins)"""
    notifications = []
    seen_usns = set()
    skipped = 0

    for response in responses:
        try:
            notification = parse_response(response)
        except MalformedNotificationError as e:
            skipped += 1
            logger.debug(f"Skipping search response: {e}")
            continue

        if notification.usn in seen_usns:
            continue
        seen_usns.add(notification.usn)
        notifications.append(notification)

    if skipped:
        logger.info(f"Skipped {skipped} malformed search responses")
    return notifications
