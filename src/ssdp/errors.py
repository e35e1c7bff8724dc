"""
Exceptions raised inside the discovery pipeline
Each carries the FailureKind it is recorded as once absorbed
"""

from .models import FailureKind


class SsdpError(Exception):
    """Base class for discovery errors"""
    failure_kind: FailureKind = FailureKind.SOCKET_ERROR


class SocketError(SsdpError):
    failure_kind = FailureKind.SOCKET_ERROR


class BindTimeoutError(SocketError):
    failure_kind = FailureKind.BIND_TIMEOUT


class SocketClosedError(SocketError):
    failure_kind = FailureKind.SOCKET_CLOSED


class MalformedNotificationError(SsdpError):
    """Search response lacks a header a notification requires"""
    failure_kind = FailureKind.MALFORMED_NOTIFICATION

    def __init__(self, missing_header: str):
        super().__init__(f"Missing required header: {missing_header}")
        self.missing_header = missing_header


class DescriptorError(SsdpError):
    failure_kind = FailureKind.DESCRIPTOR_FETCH


class DescriptorFetchError(DescriptorError):
    failure_kind = FailureKind.DESCRIPTOR_FETCH


class DescriptorParseError(DescriptorError):
    failure_kind = FailureKind.DESCRIPTOR_PARSE
