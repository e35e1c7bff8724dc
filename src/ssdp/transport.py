"""
UDP socket capability used by interface searches
Inbound datagrams are pushed into a queue that the searcher drains after its
reception window
"""

import queue
import socket
import asyncio
import logging
from typing import List, Optional, Tuple

from .models import AddressType
from .errors import SocketError, BindTimeoutError, SocketClosedError

logger = logging.getLogger(__name__)


class UdpSocket:
    """
    Base socket: subclasses implement bind/send_to and call message_received
    for every inbound datagram. close() is idempotent and always safe.
    """

    def __init__(self):
        self._inbox: "queue.SimpleQueue[Tuple[bytes, int]]" = queue.SimpleQueue()
        self.closed = False

    async def bind(self, local_address: str) -> None:
        raise NotImplementedError

    async def send_to(self, address: str, port: int, data: bytes) -> None:
        raise NotImplementedError

    def message_received(self, payload: bytes, length: Optional[int] = None) -> None:
        """Queue an inbound message; dropped once the socket is closed"""
        if self.closed:
            return
        self._inbox.put((payload, len(payload) if length is None else length))

    def drain(self) -> List[Tuple[bytes, int]]:
        messages = []
        while True:
            try:
                messages.append(self._inbox.get_nowait())
            except queue.Empty:
                return messages

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release()

    def _release(self) -> None:
        """Free the underlying resource"""


class _SsdpDatagramProtocol(asyncio.DatagramProtocol):
    def __init__(self, owner: UdpSocket):
        self.owner = owner

    def datagram_received(self, data: bytes, addr: tuple):
        self.owner.message_received(data, len(data))

    def error_received(self, exc: Exception):
        logger.debug(f"UDP error received: {exc}")


class AsyncioUdpSocket(UdpSocket):
    """Datagram endpoint on the running event loop, configured for SSDP multicast"""

    def __init__(self, address_type: AddressType, bind_timeout: float = 2.0, multicast_ttl: int = 2):
        super().__init__()
        self.address_type = address_type
        self.bind_timeout = bind_timeout
        self.multicast_ttl = multicast_ttl
        self.family = socket.AF_INET if address_type == AddressType.IPV4 else socket.AF_INET6
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._scope_id = 0

    async def bind(self, local_address: str) -> None:
        if self.closed:
            raise SocketClosedError("Socket already closed")
        try:
            await asyncio.wait_for(self._open(local_address), timeout=self.bind_timeout)
        except asyncio.TimeoutError:
            raise BindTimeoutError(f"Timed out binding to {local_address}")
        except OSError as e:
            raise SocketError(f"Cannot bind to {local_address}: {e}") from e

    async def _open(self, local_address: str) -> None:
        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(local_address, 0, family=self.family, type=socket.SOCK_DGRAM)
        sockaddr = infos[0][4]

        sock = socket.socket(self.family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if self.family == socket.AF_INET:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(sockaddr[0]))
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.multicast_ttl)
            else:
                self._scope_id = sockaddr[3]
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_IF, self._scope_id)
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_HOPS, self.multicast_ttl)
            sock.bind(sockaddr)
            sock.setblocking(False)
            self._transport, _ = await loop.create_datagram_endpoint(
                lambda: _SsdpDatagramProtocol(self),
                sock=sock
            )
        except BaseException:
            sock.close()
            raise

        if self.closed:
            # Closed while the bind was in flight
            self._release()
            raise SocketClosedError("Socket closed during bind")

    @property
    def local_address(self) -> Optional[tuple]:
        """Bound socket address, None before bind or after close"""
        if self._transport is None:
            return None
        return self._transport.get_extra_info('sockname')

    async def send_to(self, address: str, port: int, data: bytes) -> None:
        if self.closed or self._transport is None or self._transport.is_closing():
            raise SocketClosedError("Send on closed socket")
        if self.family == socket.AF_INET6:
            target = (address, port, 0, self._scope_id)
        else:
            target = (address, port)
        try:
            self._transport.sendto(data, target)
        except OSError as e:
            raise SocketError(f"Send to {address}:{port} failed: {e}") from e

    def _release(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None
