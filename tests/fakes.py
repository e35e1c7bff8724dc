import asyncio
import threading

from ssdp.errors import BindTimeoutError, SocketClosedError
from ssdp.transport import UdpSocket


def ssdp_response(location, usn, st="urn:schemas-upnp-org:device:MediaServer:1", eol="\r\n", extra_headers=()):
    lines = [
        "HTTP/1.1 200 OK",
        "CACHE-CONTROL: max-age=1800",
        "EXT:",
        f"LOCATION: {location}",
        "SERVER: Linux/5.10 UPnP/1.0 TestServer/1.0",
        f"ST: {st}",
        f"USN: {usn}",
    ]
    for name, value in extra_headers:
        lines.append(f"{name}: {value}")
    return (eol.join(lines) + eol + eol).encode('utf-8')


class FakeSocket(UdpSocket):
    """Scripted socket: answers the first send with the replies configured for its address"""

    def __init__(self, network, address_type):
        super().__init__()
        self.network = network
        self.address_type = address_type
        self.local_address = None
        self.sent = []
        self.release_count = 0

    async def bind(self, local_address):
        self.local_address = local_address
        if local_address in self.network.bind_timeouts:
            raise BindTimeoutError(f"bind timeout on {local_address}")

    async def send_to(self, address, port, data):
        if self.closed:
            raise SocketClosedError("closed")
        if self.local_address in self.network.close_on_send:
            self.close()
            raise SocketClosedError("closed while sending")
        self.sent.append((address, port, data))
        if len(self.sent) > 1:
            return

        for payload in self.network.replies.get(self.local_address, []):
            self.message_received(payload)

        delayed = self.network.delayed_replies.get(self.local_address, [])
        if delayed:
            loop = asyncio.get_running_loop()
            for delay, payload in delayed:
                loop.call_later(delay, self.message_received, payload)

        threaded = self.network.threaded_replies.get(self.local_address, [])
        for payload in threaded:
            thread = threading.Thread(target=self.message_received, args=(payload,))
            thread.start()
            thread.join()

    def _release(self):
        self.release_count += 1


class FakeNetwork:
    def __init__(self, replies=None, delayed_replies=None, threaded_replies=None,
                 bind_timeouts=(), close_on_send=()):
        self.replies = replies or {}
        self.delayed_replies = delayed_replies or {}
        self.threaded_replies = threaded_replies or {}
        self.bind_timeouts = set(bind_timeouts)
        self.close_on_send = set(close_on_send)
        self.sockets = []

    def socket_factory(self, address_type):
        sock = FakeSocket(self, address_type)
        self.sockets.append(sock)
        return sock

    def socket_for(self, address):
        return next(s for s in self.sockets if s.local_address == address)


def fetch_from(documents):
    """Fetch callable serving documents from a url -> bytes/exception map"""
    requested = []

    async def fetch(url):
        requested.append(url)
        document = documents[url]
        if isinstance(document, Exception):
            raise document
        return document

    fetch.requested = requested
    return fetch
