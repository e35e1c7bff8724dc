"""
M-SEARCH fan-out across local addresses
"""

import asyncio
import logging
from typing import Callable, List, Optional

from .models import (
    AddressType, FailureKind, InterfaceSearchResult, MULTICAST_ADDRESSES,
    SSDP_PORT, SearchState
)
from .errors import BindTimeoutError, SocketClosedError, SocketError
from .interfaces import AddressProvider
from .transport import UdpSocket

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_COUNT = 3
DEFAULT_RECEPTION_TIMEOUT = 3.0  # seconds
DEFAULT_MX = 3

SocketFactory = Callable[[AddressType], UdpSocket]


def build_search_request(multicast_address: str, search_target: str, mx: int = DEFAULT_MX) -> str:
    """M-SEARCH request text for one multicast group"""
    return (
        "M-SEARCH * HTTP/1.1\r\n"
        f"HOST: {multicast_address}:{SSDP_PORT}\r\n"
        f"ST: {search_target}\r\n"
        "MAN: \"ssdp:discover\"\r\n"
        f"MX: {mx}\r\n\r\n"
    )


class InterfaceSearcher:
    """Runs one search on one local address with its own socket"""

    def __init__(
        self,
        address: str,
        search_target: str,
        address_provider: AddressProvider,
        socket_factory: SocketFactory,
        search_count: int = DEFAULT_SEARCH_COUNT,
        reception_timeout: float = DEFAULT_RECEPTION_TIMEOUT,
        mx: int = DEFAULT_MX
    ):
        self.address = address
        self.search_target = search_target
        self.address_provider = address_provider
        self.socket_factory = socket_factory
        self.search_count = search_count
        self.reception_timeout = reception_timeout
        self.mx = mx
        self.state = SearchState.IDLE

    async def search(self) -> InterfaceSearchResult:
        address_type = self.address_provider.classify(self.address)
        if address_type == AddressType.UNKNOWN:
            logger.debug(f"Skipping {self.address}: unsupported address type")
            self.state = SearchState.CLOSED
            return self._result(address_type, [], FailureKind.ADDRESS_UNKNOWN)

        failure: Optional[FailureKind] = None
        sock = self.socket_factory(address_type)
        try:
            await sock.bind(self.address)
            self.state = SearchState.BOUND

            multicast_address = MULTICAST_ADDRESSES[address_type]
            data = build_search_request(multicast_address, self.search_target, self.mx).encode('utf-8')

            self.state = SearchState.SENDING
            for _ in range(self.search_count):
                await sock.send_to(multicast_address, SSDP_PORT, data)

            # Responses keep queuing on the socket while we wait
            self.state = SearchState.LISTENING
            await asyncio.sleep(self.reception_timeout)

        except BindTimeoutError:
            logger.debug(f"Bind timed out on {self.address}")
            failure = FailureKind.BIND_TIMEOUT
        except SocketClosedError:
            logger.debug(f"Socket closed early on {self.address}")
            failure = FailureKind.SOCKET_CLOSED
        except SocketError as e:
            logger.warning(f"Socket error on {self.address}: {e}")
            failure = FailureKind.SOCKET_ERROR
        except Exception as e:
            # Whatever was queued before the failure is still returned below
            logger.warning(f"Search on {self.address} aborted: {e!r}")
            failure = FailureKind.SOCKET_ERROR
        finally:
            sock.close()
            self.state = SearchState.CLOSED

        responses = self._collect(sock.drain())
        logger.debug(f"{self.address}: {len(responses)} responses")
        return self._result(address_type, responses, failure)

    def _collect(self, messages) -> List[str]:
        responses = []
        for payload, length in messages:
            if length > 0:
                responses.append(payload[:length].decode('utf-8', errors='replace'))
        return responses

    def _result(self, address_type, responses, failure) -> InterfaceSearchResult:
        return InterfaceSearchResult(
            address=self.address,
            address_type=address_type,
            responses=responses,
            state=self.state,
            failure=failure
        )


class SearchOrchestrator:
    """Searches every local address concurrently and merges the responses"""

    def __init__(
        self,
        address_provider: AddressProvider,
        socket_factory: SocketFactory,
        search_count: int = DEFAULT_SEARCH_COUNT,
        reception_timeout: float = DEFAULT_RECEPTION_TIMEOUT,
        mx: int = DEFAULT_MX
    ):
        self.address_provider = address_provider
        self.socket_factory = socket_factory
        self.search_count = search_count
        self.reception_timeout = reception_timeout
        self.mx = mx

    async def search_interfaces(self, search_target: str) -> List[InterfaceSearchResult]:
        addresses = self.address_provider.list_local_addresses()
        logger.info(f"[SEARCH] M-SEARCH for {search_target} on {len(addresses)} addresses")

        searchers = [
            InterfaceSearcher(
                address, search_target, self.address_provider, self.socket_factory,
                self.search_count, self.reception_timeout, self.mx
            )
            for address in addresses
        ]
        outcomes = await asyncio.gather(*(s.search() for s in searchers), return_exceptions=True)

        results = []
        for searcher, outcome in zip(searchers, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning(f"Search on {searcher.address} failed: {outcome}")
                outcome = InterfaceSearchResult(
                    address=searcher.address,
                    address_type=self.address_provider.classify(searcher.address),
                    responses=[],
                    state=SearchState.CLOSED,
                    failure=FailureKind.SOCKET_ERROR
                )
            results.append(outcome)
        return results

    async def search(self, search_target: str) -> List[str]:
        results = await self.search_interfaces(search_target)
        return [response for result in results for response in result.responses]
