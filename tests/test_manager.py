import asyncio

from ssdp.descriptor import DescriptorFetcher
from ssdp.interfaces import StaticAddressProvider
from ssdp.manager import SsdpDiscovery, upnp_device_urn

from fakes import FakeNetwork, fetch_from, ssdp_response

MEDIA_SERVER = "urn:schemas-upnp-org:device:MediaServer:1"
USN = "uuid:1::" + MEDIA_SERVER
CONFIG = {"ssdp": {"reception_timeout_ms": 50}}

DESCRIPTION = b"""<?xml version="1.0"?>
<root xmlns="urn:schemas-upnp-org:device-1-0">
  <device>
    <deviceType>urn:schemas-upnp-org:device:MediaServer:1</deviceType>
    <friendlyName>Host One</friendlyName>
    <UDN>uuid:1</UDN>
  </device>
</root>
"""


def _discovery(network, documents=None, addresses=("192.168.1.10", "192.168.2.10")):
    return SsdpDiscovery(
        CONFIG,
        address_provider=StaticAddressProvider(addresses),
        socket_factory=network.socket_factory,
        descriptor_fetcher=DescriptorFetcher(fetch=fetch_from(documents or {}))
    )


def _network():
    # Address A answers once, address B stays silent
    return FakeNetwork(replies={
        "192.168.1.10": [ssdp_response("http://host1/desc.xml", USN)],
    })


def test_upnp_device_urn():
    assert upnp_device_urn("MediaServer") == MEDIA_SERVER
    assert upnp_device_urn("MediaRenderer", 2) == "urn:schemas-upnp-org:device:MediaRenderer:2"


def test_search_devices_end_to_end():
    network = _network()
    notifications = asyncio.run(_discovery(network).search_devices(MEDIA_SERVER))

    assert len(notifications) == 1
    assert notifications[0].usn == USN
    assert notifications[0].location == "http://host1/desc.xml"
    assert all(sock.closed for sock in network.sockets)


def test_duplicate_responses_across_interfaces_collapse():
    reply = ssdp_response("http://host1/desc.xml", USN)
    network = FakeNetwork(replies={"192.168.1.10": [reply, reply], "192.168.2.10": [reply]})
    notifications = asyncio.run(_discovery(network).search_devices(MEDIA_SERVER))
    assert [n.usn for n in notifications] == [USN]


def test_search_upnp_devices_end_to_end():
    network = _network()
    documents = {"http://host1/desc.xml": DESCRIPTION}
    devices = asyncio.run(_discovery(network, documents).search_upnp_devices("MediaServer"))

    assert len(devices) == 1
    assert devices[0].friendly_name == "Host One"
    assert devices[0].url_base == "http://host1/desc.xml"
    sent = network.socket_for("192.168.1.10").sent[0][2]
    assert b"ST: urn:schemas-upnp-org:device:MediaServer:1\r\n" in sent


def test_unreachable_description_gives_empty_result():
    network = _network()
    documents = {"http://host1/desc.xml": OSError("connection refused")}
    devices = asyncio.run(_discovery(network, documents).search_upnp_devices("MediaServer"))
    assert devices == []


def test_no_interfaces_gives_empty_result():
    discovery = _discovery(FakeNetwork(), addresses=())
    assert asyncio.run(discovery.search_upnp_devices("MediaServer")) == []


def test_discover_reports_counters():
    network = _network()
    documents = {"http://host1/desc.xml": DESCRIPTION}
    result = asyncio.run(_discovery(network, documents).discover("MediaServer"))

    assert result.addresses_searched == 2
    assert result.responses_received == 1
    assert result.success_count == 1
    assert [n.usn for n in result.notifications] == [USN]
    assert [d.udn for d in result.devices] == ["uuid:1"]
    assert result.duration_seconds >= 0


def test_configuration_drives_search_parameters():
    network = FakeNetwork()
    config = {"ssdp": {"search_count": 2, "reception_timeout_ms": 10, "mx": 5}}
    discovery = SsdpDiscovery(
        config,
        address_provider=StaticAddressProvider(["192.168.1.10"]),
        socket_factory=network.socket_factory
    )
    asyncio.run(discovery.search_devices(MEDIA_SERVER))

    sent = network.socket_for("192.168.1.10").sent
    assert len(sent) == 2
    assert b"MX: 5\r\n" in sent[0][2]


def test_configured_interfaces_replace_enumeration():
    discovery = SsdpDiscovery({"ssdp": {"interfaces": ["10.1.1.1"]}})
    assert discovery.address_provider.list_local_addresses() == ["10.1.1.1"]
