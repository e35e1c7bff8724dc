import pytest

from ssdp.errors import MalformedNotificationError
from ssdp.models import FailureKind
from ssdp.notifications import bind_notification, parse_headers, parse_notifications, parse_response

from fakes import ssdp_response

TARGET = "urn:schemas-upnp-org:device:MediaServer:1"


def _text(*args, **kwargs):
    return ssdp_response(*args, **kwargs).decode("utf-8")


def test_parse_headers_lower_cases_names_and_splits_on_first_colon():
    headers = parse_headers("HTTP/1.1 200 OK\r\nLOCATION: http://host1:8080/desc.xml\r\nUSN: uuid:1::x\r\n\r\n")
    assert headers == {"location": "http://host1:8080/desc.xml", "usn": "uuid:1::x"}


def test_parse_headers_accepts_bare_newlines():
    headers = parse_headers("HTTP/1.1 200 OK\nLocation: http://h/d.xml\nUsn: uuid:2\n\n")
    assert headers == {"location": "http://h/d.xml", "usn": "uuid:2"}


def test_repeated_header_keeps_last_value():
    headers = parse_headers("ST: first\r\nst: second\r\n")
    assert headers == {"st": "second"}


def test_full_response_binds_exact_header_values():
    response = _text(
        "http://host1/desc.xml", "uuid:1::" + TARGET,
        extra_headers=[("BOOTID.UPNP.ORG", "7"), ("X-Vendor", "acme")]
    )
    notification = parse_response(response)

    assert notification.location == "http://host1/desc.xml"
    assert notification.usn == "uuid:1::" + TARGET
    assert notification.st == TARGET
    assert notification.server == "Linux/5.10 UPnP/1.0 TestServer/1.0"
    assert notification.cache_control == "max-age=1800"
    assert notification.ext == ""
    assert notification.boot_id == "7"
    assert notification.date is None
    assert notification.headers["x-vendor"] == "acme"


def test_binding_is_case_insensitive():
    notification = bind_notification(parse_headers("location: http://x/d.xml\r\nUsN: uuid:9\r\n"))
    assert notification.location == "http://x/d.xml"
    assert notification.usn == "uuid:9"


def test_missing_usn_raises_classified_error():
    with pytest.raises(MalformedNotificationError) as exc:
        parse_response("HTTP/1.1 200 OK\r\nLOCATION: http://host1/desc.xml\r\n\r\n")
    assert exc.value.missing_header == "usn"
    assert exc.value.failure_kind == FailureKind.MALFORMED_NOTIFICATION


def test_malformed_response_is_skipped_not_fatal():
    good = _text("http://host1/desc.xml", "uuid:1::" + TARGET)
    no_usn = "HTTP/1.1 200 OK\r\nLOCATION: http://host2/desc.xml\r\n\r\n"
    no_location = "HTTP/1.1 200 OK\r\nUSN: uuid:3\r\n\r\n"

    notifications = parse_notifications([no_usn, good, no_location, "garbage"])
    assert [n.usn for n in notifications] == ["uuid:1::" + TARGET]


def test_duplicates_removed_first_occurrence_wins():
    first = _text("http://host1/desc.xml", "uuid:1::" + TARGET)
    second = _text("http://host1-other/desc.xml", "uuid:2::" + TARGET)
    repeat = _text("http://host1-again/desc.xml", "uuid:1::" + TARGET)

    notifications = parse_notifications([first, second, repeat, second])

    assert [n.usn for n in notifications] == ["uuid:1::" + TARGET, "uuid:2::" + TARGET]
    assert notifications[0].location == "http://host1/desc.xml"
    assert len({n.usn for n in notifications}) == len(notifications)
