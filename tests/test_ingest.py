from datetime import datetime, timezone

import pytest

from pagetally.ingest import (
    client_ip,
    geo_from_headers,
    parse_user_agent,
    server_log_record,
    tracked_record,
    utc_now_iso,
    visitor_key,
)

NOW = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
PREFIX = "x-vercel-ip-"

CHROME_WIN = ("Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
              "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36")
EDGE_WIN = CHROME_WIN + " Edg/120.0.0.0"
IPHONE = ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
          "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1")
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
KINDLE = ("Mozilla/5.0 (Linux; U; en-us; KFAPWI Build/JDQ39) AppleWebKit/535.19 "
          "(KHTML, like Gecko) Silk/3.13 Safari/535.19 Silk-Accelerated=true")


def test_utc_now_iso():
    assert utc_now_iso(NOW) == "2026-01-02T03:04:05.678Z"


class TestClientIp:
    def test_forwarded_for_first_hop(self):
        assert client_ip({"x-forwarded-for": " 203.0.113.9 , 10.0.0.1"}) == "203.0.113.9"

    def test_real_ip(self):
        assert client_ip({"x-real-ip": "198.51.100.4"}, peer="10.0.0.1") == "198.51.100.4"

    def test_peer_then_unknown(self):
        assert client_ip({}, peer="192.0.2.1") == "192.0.2.1"
        assert client_ip({}) == "unknown"


class TestGeo:
    def test_all_headers(self):
        headers = {
            PREFIX + "country": "BR",
            PREFIX + "country-region": "SP",
            PREFIX + "city": "S%C3%A3o%20Paulo",
            PREFIX + "latitude": "-23.55",
            PREFIX + "longitude": "-46.63",
        }
        assert geo_from_headers(headers, PREFIX) == {
            "countryCode": "BR", "regionCode": "SP", "city": "São Paulo",
            "latitude": -23.55, "longitude": -46.63,
        }

    def test_bad_coordinates_dropped(self):
        headers = {PREFIX + "latitude": "nan", PREFIX + "longitude": "east"}
        assert geo_from_headers(headers, PREFIX) == {}

    def test_no_headers(self):
        assert geo_from_headers({}, PREFIX) == {}


@pytest.mark.parametrize(
    "ua, expected",
    [
        (CHROME_WIN, {"browser": "chrome", "os": "windows", "deviceType": "desktop"}),
        (EDGE_WIN, {"browser": "edge", "os": "windows", "deviceType": "desktop"}),
        (FIREFOX_LINUX, {"browser": "firefox", "os": "linux", "deviceType": "desktop"}),
        (KINDLE, {"browser": "safari", "os": "linux", "deviceType": "tablet"}),
        (None, {"browser": None, "os": None, "deviceType": "unknown"}),
    ],
)
def test_parse_user_agent(ua, expected):
    assert parse_user_agent(ua) == expected


def test_parse_user_agent_mobile():
    parsed = parse_user_agent(IPHONE)
    assert parsed["deviceType"] == "mobile"
    assert parsed["browser"] == "safari"


def test_tracked_record_server_fields_win(cfg):
    body = {"path": "/x", "ip": "1.2.3.4", "timestamp": "spoofed", "visitorId": "v1"}
    headers = {"x-forwarded-for": "203.0.113.5", PREFIX + "country": "NL"}
    record = tracked_record(body, headers, cfg, now=NOW)

    assert record == {
        "path": "/x", "visitorId": "v1", "ip": "203.0.113.5",
        "timestamp": "2026-01-02T03:04:05.678Z", "countryCode": "NL",
    }
    assert body["ip"] == "1.2.3.4"


def test_visitor_key():
    assert visitor_key({"visitorId": "v1", "ip": "203.0.113.5", "path": "/"}) == "v1"
    assert visitor_key({"ip": "203.0.113.5", "path": "/a"}) == "203.0.113.5:/a"


def test_server_log_record(cfg):
    record = server_log_record("203.0.113.5", "/about", "direct", FIREFOX_LINUX, {}, cfg, now=NOW)
    assert record["source"] == "server-log"
    assert record["browser"] == "firefox"
    assert record["deviceType"] == "desktop"
    assert record["userAgent"] == FIREFOX_LINUX
    assert record["latitude"] is None
    assert record["timestamp"] == "2026-01-02T03:04:05.678Z"
