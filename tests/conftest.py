"""Shared fixtures and feed builders for the directory tests."""

import base64

import pytest
from vpngate_directory.models import ServerRecord

PROFILE_TEXT = (
    "client\n"
    "dev tun\n"
    "proto tcp\n"
    "remote 219.100.37.1 443\n"
    "cipher AES-128-CBC\n"
    "auth SHA1\n"
    "resolv-retry infinite\n"
    "nobind\n"
    "persist-key\n"
    "persist-tun\n"
    "verb 3\n"
)
PROFILE_B64 = base64.b64encode(PROFILE_TEXT.encode()).decode()

FEED_HEADER = (
    "*vpn_servers\n"
    "#HostName,IP,Score,Ping,Speed,CountryLong,CountryShort,NumVpnSessions,Uptime,"
    "TotalUsers,TotalTraffic,LogType,Operator,Message,OpenVPN_ConfigData_Base64\n"
)


def make_line(
    hostname: str = "public-vpn-1",
    ip: str = "219.100.37.1",
    score: str = "1000",
    ping: str = "20",
    speed: str = "50000000",
    country_long: str = "Japan",
    country_short: str = "JP",
    sessions: str = "10",
    uptime: str = "86400",
    total_users: str = "500",
    total_traffic: str = "123456789",
    log_type: str = "2weeks",
    operator: str = "Daiyuu Nobori_ Japan. Academic Use Only.",
    message: str = "",
    profile: str = PROFILE_B64,
) -> str:
    """Build one comma-separated feed line."""
    return ",".join(
        [
            hostname,
            ip,
            score,
            ping,
            speed,
            country_long,
            country_short,
            sessions,
            uptime,
            total_users,
            total_traffic,
            log_type,
            operator,
            message,
            profile,
        ]
    )


def make_feed(*lines: str) -> str:
    """Wrap server lines with the feed header and trailer."""
    return FEED_HEADER + "\n".join(lines) + "\n*\n"


def make_record(**overrides) -> ServerRecord:
    """Build a ServerRecord with sensible defaults."""
    data = {
        "hostname": "public-vpn-1",
        "ip": "219.100.37.1",
        "score": 1000,
        "ping": "20",
        "speed": 50_000_000,
        "country_long": "Japan",
        "country_short": "JP",
        "num_vpn_sessions": 10,
        "uptime": 86400,
        "total_users": 500,
        "total_traffic": "123456789",
        "log_type": "2weeks",
        "operator": "Example Operator",
        "message": "",
        "openvpn_config_base64": PROFILE_B64,
    }
    data.update(overrides)
    return ServerRecord(**data)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """Feed source replaying canned responses.

    Each call consumes the next response; the last one is repeated.
    Exceptions in the list are raised instead of returned.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    async def fetch_raw(self):
        self.calls += 1
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_feed():
    """Feed with three valid servers and assorted junk lines."""
    return make_feed(
        make_line(hostname="vpn-a", ip="1.1.1.1", score="500", ping="10", country_short="JP"),
        "# a comment line",
        make_line(hostname="vpn-b", ip="2.2.2.2", score="9000000", ping="abc", country_short="KR"),
        "",
        "short,line,only",
        make_line(hostname="vpn-c", ip="3.3.3.3", score="12", ping="2", country_short="US"),
        make_line(hostname="vpn-noprofile", ip="4.4.4.4", profile=""),
    )
