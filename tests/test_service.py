"""Tests for the directory service composition."""

import pytest
from conftest import PROFILE_B64, PROFILE_TEXT, FakeSource, make_feed, make_line
from vpngate_directory.errors import InvalidProfilePayload, RegistryUnavailable, UpstreamUnavailable
from vpngate_directory.models import QueryRequest, SortKey
from vpngate_directory.registry import RegistryCache
from vpngate_directory.service import DirectoryService


@pytest.fixture
def big_feed():
    return make_feed(
        *(make_line(hostname=f"vpn-{i}", ip=f"10.0.0.{i}", score=str(i)) for i in range(120))
    )


@pytest.fixture
def service(big_feed, clock):
    return DirectoryService(RegistryCache(FakeSource(big_feed), clock=clock))


@pytest.mark.asyncio
async def test_pagination_through_service(service):
    first = await service.list_servers(QueryRequest(limit=50, offset=0))
    last = await service.list_servers(QueryRequest(limit=50, offset=100))

    assert first.count == 50
    assert first.has_more is True
    assert first.total == 120
    assert last.count == 20
    assert last.has_more is False
    assert last.cache.hit is True


@pytest.mark.asyncio
async def test_sort_key_applied(service):
    response = await service.list_servers(QueryRequest(limit=3, sort_by=SortKey.SCORE))

    assert [s.score for s in response.servers] == [119, 118, 117]


@pytest.mark.asyncio
async def test_cold_start_failure_propagates(clock):
    service = DirectoryService(RegistryCache(FakeSource(UpstreamUnavailable("down")), clock=clock))

    with pytest.raises(RegistryUnavailable) as exc_info:
        await service.list_servers(QueryRequest())

    envelope = service.error_envelope(exc_info.value)
    assert envelope.servers == []
    assert envelope.kind == "registry_unavailable"
    assert envelope.cache["available"] is False


@pytest.mark.asyncio
async def test_find_server_by_id_or_hostname(service):
    by_id = await service.find_server("10.0.0.7-vpn-7")
    by_hostname = await service.find_server("vpn-7")

    assert by_id is not None
    assert by_id == by_hostname
    assert await service.find_server("missing") is None


@pytest.mark.asyncio
async def test_refresh_returns_meta(service):
    meta = await service.refresh()

    assert meta.hit is False
    assert service.status().refresh_count == 1


def test_export_profile(service):
    export = service.export_profile(PROFILE_B64, "JP_vpn.ovpn")

    assert export.content == PROFILE_TEXT.encode()
    assert export.filename == "JP_vpn.ovpn"
    assert export.media_type == "application/x-openvpn-profile"
    assert export.headers()["Content-Disposition"] == 'attachment; filename="JP_vpn.ovpn"'


def test_export_profile_default_filename(service):
    assert service.export_profile(PROFILE_B64).filename == "vpn-profile.ovpn"


@pytest.mark.parametrize("payload", [None, "", "%%%"])
def test_export_profile_rejects_bad_payload(service, payload):
    with pytest.raises(InvalidProfilePayload):
        service.export_profile(payload)
