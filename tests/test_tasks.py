"""Tests for the background cache prewarm scheduler."""

import asyncio

import pytest
from conftest import FakeSource, make_feed, make_line
from vpngate_directory.errors import UpstreamUnavailable
from vpngate_directory.registry import RegistryCache
from vpngate_directory.tasks import PrewarmScheduler


@pytest.mark.asyncio
async def test_refresh_once_success(clock):
    cache = RegistryCache(FakeSource(make_feed(make_line())), clock=clock)
    scheduler = PrewarmScheduler(cache)

    assert await scheduler.refresh_once() is True
    assert cache.status().record_count == 1


@pytest.mark.asyncio
async def test_refresh_once_cold_failure_is_swallowed(clock):
    cache = RegistryCache(FakeSource(UpstreamUnavailable("down")), clock=clock)
    scheduler = PrewarmScheduler(cache)

    assert await scheduler.refresh_once() is False
    assert cache.status().available is False


@pytest.mark.asyncio
async def test_refresh_once_stale_reports_failure(clock):
    source = FakeSource(make_feed(make_line()), UpstreamUnavailable("down"))
    cache = RegistryCache(source, clock=clock)
    scheduler = PrewarmScheduler(cache)

    assert await scheduler.refresh_once() is True
    assert await scheduler.refresh_once() is False
    assert cache.status().record_count == 1


@pytest.mark.asyncio
async def test_start_refreshes_and_stop_cancels(clock):
    source = FakeSource(make_feed(make_line()))
    cache = RegistryCache(source, clock=clock)
    scheduler = PrewarmScheduler(cache, interval_seconds=3600)

    await scheduler.start()
    assert scheduler.running is True

    for _ in range(10):
        if source.calls:
            break
        await asyncio.sleep(0)

    await scheduler.stop()

    assert scheduler.running is False
    assert source.calls == 1
    assert cache.status().record_count == 1


@pytest.mark.asyncio
async def test_double_start_and_stop_are_harmless(clock):
    scheduler = PrewarmScheduler(RegistryCache(FakeSource(make_feed()), clock=clock))

    await scheduler.stop()
    await scheduler.start()
    await scheduler.start()
    await scheduler.stop()

    assert scheduler.running is False
