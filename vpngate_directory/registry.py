"""In-memory registry cache with TTL expiry and stale-data fallback."""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from .errors import DirectoryError, RegistryUnavailable
from .models import CacheMeta, RegistryStatus, ServerRecord
from .scrapers import parse_feed

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600


class FeedSource(Protocol):
    """Anything that can download the raw feed (normally a VPNGateClient)."""

    async def fetch_raw(self) -> str: ...


@dataclass(frozen=True)
class RegistrySnapshot:
    """A complete record set together with the time it was fetched.

    Snapshots are replaced as a whole, so records and fetched_at can never
    be observed out of step.
    """

    records: tuple[ServerRecord, ...]
    fetched_at: float
    generation: int


class RegistryCache:
    """Process-wide cache of the VPN Gate server list.

    Holds at most one snapshot. Reads inside the TTL are served from memory;
    anything else triggers a refresh. Refreshes are serialised behind a lock
    so concurrent cache misses share a single upstream fetch.
    """

    def __init__(
        self,
        source: FeedSource,
        parser: Callable[[str], Iterable[ServerRecord]] = parse_feed,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the cache.

        Args:
            source: Feed source used for refreshes
            parser: Function turning feed text into records
            ttl_seconds: Freshness window for cached data
            clock: Returns the current time in seconds since the epoch
        """
        self.source = source
        self.parser = parser
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        self._snapshot: RegistrySnapshot | None = None
        self._refresh_lock = asyncio.Lock()

        self._last_attempt: float | None = None
        self._last_error: str | None = None
        self._refresh_count = 0
        self._failure_count = 0

    @property
    def snapshot(self) -> RegistrySnapshot | None:
        """Current snapshot, or None before the first successful fetch."""
        return self._snapshot

    def _is_fresh(self, snapshot: RegistrySnapshot | None, now: float) -> bool:
        if snapshot is None or not snapshot.records:
            return False
        return now - snapshot.fetched_at < self.ttl_seconds

    def _meta(
        self,
        snapshot: RegistrySnapshot,
        now: float,
        hit: bool,
        stale: bool = False,
    ) -> CacheMeta:
        age = max(0.0, now - snapshot.fetched_at)
        return CacheMeta(
            hit=hit,
            stale=stale,
            age_seconds=int(age),
            ttl_seconds=int(max(0.0, self.ttl_seconds - age)),
            last_fetch=datetime.fromtimestamp(snapshot.fetched_at, tz=timezone.utc),
            duration_seconds=self.ttl_seconds,
        )

    async def get_records(
        self, force_refresh: bool = False
    ) -> tuple[tuple[ServerRecord, ...], CacheMeta]:
        """Return the current record set, refreshing it when needed.

        Args:
            force_refresh: Refresh even if the cached data is still fresh.
                A failed forced refresh still falls back to cached data.

        Returns:
            Tuple of (records, cache diagnostics)

        Raises:
            RegistryUnavailable: If a refresh fails and nothing is cached
        """
        snapshot = self._snapshot
        now = self._clock()
        if not force_refresh and self._is_fresh(snapshot, now):
            logger.debug(f"Returning cached VPN data ({len(snapshot.records)} servers)")
            return snapshot.records, self._meta(snapshot, now, hit=True)

        seen_generation = snapshot.generation if snapshot else 0

        async with self._refresh_lock:
            current = self._snapshot
            if current is not None and current.generation != seen_generation:
                # Another caller finished a refresh while we waited for the lock
                logger.debug("Reusing refresh completed by a concurrent request")
                return current.records, self._meta(current, self._clock(), hit=False)

            return await self._refresh()

    async def _refresh(self) -> tuple[tuple[ServerRecord, ...], CacheMeta]:
        """Fetch and parse the feed. Must be called with the refresh lock held."""
        self._last_attempt = self._clock()
        try:
            raw = await self.source.fetch_raw()
            records = tuple(self.parser(raw))
        except DirectoryError as e:
            self._failure_count += 1
            self._last_error = str(e)
            fallback = self._snapshot
            if fallback is None:
                logger.error(f"Failed to fetch VPN data and no cached data exists: {e}")
                raise RegistryUnavailable(f"Failed to fetch VPN servers: {e}") from e

            logger.warning(
                f"Failed to fetch fresh data ({e}); "
                f"using expired cache with {len(fallback.records)} servers as fallback"
            )
            return fallback.records, self._meta(fallback, self._clock(), hit=False, stale=True)

        previous = self._snapshot
        generation = previous.generation + 1 if previous else 1
        snapshot = RegistrySnapshot(
            records=records, fetched_at=self._clock(), generation=generation
        )
        self._snapshot = snapshot
        self._refresh_count += 1
        self._last_error = None

        logger.info(f"Cached {len(records)} VPN servers for {self.ttl_seconds}s")
        return snapshot.records, self._meta(snapshot, snapshot.fetched_at, hit=False)

    def status(self) -> RegistryStatus:
        """Get cache state and refresh statistics."""
        snapshot = self._snapshot
        now = self._clock()
        last_attempt = (
            datetime.fromtimestamp(self._last_attempt, tz=timezone.utc)
            if self._last_attempt is not None
            else None
        )

        if snapshot is None:
            return RegistryStatus(
                last_attempt=last_attempt,
                last_error=self._last_error,
                failure_count=self._failure_count,
                duration_seconds=self.ttl_seconds,
            )

        meta = self._meta(snapshot, now, hit=False)
        return RegistryStatus(
            record_count=len(snapshot.records),
            available=True,
            fresh=self._is_fresh(snapshot, now),
            age_seconds=meta.age_seconds,
            ttl_seconds=meta.ttl_seconds,
            last_fetch=meta.last_fetch,
            last_attempt=last_attempt,
            last_error=self._last_error,
            refresh_count=self._refresh_count,
            failure_count=self._failure_count,
            duration_seconds=self.ttl_seconds,
        )
