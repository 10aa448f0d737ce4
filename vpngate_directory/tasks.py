"""Background task that keeps the registry cache warm."""

import asyncio
import logging

from .errors import DirectoryError
from .registry import RegistryCache

logger = logging.getLogger(__name__)


class PrewarmScheduler:
    """Periodically refreshes the registry cache in the background.

    Requests then rarely have to wait for the upstream fetch. Refresh
    failures are logged; the cache keeps serving its previous data.
    """

    def __init__(self, cache: RegistryCache, interval_seconds: float = 900.0):
        """Initialize the scheduler.

        Args:
            cache: Registry cache to refresh
            interval_seconds: Seconds between refreshes
        """
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def refresh_once(self) -> bool:
        """Run one forced refresh.

        Returns:
            True if the cache now holds freshly fetched data
        """
        try:
            records, meta = await self.cache.get_records(force_refresh=True)
        except DirectoryError as e:
            logger.error(f"Background refresh failed: {e}")
            return False

        if meta.stale:
            logger.warning(f"Background refresh failed, still serving {len(records)} cached servers")
            return False

        logger.info(f"Background refresh cached {len(records)} servers")
        return True

    async def _periodic_refresh_loop(self) -> None:
        logger.info(f"Starting cache prewarm loop (interval: {self.interval_seconds}s)")

        while self._running:
            try:
                await self.refresh_once()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                logger.info("Cache prewarm loop cancelled")
                break
            except Exception as e:
                logger.error(f"Error in cache prewarm loop: {e}", exc_info=True)
                await asyncio.sleep(60)

    async def start(self) -> None:
        """Start the background refresh task."""
        if self._running:
            logger.warning("Prewarm scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._periodic_refresh_loop())
        logger.info("Prewarm scheduler started")

    async def stop(self) -> None:
        """Stop the background refresh task."""
        if not self._running:
            logger.warning("Prewarm scheduler not running")
            return

        self._running = False
        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

        logger.info("Prewarm scheduler stopped")
