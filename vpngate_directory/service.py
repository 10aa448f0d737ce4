"""Directory service: ties the cache, query engine and profile export together."""

import logging

from .config import DirectorySettings
from .errors import DirectoryError
from .models import (
    DEFAULT_PROFILE_FILENAME,
    CacheMeta,
    DirectoryResponse,
    ErrorEnvelope,
    LogPolicy,
    ProfileExport,
    QueryRequest,
    RegistryStatus,
    ServerRecord,
    decode_profile_blob,
)
from .query import query_records
from .registry import RegistryCache
from .scrapers import VPNGateClient
from .search import search_records

logger = logging.getLogger(__name__)


class DirectoryService:
    """Answers directory queries on top of a shared registry cache."""

    def __init__(self, cache: RegistryCache, default_limit: int = 50):
        """Initialize the service.

        Args:
            cache: Registry cache shared by all requests
            default_limit: Page size used when a request gives none
        """
        self.cache = cache
        self.default_limit = default_limit

    @classmethod
    def from_settings(cls, settings: DirectorySettings) -> "DirectoryService":
        """Build the service with a live VPN Gate client."""
        client = VPNGateClient(
            api_url=settings.api_url,
            user_agent=settings.user_agent,
            timeout=settings.request_timeout,
        )
        cache = RegistryCache(client, ttl_seconds=settings.cache_ttl_seconds)
        return cls(cache, default_limit=settings.default_limit)

    async def list_servers(self, request: QueryRequest) -> DirectoryResponse:
        """Return one sorted page of servers with cache diagnostics.

        Raises:
            RegistryUnavailable: If no data could be fetched or served from cache
        """
        records, meta = await self.cache.get_records(force_refresh=request.force_refresh)
        page = query_records(
            records,
            sort_key=request.sort_by,
            offset=request.offset,
            limit=request.limit,
        )
        logger.info(
            f"Serving {len(page.servers)}/{page.total} servers "
            f"(sort={request.sort_by.value}, offset={request.offset}, "
            f"cache={'HIT' if meta.hit else 'MISS'})"
        )
        return DirectoryResponse(
            servers=page.servers,
            count=len(page.servers),
            total=page.total,
            has_more=page.has_more,
            offset=request.offset,
            limit=request.limit,
            cache=meta,
        )

    async def search(
        self,
        text: str = "",
        country: str | None = None,
        log_policy: LogPolicy | None = None,
        min_speed_mbps: float = 0.0,
        max_ping: int | None = None,
        limit: int = 20,
    ) -> list[ServerRecord]:
        """Search the cached servers by text and attributes."""
        records, _ = await self.cache.get_records()
        return search_records(
            records,
            text=text,
            country=country,
            log_policy=log_policy,
            min_speed_mbps=min_speed_mbps,
            max_ping=max_ping,
            limit=limit,
        )

    async def find_server(self, server_id: str) -> ServerRecord | None:
        """Look up a server by its ``{ip}-{hostname}`` identifier or hostname."""
        records, _ = await self.cache.get_records()
        for record in records:
            if record.server_id == server_id or record.hostname == server_id:
                return record
        return None

    async def refresh(self) -> CacheMeta:
        """Force a refresh of the cached server list."""
        _, meta = await self.cache.get_records(force_refresh=True)
        return meta

    def status(self) -> RegistryStatus:
        return self.cache.status()

    def export_profile(self, config_b64: str | None, filename: str | None = None) -> ProfileExport:
        """Decode a base64 profile for download.

        Raises:
            InvalidProfilePayload: If no payload was given or it is not base64
        """
        content = decode_profile_blob(config_b64 or "")
        return ProfileExport(content=content, filename=filename or DEFAULT_PROFILE_FILENAME)

    def error_envelope(self, error: DirectoryError) -> ErrorEnvelope:
        """Describe a failed query, including what the cache still holds."""
        snapshot = self.cache.status()
        return ErrorEnvelope(
            error="Failed to fetch VPN servers",
            details=str(error),
            kind=error.kind,
            cache={
                "available": snapshot.available,
                "age_seconds": snapshot.age_seconds,
                "duration_seconds": snapshot.duration_seconds,
            },
        )
