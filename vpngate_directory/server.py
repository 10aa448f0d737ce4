"""FastMCP server exposing the VPN Gate directory as MCP tools and HTTP routes."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastmcp import FastMCP
from pydantic import Field
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount

from .config import DirectorySettings
from .errors import DirectoryError
from .formatting import format_server
from .models import LogPolicy, QueryRequest
from .service import DirectoryService
from .tasks import PrewarmScheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)

# Initialize FastMCP server
mcp = FastMCP(
    name="vpngate-directory",
    instructions="""
    This server republishes the public VPN Gate relay list.

    Use vpn_directory_list to page through servers sorted by score, speed,
    ping, uptime or load, vpn_directory_find to search by country, name or
    log policy, and vpn_directory_get_profile to obtain the OpenVPN profile
    of a server.

    The list is cached for one hour; vpn_directory_refresh forces a reload.
    """,
)

# Global instances
directory: DirectoryService | None = None
prewarm_scheduler: PrewarmScheduler | None = None


async def initialize_directory(settings: DirectorySettings | None = None) -> None:
    """Create the directory service and start background tasks."""
    global directory, prewarm_scheduler

    if directory is not None:
        return  # Already initialized

    settings = settings or DirectorySettings()
    logger.info(f"Initializing vpngate-directory (feed: {settings.api_url})")

    directory = DirectoryService.from_settings(settings)

    if settings.prewarm:
        prewarm_scheduler = PrewarmScheduler(
            directory.cache, interval_seconds=settings.prewarm_interval_seconds
        )
        await prewarm_scheduler.start()

    logger.info("vpngate-directory initialized")


async def shutdown_directory() -> None:
    """Stop background tasks."""
    global prewarm_scheduler

    logger.info("Shutting down vpngate-directory")

    if prewarm_scheduler and prewarm_scheduler.running:
        await prewarm_scheduler.stop()
    prewarm_scheduler = None


# --- HTTP routes ---


@mcp.custom_route("/api/vpn-servers", methods=["GET"])
async def vpn_servers(request: Request) -> Response:
    """List servers: ``?limit=50&offset=0&sortBy=score&forceRefresh=false``."""
    await initialize_directory()

    query = QueryRequest.from_params(
        request.query_params, default_limit=directory.default_limit
    )

    try:
        result = await directory.list_servers(query)
    except DirectoryError as e:
        logger.error(f"Error in VPN servers API: {e}")
        envelope = directory.error_envelope(e)
        return JSONResponse(envelope.model_dump(mode="json"), status_code=500)

    meta = result.cache
    headers = {
        "Cache-Control": f"public, max-age={meta.ttl_seconds}",
        "X-Cache": "HIT" if meta.hit else "MISS",
        "X-Cache-Age": str(meta.age_seconds),
        "X-Cache-Duration": str(meta.duration_seconds),
    }
    return JSONResponse(result.model_dump(mode="json", by_alias=True), headers=headers)


@mcp.custom_route("/api/vpn-config/{server_id}", methods=["GET"])
async def vpn_config(request: Request) -> Response:
    """Serve a base64 profile from ``?config=`` as an .ovpn download."""
    await initialize_directory()

    config = request.query_params.get("config")
    filename = request.query_params.get("filename")

    if not config:
        return JSONResponse({"error": "No config provided"}, status_code=400)

    try:
        # An unencoded "+" in the query string arrives as a space
        export = directory.export_profile(config.replace(" ", "+"), filename)
    except DirectoryError as e:
        logger.warning(f"Rejected profile for {request.path_params.get('server_id')}: {e}")
        return JSONResponse(
            {"error": "Invalid config payload", "details": str(e)}, status_code=400
        )

    try:
        return Response(export.content, media_type=export.media_type, headers=export.headers())
    except ValueError as e:
        logger.error(f"Error serving VPN config: {e}")
        return JSONResponse({"error": "Failed to serve VPN config"}, status_code=500)


# --- MCP tools ---


@mcp.tool(name="vpn_directory_list")
async def directory_list(
    sort_by: str = Field(
        "score", description="Sort order: score, speed, ping, uptime, users"
    ),
    limit: int = Field(20, description="Servers per page"),
    offset: int = Field(0, description="Number of servers to skip"),
    force_refresh: bool = Field(False, description="Reload the list from VPN Gate"),
) -> str:
    """List VPN Gate servers, sorted and paginated.

    Returns:
        Markdown page of servers with cache information
    """
    await initialize_directory()

    query = QueryRequest.from_params(
        {
            "sortBy": sort_by,
            "limit": str(limit),
            "offset": str(offset),
            "forceRefresh": str(force_refresh),
        },
        default_limit=directory.default_limit,
    )

    try:
        result = await directory.list_servers(query)
    except DirectoryError as e:
        return f"Failed to fetch VPN servers: {e}"

    if not result.servers:
        return f"No servers at offset {result.offset} (total: {result.total})"

    first = result.offset + 1
    output = [
        f"# Servers {first}-{result.offset + result.count} of {result.total} "
        f"(sorted by {query.sort_by.value})\n"
    ]
    for i, record in enumerate(result.servers, first):
        output.extend(format_server(record, i))

    cache = result.cache
    source = "cache" if cache.hit else ("stale cache" if cache.stale else "fresh fetch")
    output.append(f"_Data from {source}, {cache.age_seconds}s old, expires in {cache.ttl_seconds}s._")
    if result.has_more:
        output.append(f"_More servers available: use offset={result.offset + result.limit}._")

    return "\n".join(output)


@mcp.tool(name="vpn_directory_find")
async def directory_find(
    query: str = Field("", description="Text matched against hostname, country and operator"),
    country: str = Field("", description="Two-letter country code, e.g. JP"),
    log_policy: str = Field("", description="Log policy: no-logs or logs"),
    min_speed_mbps: float = Field(0.0, description="Minimum speed in Mbps"),
    max_ping: int = Field(0, description="Maximum ping in ms (0 = no limit)"),
    limit: int = Field(20, description="Max results to return (1-100)"),
) -> str:
    """Search VPN Gate servers by text and attributes.

    Returns:
        Markdown list of matching servers
    """
    await initialize_directory()

    policy = None
    if log_policy:
        try:
            policy = LogPolicy(log_policy.lower())
        except ValueError:
            logger.warning(f"Invalid log policy: {log_policy}")

    try:
        results = await directory.search(
            text=query,
            country=country or None,
            log_policy=policy,
            min_speed_mbps=min_speed_mbps,
            max_ping=max_ping or None,
            limit=max(1, min(limit, 100)),
        )
    except DirectoryError as e:
        return f"Failed to fetch VPN servers: {e}"

    if not results:
        return f"No servers found matching query: {query}"

    output = [f"# Found {len(results)} matching servers\n"]
    for i, record in enumerate(results, 1):
        output.extend(format_server(record, i))
    return "\n".join(output)


@mcp.tool(name="vpn_directory_get_profile")
async def directory_get_profile(
    server_id: str = Field(..., description="Server ID (ip-hostname) or hostname"),
) -> str:
    """Get the decoded OpenVPN profile of a server.

    Returns:
        Profile file name and contents
    """
    await initialize_directory()

    try:
        record = await directory.find_server(server_id)
    except DirectoryError as e:
        return f"Failed to fetch VPN servers: {e}"

    if record is None:
        return f"Server not found: {server_id}"

    try:
        profile = record.decode_profile()
    except DirectoryError as e:
        return f"Could not decode profile for {server_id}: {e}"

    return f"# {record.profile_filename}\n\n```\n{profile}\n```"


@mcp.tool(name="vpn_directory_refresh")
async def directory_refresh() -> str:
    """Reload the server list from VPN Gate, bypassing the cache.

    Returns:
        Refresh result
    """
    await initialize_directory()

    try:
        meta = await directory.refresh()
    except DirectoryError as e:
        return f"Refresh failed and no cached data is available: {e}"

    status = directory.status()
    if meta.stale:
        return (
            f"Refresh failed ({status.last_error}); "
            f"serving {status.record_count} cached servers, {meta.age_seconds}s old"
        )
    return f"Refreshed: {status.record_count} servers cached"


@mcp.tool(name="vpn_directory_status")
async def directory_status() -> str:
    """Get cache status and statistics.

    Returns:
        Status information
    """
    await initialize_directory()

    status = directory.status()

    output = ["# Directory Status\n"]
    output.append(f"**Servers cached:** {status.record_count}")
    output.append(f"**Data available:** {'yes' if status.available else 'no'}")
    output.append(f"**Fresh:** {'yes' if status.fresh else 'no'}")
    output.append(f"**Cache lifetime:** {status.duration_seconds}s")

    if status.last_fetch:
        output.append(f"**Last fetch:** {status.last_fetch.strftime('%Y-%m-%d %H:%M:%S')} UTC")
        output.append(f"**Age:** {status.age_seconds}s (expires in {status.ttl_seconds}s)")

    output.append(f"**Refreshes:** {status.refresh_count} ok, {status.failure_count} failed")

    if status.last_error:
        output.append(f"**Last error:** {status.last_error}")

    return "\n".join(output)


def create_app(settings: DirectorySettings | None = None) -> Starlette:
    """Build the ASGI app serving the MCP endpoint and the HTTP routes.

    The directory is created at startup and its background tasks are
    stopped at shutdown.
    """
    mcp_app = mcp.http_app()

    @asynccontextmanager
    async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
        async with mcp_app.router.lifespan_context(mcp_app):
            await initialize_directory(settings)
            try:
                yield
            finally:
                await shutdown_directory()

    return Starlette(routes=[Mount("/", app=mcp_app)], lifespan=app_lifespan)


def main() -> None:
    """Main entry point for the server."""
    settings = DirectorySettings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info(f"Starting vpngate-directory on {settings.host}:{settings.port}")

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
