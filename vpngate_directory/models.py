"""Pydantic models for VPN Gate server records, queries and responses."""

import base64
import binascii
import logging
import re
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator

from .errors import InvalidProfilePayload, InvalidRequestParameter

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_optional_int(value: str | None) -> int | None:
    """Parse the leading integer of an upstream string field.

    Mirrors the feed producer's lenient number formatting: leading
    whitespace and trailing garbage are ignored ("12ms" -> 12).

    Returns:
        The parsed integer, or None when no leading digits are present
    """
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_int(value: str | None) -> int:
    """Parse an upstream numeric field, yielding 0 when it is not a number."""
    parsed = parse_optional_int(value)
    return parsed if parsed is not None else 0


class SortKey(str, Enum):
    """Orderings supported by the query engine."""

    SCORE = "score"
    SPEED = "speed"
    PING = "ping"
    UPTIME = "uptime"
    USERS = "users"


class LogPolicy(str, Enum):
    """Heuristic two-way classification of a server's free-text log policy."""

    NO_LOGS = "no-logs"
    LOGS = "logs"


class QualityTier(str, Enum):
    """Coarse quality label derived from score, ping and speed."""

    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


def classify_log_policy(log_type: str) -> LogPolicy:
    """Classify an upstream log policy string.

    The feed has no structured field for this; any text containing "No" or
    "no" (e.g. "No Logging") counts as a no-logs server.
    """
    if "No" in log_type or "no" in log_type:
        return LogPolicy.NO_LOGS
    return LogPolicy.LOGS


class ServerRecord(BaseModel):
    """One relay server entry from the VPN Gate feed.

    Field aliases follow the upstream/camelCase names so the JSON envelope
    matches what existing clients expect.
    """

    hostname: str = Field(..., description="Server hostname (without domain)")
    ip: str = Field(..., description="IPv4/IPv6 address literal")
    score: int = Field(0, ge=0, description="Quality score, higher is better")
    ping: str = Field("", description="Ping in milliseconds, as supplied upstream")
    speed: int = Field(0, ge=0, description="Line speed in bits per second")
    country_long: str = Field("", alias="countryLong", description="Country name")
    country_short: str = Field("", alias="countryShort", description="ISO country code")
    num_vpn_sessions: int = Field(
        0, ge=0, alias="numVpnSessions", description="Active VPN sessions"
    )
    uptime: int = Field(0, ge=0, description="Uptime in seconds")
    total_users: int = Field(0, ge=0, alias="totalUsers", description="Cumulative users")
    total_traffic: str = Field(
        "", alias="totalTraffic", description="Cumulative traffic in bytes, as supplied"
    )
    log_type: str = Field("", alias="logType", description="Free-text logging policy")
    operator: str = Field("", description="Operator name")
    message: str = Field("", description="Operator message")
    openvpn_config_base64: str = Field(
        ...,
        alias="openVPNConfigDataBase64",
        description="Base64-encoded OpenVPN connection profile",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def server_id(self) -> str:
        """Stable identity used by clients to remember a server."""
        return f"{self.ip}-{self.hostname}"

    @property
    def profile_filename(self) -> str:
        return f"{self.country_short}_{self.hostname}.ovpn"

    @property
    def ping_ms(self) -> int:
        """Ping as an integer; non-numeric upstream values count as 0."""
        return parse_int(self.ping)

    @property
    def log_policy(self) -> LogPolicy:
        return classify_log_policy(self.log_type)

    @property
    def quality_tier(self) -> QualityTier:
        """Rate the server from its score, ping and speed.

        An unparseable ping never satisfies a ping ceiling, so such servers
        end up Poor regardless of score.
        """
        ping = parse_optional_int(self.ping)
        mbps = self.speed / 1_000_000

        def ping_below(limit: int) -> bool:
            return ping is not None and ping < limit

        if self.score > 10_000_000 and ping_below(50) and mbps > 10:
            return QualityTier.EXCELLENT
        if self.score > 1_000_000 and ping_below(100) and mbps > 5:
            return QualityTier.GOOD
        if ping_below(200) and mbps > 1:
            return QualityTier.FAIR
        return QualityTier.POOR

    def decode_profile(self) -> str:
        """Decode the OpenVPN profile carried by this record."""
        return decode_profile_blob(self.openvpn_config_base64).decode("utf-8", errors="replace")


def decode_profile_blob(config_b64: str) -> bytes:
    """Decode a base64 profile payload.

    Raises:
        InvalidProfilePayload: If the payload is empty or not valid base64
    """
    if not config_b64:
        raise InvalidProfilePayload("No config provided")
    # Whitespace and missing "=" padding are tolerated, as browsers' atob() does
    compact = "".join(config_b64.split())
    if len(compact) % 4 == 1:
        raise InvalidProfilePayload("Invalid config payload: truncated base64 data")
    compact += "=" * (-len(compact) % 4)
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidProfilePayload(f"Invalid config payload: {e}") from e


_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no", ""}


def _coerce_int(name: str, raw: str, minimum: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise InvalidRequestParameter(name, raw, "not an integer") from e
    if value < minimum:
        raise InvalidRequestParameter(name, raw, f"must be >= {minimum}")
    return value


def _coerce_sort_key(raw: str) -> SortKey:
    try:
        return SortKey(raw.strip().lower())
    except ValueError as e:
        valid = ", ".join(key.value for key in SortKey)
        raise InvalidRequestParameter("sortBy", raw, f"expected one of {valid}") from e


def _coerce_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidRequestParameter(name, raw, "expected true or false")


class QueryRequest(BaseModel):
    """Parameters of a single directory query."""

    limit: int = Field(DEFAULT_LIMIT, ge=1, description="Page size")
    offset: int = Field(0, ge=0, description="Number of sorted records to skip")
    sort_by: SortKey = Field(SortKey.SCORE, description="Ordering of the result set")
    force_refresh: bool = Field(False, description="Skip the cache freshness check")

    model_config = {"frozen": True}

    @classmethod
    def from_params(
        cls, params: Mapping[str, str], default_limit: int = DEFAULT_LIMIT
    ) -> "QueryRequest":
        """Build a request from raw query-string parameters.

        Unusable values never fail the request: each one is logged and
        replaced by its documented default.

        Args:
            params: Query parameters (``limit``, ``offset``, ``sortBy``,
                ``forceRefresh`` or its older spelling ``refresh``)
            default_limit: Page size used when ``limit`` is absent or invalid

        Returns:
            Validated query request
        """
        limit = default_limit
        offset = 0
        sort_by = SortKey.SCORE
        force_refresh = False

        try:
            if params.get("limit") is not None:
                limit = _coerce_int("limit", params["limit"], minimum=1)
        except InvalidRequestParameter as e:
            logger.warning(f"{e}; using default {default_limit}")

        try:
            if params.get("offset") is not None:
                offset = _coerce_int("offset", params["offset"], minimum=0)
        except InvalidRequestParameter as e:
            logger.warning(f"{e}; using default 0")

        try:
            if params.get("sortBy") is not None:
                sort_by = _coerce_sort_key(params["sortBy"])
        except InvalidRequestParameter as e:
            logger.warning(f"{e}; using default {SortKey.SCORE.value}")

        refresh_param = "forceRefresh" if "forceRefresh" in params else "refresh"
        try:
            if params.get(refresh_param) is not None:
                force_refresh = _coerce_bool(refresh_param, params[refresh_param])
        except InvalidRequestParameter as e:
            logger.warning(f"{e}; using default false")

        return cls(limit=limit, offset=offset, sort_by=sort_by, force_refresh=force_refresh)


class CacheMeta(BaseModel):
    """Observational cache diagnostics attached to every response."""

    hit: bool = Field(..., description="Served from a fresh cache without refreshing")
    stale: bool = Field(False, description="A refresh failed and older data was served")
    age_seconds: int = Field(0, ge=0, description="Age of the served data")
    ttl_seconds: int = Field(0, ge=0, description="Seconds until the data expires")
    last_fetch: datetime | None = Field(
        None, alias="lastFetch", description="Time of the last successful fetch"
    )
    duration_seconds: int = Field(3600, description="Configured cache lifetime")

    model_config = {"frozen": True, "populate_by_name": True}


class QueryPage(BaseModel):
    """One page of sorted records."""

    servers: list[ServerRecord] = Field(default_factory=list)
    has_more: bool = Field(False)
    total: int = Field(0, ge=0)

    model_config = {"frozen": True}


class DirectoryResponse(BaseModel):
    """Envelope returned by the query endpoint."""

    servers: list[ServerRecord] = Field(default_factory=list)
    count: int = Field(..., ge=0, description="Number of servers on this page")
    total: int = Field(..., ge=0, description="Number of servers in the full sorted set")
    has_more: bool = Field(..., alias="hasMore")
    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    cache: CacheMeta

    model_config = {"populate_by_name": True}


class ErrorEnvelope(BaseModel):
    """Envelope returned when the directory cannot serve a request."""

    error: str
    details: str
    kind: str = "directory_error"
    servers: list[ServerRecord] = Field(default_factory=list)
    cache: dict[str, int | bool] = Field(default_factory=dict)


class RegistryStatus(BaseModel):
    """Snapshot of the registry cache state."""

    record_count: int = Field(0, ge=0)
    available: bool = Field(False, description="Whether any data has been fetched")
    fresh: bool = Field(False, description="Whether the data is within its TTL")
    age_seconds: int = Field(0, ge=0)
    ttl_seconds: int = Field(0, ge=0)
    last_fetch: datetime | None = None
    last_attempt: datetime | None = None
    last_error: str | None = None
    refresh_count: int = Field(0, ge=0, description="Successful refreshes")
    failure_count: int = Field(0, ge=0, description="Failed refreshes")
    duration_seconds: int = 3600


DEFAULT_PROFILE_FILENAME = "vpn-profile.ovpn"

# Quotes, backslashes, path separators and control characters
_UNSAFE_FILENAME_CHARS = re.compile(r'["\\/\x00-\x1f\x7f]')


class ProfileExport(BaseModel):
    """A decoded OpenVPN profile ready to be sent as a file download."""

    content: bytes
    filename: str = DEFAULT_PROFILE_FILENAME
    media_type: str = "application/x-openvpn-profile"

    @field_validator("filename")
    @classmethod
    def _clean_filename(cls, value: str) -> str:
        cleaned = _UNSAFE_FILENAME_CHARS.sub("", value).strip()
        return cleaned or DEFAULT_PROFILE_FILENAME

    @property
    def ascii_filename(self) -> str:
        """Filename with non-ASCII characters replaced, safe for any header."""
        return "".join(c if c.isascii() else "_" for c in self.filename)

    def headers(self) -> dict[str, str]:
        """HTTP headers that make clients save or import the profile.

        Non-ASCII filenames are sent as an RFC 5987 ``filename*`` parameter
        next to an ASCII fallback.
        """
        disposition = f'attachment; filename="{self.ascii_filename}"'
        if self.ascii_filename != self.filename:
            disposition += f"; filename*=UTF-8''{quote(self.filename, safe='')}"
        return {
            "Content-Disposition": disposition,
            "X-Content-Type-Options": "nosniff",
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
            "X-Suggested-Filename": self.ascii_filename,
        }
