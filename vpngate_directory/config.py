"""Runtime settings for the directory service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://www.vpngate.net/api/iphone/"
DEFAULT_USER_AGENT = "VPNGateClient/1.0"


class DirectorySettings(BaseSettings):
    """Settings for the cache, the upstream client and the HTTP server.

    Every field can be set from a ``VPNGATE_``-prefixed environment variable,
    e.g. ``VPNGATE_CACHE_TTL_SECONDS=600``. Invalid values raise
    ``pydantic.ValidationError`` when the settings are created.
    """

    model_config = SettingsConfigDict(env_prefix="VPNGATE_", frozen=True)

    api_url: str = Field(default=DEFAULT_API_URL, description="VPN Gate feed URL")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="User-Agent sent upstream")
    request_timeout: float = Field(default=30.0, gt=0, description="Upstream request timeout (s)")
    cache_ttl_seconds: int = Field(default=3600, ge=1, description="Cache freshness window")
    default_limit: int = Field(default=50, ge=1, description="Page size when none is given")
    prewarm: bool = Field(default=False, description="Refresh the cache in the background")
    prewarm_interval_seconds: int = Field(
        default=900, ge=1, description="Seconds between background refreshes"
    )
    host: str = Field(default="127.0.0.1", description="HTTP bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="HTTP port")
    log_level: str = Field(default="INFO", description="Root log level")
