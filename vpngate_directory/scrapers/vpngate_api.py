"""HTTP client for the VPN Gate server list API."""

import logging

import httpx

from ..config import DEFAULT_API_URL, DEFAULT_USER_AGENT
from ..errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class VPNGateClient:
    """Fetches the raw VPN Gate feed.

    Each call is one live round trip: no retries here (the registry cache
    decides what a failure means) and caching is disabled via request
    headers.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_url: Feed URL
            user_agent: User-Agent header sent upstream
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_url = api_url
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport

    async def fetch_raw(self) -> str:
        """Download the feed document.

        Returns:
            Feed text

        Raises:
            UpstreamUnavailable: On transport errors or non-success status codes
        """
        headers = {
            "User-Agent": self.user_agent,
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        }
        logger.info(f"Fetching VPN server list from {self.api_url}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(self.api_url, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Request to VPN Gate failed: {e}") from e

        if not response.is_success:
            raise UpstreamUnavailable(
                f"VPN Gate API responded with status: {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(f"Received {len(response.content)} bytes from VPN Gate")
        return response.text
