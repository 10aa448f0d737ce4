"""Ingestion of the upstream VPN Gate feed."""

from .feed_parser import parse_feed, parse_server_line
from .vpngate_api import VPNGateClient

__all__ = [
    "parse_feed",
    "parse_server_line",
    "VPNGateClient",
]
