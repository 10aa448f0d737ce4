"""Parser for the VPN Gate CSV server list."""

import logging

from pydantic import ValidationError

from ..errors import MalformedUpstreamDocument
from ..models import ServerRecord, parse_int

logger = logging.getLogger(__name__)

# Leading lines of the feed ("*vpn_servers" marker and the column header)
HEADER_LINES = 2

# Columns in a complete server line; extra trailing columns are ignored
MIN_FIELDS = 15

# Shorter profile payloads are truncation artifacts, not real configs
MIN_PROFILE_LENGTH = 100

COMMENT_PREFIXES = ("*", "#")


def _count(value: str) -> int:
    """Parse a counter column; garbage and negative values become 0."""
    return max(parse_int(value), 0)


def parse_server_line(line: str) -> ServerRecord | None:
    """Parse a single feed line into a server record.

    Args:
        line: One line of the feed, already stripped

    Returns:
        ServerRecord, or None for blank, comment, short or profile-less lines
    """
    if not line or line.startswith(COMMENT_PREFIXES):
        return None

    columns = line.split(",")
    if len(columns) < MIN_FIELDS:
        logger.debug(f"Skipping short line ({len(columns)} fields)")
        return None

    profile = columns[14]
    if len(profile) <= MIN_PROFILE_LENGTH:
        logger.debug(f"Skipping {columns[0]}: missing or truncated OpenVPN profile")
        return None

    try:
        return ServerRecord(
            hostname=columns[0],
            ip=columns[1],
            score=_count(columns[2]),
            ping=columns[3],
            speed=_count(columns[4]),
            country_long=columns[5],
            country_short=columns[6],
            num_vpn_sessions=_count(columns[7]),
            uptime=_count(columns[8]),
            total_users=_count(columns[9]),
            total_traffic=columns[10],
            log_type=columns[11],
            operator=columns[12],
            message=columns[13],
            openvpn_config_base64=profile,
        )
    except ValidationError as e:
        logger.warning(f"Failed to build record for {columns[0]}: {e}")
        return None


def parse_feed(raw_text: str) -> list[ServerRecord]:
    """Parse the VPN Gate feed into server records.

    The first two lines are always skipped. Bad lines are dropped without
    failing the document, since the upstream list routinely contains
    partial entries.

    Args:
        raw_text: Full feed document

    Returns:
        Records in feed order

    Raises:
        MalformedUpstreamDocument: If raw_text is not a string
    """
    if not isinstance(raw_text, str):
        raise MalformedUpstreamDocument(
            f"Expected feed text, got {type(raw_text).__name__}"
        )

    lines = raw_text.split("\n")
    records: list[ServerRecord] = []
    skipped = 0

    for raw_line in lines[HEADER_LINES:]:
        record = parse_server_line(raw_line.strip())
        if record is None:
            skipped += 1
            continue
        records.append(record)

    logger.info(f"Parsed {len(records)} servers from feed ({skipped} lines skipped)")
    return records
