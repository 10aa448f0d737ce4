"""Fuzzy search and attribute filters for MCP clients."""

from collections.abc import Sequence

from rapidfuzz import fuzz, process, utils

from .models import LogPolicy, ServerRecord, parse_optional_int

# Minimum rapidfuzz score for a text match
MATCH_THRESHOLD = 60


def _matches_filters(
    record: ServerRecord,
    country: str | None,
    log_policy: LogPolicy | None,
    min_speed_mbps: float,
    max_ping: int | None,
) -> bool:
    if country and record.country_short.upper() != country.upper():
        return False
    if log_policy is not None and record.log_policy != log_policy:
        return False
    if record.speed < min_speed_mbps * 1_000_000:
        return False
    if max_ping is not None:
        # A non-numeric ping never satisfies a ceiling
        ping = parse_optional_int(record.ping)
        if ping is None or ping > max_ping:
            return False
    return True


def search_records(
    records: Sequence[ServerRecord],
    text: str = "",
    country: str | None = None,
    log_policy: LogPolicy | None = None,
    min_speed_mbps: float = 0.0,
    max_ping: int | None = None,
    limit: int = 20,
) -> list[ServerRecord]:
    """Find servers by free text and attribute filters.

    Text is fuzzy matched against hostname, country name and operator. With
    no text, filtered records are returned by descending score.

    Args:
        records: Record set to search (not modified)
        text: Free-text query
        country: Two-letter country code
        log_policy: Required log policy class
        min_speed_mbps: Speed floor in Mbps
        max_ping: Ping ceiling in milliseconds
        limit: Maximum number of results

    Returns:
        Matching records, best match first
    """
    candidates = [
        r
        for r in records
        if _matches_filters(r, country, log_policy, min_speed_mbps, max_ping)
    ]

    if not text.strip():
        candidates.sort(key=lambda r: r.score, reverse=True)
        return candidates[:limit]

    choices = [f"{r.hostname} {r.country_long} {r.operator}" for r in candidates]
    matches = process.extract(
        text,
        choices,
        scorer=fuzz.WRatio,
        processor=utils.default_process,
        limit=None,
        score_cutoff=MATCH_THRESHOLD,
    )

    # Best fuzzy score first, score breaks ties
    ranked = sorted(matches, key=lambda m: (m[1], candidates[m[2]].score), reverse=True)
    return [candidates[idx] for _, _, idx in ranked[:limit]]
