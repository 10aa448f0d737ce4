"""Sorting and pagination over a cached record set."""

from collections.abc import Callable, Sequence

from .models import QueryPage, ServerRecord, SortKey

# (key function, descending)
_ORDERINGS: dict[SortKey, tuple[Callable[[ServerRecord], int], bool]] = {
    SortKey.SCORE: (lambda r: r.score, True),
    SortKey.SPEED: (lambda r: r.speed, True),
    # Non-numeric pings parse as 0 and therefore sort first
    SortKey.PING: (lambda r: r.ping_ms, False),
    SortKey.UPTIME: (lambda r: r.uptime, True),
    # Fewer concurrent sessions is better
    SortKey.USERS: (lambda r: r.num_vpn_sessions, False),
}


def sort_records(records: Sequence[ServerRecord], sort_key: SortKey) -> list[ServerRecord]:
    """Return a sorted copy of records; the input is left untouched.

    Ties keep their feed order.
    """
    key, descending = _ORDERINGS.get(sort_key, _ORDERINGS[SortKey.SCORE])
    return sorted(records, key=key, reverse=descending)


def query_records(
    records: Sequence[ServerRecord],
    sort_key: SortKey = SortKey.SCORE,
    offset: int = 0,
    limit: int = 50,
) -> QueryPage:
    """Sort records and cut one page out of the result.

    Args:
        records: Full record set (not modified)
        sort_key: Ordering to apply
        offset: Number of sorted records to skip
        limit: Maximum page size

    Returns:
        Page with the total size of the sorted set and whether more follow
    """
    ordered = sort_records(records, sort_key)
    total = len(ordered)
    page = ordered[offset : offset + limit]
    return QueryPage(servers=page, has_more=offset + limit < total, total=total)
