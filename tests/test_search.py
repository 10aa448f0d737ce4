"""Tests for fuzzy search and attribute filters."""

import pytest
from conftest import make_record
from vpngate_directory.models import LogPolicy
from vpngate_directory.search import search_records


@pytest.fixture
def records():
    return [
        make_record(
            hostname="public-vpn-1",
            country_long="Japan",
            country_short="JP",
            score=300,
            speed=20_000_000,
            ping="15",
            log_type="2weeks",
            operator="Daiyuu Nobori",
        ),
        make_record(
            hostname="vpn482910",
            country_long="Korea Republic of",
            country_short="KR",
            score=900,
            speed=2_000_000,
            ping="60",
            log_type="No Logging",
            operator="DESKTOP-SEOUL",
        ),
        make_record(
            hostname="opengw-us",
            country_long="United States",
            country_short="US",
            score=100,
            speed=80_000_000,
            ping="abc",
            log_type="2weeks",
            operator="Open Gateway",
        ),
    ]


def hostnames(records):
    return [r.hostname for r in records]


def test_no_text_returns_by_score(records):
    assert hostnames(search_records(records)) == ["vpn482910", "public-vpn-1", "opengw-us"]


def test_text_matches_country(records):
    results = search_records(records, text="japan")

    assert results
    assert results[0].country_short == "JP"


def test_text_without_match(records):
    assert search_records(records, text="zzzzqqqq") == []


def test_country_filter(records):
    assert hostnames(search_records(records, country="kr")) == ["vpn482910"]


def test_log_policy_filter(records):
    results = search_records(records, log_policy=LogPolicy.NO_LOGS)

    assert hostnames(results) == ["vpn482910"]


def test_speed_floor(records):
    results = search_records(records, min_speed_mbps=10)

    assert hostnames(results) == ["public-vpn-1", "opengw-us"]


def test_ping_ceiling(records):
    assert hostnames(search_records(records, max_ping=20)) == ["public-vpn-1"]


def test_ping_ceiling_excludes_unparseable_ping():
    records = [
        make_record(hostname="no-ping", ping="abc", score=900),
        make_record(hostname="fast", ping="30", score=100),
        make_record(hostname="slow", ping="80", score=500),
    ]

    assert hostnames(search_records(records, max_ping=50)) == ["fast"]


def test_unparseable_ping_kept_without_ceiling(records):
    assert "opengw-us" in hostnames(search_records(records))


def test_limit(records):
    assert len(search_records(records, limit=1)) == 1


def test_input_not_mutated(records):
    before = list(records)

    search_records(records)

    assert records == before
