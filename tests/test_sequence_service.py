"""
test_sequence_service.py — Tests for party identifier sequencing

Covers the pure assignment rules (first id, increment, widening, corrupt
maximum fallback, clock fallback) and create_party's retry loop, with the
maximum read patched to simulate a concurrent writer.

Called by: pytest
Depends on: app/services/sequence_service.py, tests/conftest.py
"""

import logging
from unittest.mock import patch

import pytest

from app.errors import Conflict
from app.models import Party
from app.services.sequence_service import (
    assign_party_id,
    clock_party_id,
    create_party,
    current_max_party_id,
    format_party_id,
    parse_party_id,
)

PARTY_FIELDS = {"name": "Acme Systems", "phone": "555-0100", "address": "1 Main St"}


# ── Pure assignment ─────────────────────────────────────────────────


def test_no_prior_identifier_starts_at_one():
    assert assign_party_id(None, fallback_count=0) == "P0001"


def test_increments_parsed_maximum():
    assert assign_party_id("P0041", fallback_count=3) == "P0042"


def test_widens_past_four_digits():
    assert assign_party_id("P9999", fallback_count=0) == "P10000"
    assert format_party_id(123456) == "P123456"


def test_corrupt_maximum_falls_back_to_count():
    assert assign_party_id("PXYZ", fallback_count=7) == "P0008"


def test_parse_party_id():
    assert parse_party_id("P0007") == 7
    assert parse_party_id(" P0012 ") == 12
    assert parse_party_id("Q0001") is None
    assert parse_party_id("P12a") is None
    assert parse_party_id(None) is None


def test_clock_party_id_uses_last_six_digits():
    assert clock_party_id(now_ms=1_700_000_123_456) == "P123456"
    assert clock_party_id(now_ms=5) == "P0005"


# ── Persistence boundary ────────────────────────────────────────────


def test_serial_creations_are_sequential(db_session):
    ids = [create_party(db_session, **PARTY_FIELDS).party_id for _ in range(5)]
    assert ids == ["P0001", "P0002", "P0003", "P0004", "P0005"]


def test_current_max_orders_by_length(db_session, make_party):
    make_party("P9999")
    make_party("P10000")
    assert current_max_party_id(db_session) == "P10000"
    assert create_party(db_session, **PARTY_FIELDS).party_id == "P10001"


def test_unparseable_stored_maximum_uses_count(db_session, make_party):
    make_party("PLEGACY")
    party = create_party(db_session, **PARTY_FIELDS)
    assert party.party_id == "P0002"


def test_stale_maximum_retries_with_fresh_read(db_session, make_party):
    """A concurrent writer took P0001 after our first read of the maximum."""
    make_party("P0001")
    with patch(
        "app.services.sequence_service.current_max_party_id",
        side_effect=[None, "P0001"],
    ) as max_read:
        party = create_party(db_session, **PARTY_FIELDS)
    assert party.party_id == "P0002"
    assert max_read.call_count == 2
    assert db_session.query(Party).count() == 2


def test_identifiers_stay_distinct_under_collisions(db_session, make_party):
    make_party("P0001")
    make_party("P0002")
    stale_reads = [None, "P0001", "P0002"]
    with patch(
        "app.services.sequence_service.current_max_party_id", side_effect=stale_reads
    ):
        party = create_party(db_session, **PARTY_FIELDS)
    codes = [p.party_id for p in db_session.query(Party).all()]
    assert party.party_id == "P0003"
    assert len(codes) == len(set(codes))


def test_exhausted_retries_use_clock_identifier(db_session, make_party, caplog):
    make_party("P0001")
    with (
        patch("app.services.sequence_service.current_max_party_id", return_value=None),
        patch("app.services.sequence_service.clock_party_id", return_value="P654321"),
        caplog.at_level(logging.WARNING, logger="quotedesk.sequence"),
    ):
        party = create_party(db_session, **PARTY_FIELDS)
    assert party.party_id == "P654321"
    assert any("clock-derived" in r.getMessage() for r in caplog.records)


def test_clock_collision_surfaces_conflict(db_session, make_party):
    make_party("P0001")
    with (
        patch("app.services.sequence_service.current_max_party_id", return_value=None),
        patch("app.services.sequence_service.clock_party_id", return_value="P0001"),
    ):
        with pytest.raises(Conflict):
            create_party(db_session, **PARTY_FIELDS)
    assert db_session.query(Party).count() == 1
