"""
test_scheduler.py — Tests for the reminder digest scheduler

The tick opens its own SessionLocal(), so tests patch
app.database.SessionLocal to hand back the test session.

Called by: pytest
Depends on: app/scheduler.py, tests/conftest.py
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.orm import Session

from app.scheduler import _scheduler_tick, build_reminder_digest, start_scheduler
from app.services.follow_up_service import add_follow_up

NOW = datetime(2025, 1, 8, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def scheduler_db(db_session: Session):
    """Patch SessionLocal so the tick uses the test DB (close disabled)."""
    original_close = db_session.close
    db_session.close = lambda: None
    with patch("app.database.SessionLocal", return_value=db_session):
        yield db_session
    db_session.close = original_close


def test_digest_splits_overdue_and_due_today(db_session, make_party):
    late = make_party("P0001")
    today = make_party("P0002")
    later = make_party("P0003")
    add_follow_up(db_session, late, datetime(2025, 1, 5, tzinfo=timezone.utc))
    add_follow_up(db_session, today, datetime(2025, 1, 8, 15, 0, tzinfo=timezone.utc))
    add_follow_up(db_session, later, datetime(2025, 1, 20, tzinfo=timezone.utc))

    digest = build_reminder_digest(db_session, now=NOW)

    assert digest["overdue"] == ["P0001"]
    assert digest["due_today"] == ["P0002"]


def test_earlier_today_counts_once(db_session, make_party):
    party = make_party("P0001")
    add_follow_up(db_session, party, datetime(2025, 1, 8, 7, 0, tzinfo=timezone.utc))

    digest = build_reminder_digest(db_session, now=NOW)

    assert digest["overdue"] == ["P0001"]
    assert digest["due_today"] == []


def test_tick_uses_own_session(scheduler_db, make_party):
    party = make_party("P0001")
    add_follow_up(scheduler_db, party, datetime(2020, 1, 1, tzinfo=timezone.utc))

    digest = _scheduler_tick()

    assert digest["overdue"] == ["P0001"]


def test_start_scheduler_survives_tick_errors():
    sleeps = []

    async def _fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) >= 3:
            raise asyncio.CancelledError

    with (
        patch("app.scheduler.asyncio.sleep", side_effect=_fake_sleep),
        patch("app.scheduler._scheduler_tick", side_effect=RuntimeError("db down")),
    ):
        with pytest.raises(asyncio.CancelledError):
            asyncio.run(start_scheduler())

    # startup delay, then one interval per tick
    assert sleeps[0] == 10
    assert sleeps[1] == 60 * 60
