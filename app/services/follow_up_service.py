"""Follow-up scheduling — keeps Party.next_follow_up_* in step with the list.

The projection is denormalized onto the party so reminder queries are a
single indexed range scan over (is_active, next_follow_up_at).

Business Rules:
- Adding a follow-up replaces the projection only when the projection is
  empty or the new date is strictly earlier
- Completing the projected follow-up recomputes from scratch: earliest
  incomplete follow-up strictly after now, else empty
- Completing any other follow-up leaves the projection alone
- Completing an already-completed follow-up is a no-op
- Reminder queries cover active parties only, ordered by projected date

Called by: routers/parties.py, routers/follow_ups.py, scheduler.py
Depends on: models (Party, FollowUp)
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.orm import Session

from app.errors import NotFound, ValidationFailure
from app.models import FollowUp, Party

log = logging.getLogger("quotedesk.follow_ups")


@dataclass(frozen=True)
class NextFollowUp:
    follow_up_id: int
    scheduled_at: datetime


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def earliest_pending(follow_ups, after: datetime | None = None) -> NextFollowUp | None:
    """Earliest incomplete follow-up, optionally restricted to dates > after.

    Ties on date go to the lower id so the result is deterministic.
    """
    candidates = [
        f for f in follow_ups
        if not f.is_completed and (after is None or _as_utc(f.scheduled_at) > _as_utc(after))
    ]
    if not candidates:
        return None
    best = min(candidates, key=lambda f: (_as_utc(f.scheduled_at), f.id or 0))
    return NextFollowUp(follow_up_id=best.id, scheduled_at=_as_utc(best.scheduled_at))


def current_projection(party: Party) -> NextFollowUp | None:
    if party.next_follow_up_id is None or party.next_follow_up_at is None:
        return None
    return NextFollowUp(party.next_follow_up_id, _as_utc(party.next_follow_up_at))


def _set_projection(party: Party, projection: NextFollowUp | None) -> None:
    party.next_follow_up_id = projection.follow_up_id if projection else None
    party.next_follow_up_at = projection.scheduled_at if projection else None


# ── Mutations ────────────────────────────────────────────────────────────


def add_follow_up(
    db: Session, party: Party, scheduled_at: datetime, note: str | None = None
) -> NextFollowUp | None:
    if scheduled_at is None:
        raise ValidationFailure("scheduled_at is required", "scheduled_at")
    scheduled_at = _as_utc(scheduled_at)

    follow_up = FollowUp(scheduled_at=scheduled_at, note=(note or "").strip() or None)
    party.follow_ups.append(follow_up)
    db.flush()

    projection = current_projection(party)
    if projection is None or scheduled_at < projection.scheduled_at:
        projection = NextFollowUp(follow_up.id, scheduled_at)
        _set_projection(party, projection)

    db.commit()
    log.info("Follow-up %d added for %s at %s", follow_up.id, party.party_id, scheduled_at)
    return projection


def complete_follow_up(
    db: Session, party: Party, follow_up_id: int, now: datetime | None = None
) -> NextFollowUp | None:
    follow_up = next((f for f in party.follow_ups if f.id == follow_up_id), None)
    if follow_up is None:
        raise NotFound("Follow-up", follow_up_id)

    projection = current_projection(party)
    if follow_up.is_completed:
        return projection

    now = _as_utc(now or datetime.now(timezone.utc))
    follow_up.is_completed = True
    follow_up.completed_at = now

    if projection is not None and projection.follow_up_id == follow_up.id:
        projection = earliest_pending(party.follow_ups, after=now)
        _set_projection(party, projection)

    db.commit()
    return projection


# ── Reminder queries ─────────────────────────────────────────────────────


def _active_projected(db: Session):
    return db.query(Party).filter(
        Party.is_active.is_(True), Party.next_follow_up_at.isnot(None)
    )


def upcoming_parties(db: Session, reference_date: date | datetime) -> list[Party]:
    """Active parties whose next follow-up falls on reference_date (UTC day)."""
    if isinstance(reference_date, datetime):
        reference_date = _as_utc(reference_date).date()
    start = datetime.combine(reference_date, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return (
        _active_projected(db)
        .filter(Party.next_follow_up_at >= start, Party.next_follow_up_at < end)
        .order_by(Party.next_follow_up_at.asc(), Party.id.asc())
        .all()
    )


def overdue_parties(db: Session, now: datetime | None = None) -> list[Party]:
    now = _as_utc(now or datetime.now(timezone.utc))
    return (
        _active_projected(db)
        .filter(Party.next_follow_up_at < now)
        .order_by(Party.next_follow_up_at.asc(), Party.id.asc())
        .all()
    )
