"""Party identifier sequencing — P0001, P0002, ... without a counter table.

The next identifier is derived from the highest identifier already stored.
Two concurrent creations can read the same maximum; the unique constraint on
parties.party_id catches the loser, which re-reads the maximum and tries
again. After party_id_max_attempts failures a clock-derived identifier is
used so the creation still goes through.

Usage:
    from app.services.sequence_service import assign_party_id, create_party
    assign_party_id("P0041", fallback_count=40)   # -> "P0042"
    party = create_party(db, name="Acme", phone="555-0100", address="1 Main St")
"""

import logging
import re
import time

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Conflict
from app.models import Party

log = logging.getLogger("quotedesk.sequence")

PARTY_ID_PREFIX = "P"
PARTY_ID_WIDTH = 4
_PARTY_ID_RE = re.compile(rf"^{PARTY_ID_PREFIX}(\d+)$")


# ═══════════════════════════════════════════════════════════════════════
#  PURE ASSIGNMENT
# ═══════════════════════════════════════════════════════════════════════


def format_party_id(number: int) -> str:
    """Zero-pad to 4 digits; wider numbers are kept whole (P12345)."""
    return f"{PARTY_ID_PREFIX}{number:0{PARTY_ID_WIDTH}d}"


def parse_party_id(party_id: str | None) -> int | None:
    """Return the numeric payload of a well-formed identifier, else None."""
    if not party_id:
        return None
    match = _PARTY_ID_RE.match(party_id.strip())
    if not match:
        return None
    return int(match.group(1))


def assign_party_id(current_max: str | None, fallback_count: int) -> str:
    """Derive the identifier that follows current_max.

    No prior identifier → P0001. A corrupt or foreign prior identifier falls
    back to fallback_count + 1 (total parties + 1), trading strict
    monotonicity for forward progress.
    """
    if current_max is None:
        return format_party_id(1)
    number = parse_party_id(current_max)
    if number is None:
        log.warning(
            "Unparseable party_id %r — falling back to count-based sequence (%d)",
            current_max,
            fallback_count + 1,
        )
        return format_party_id(fallback_count + 1)
    return format_party_id(number + 1)


def clock_party_id(now_ms: int | None = None) -> str:
    """Last-resort identifier from the wall clock (milliseconds, last 6 digits)."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return format_party_id(now_ms % 1_000_000)


# ═══════════════════════════════════════════════════════════════════════
#  PERSISTENCE BOUNDARY — read max, assign, insert, retry on collision
# ═══════════════════════════════════════════════════════════════════════


def current_max_party_id(db: Session) -> str | None:
    """Highest stored identifier with the P prefix.

    Ordered by length first so P10000 outranks P9999.
    """
    row = (
        db.query(Party.party_id)
        .filter(Party.party_id.like(f"{PARTY_ID_PREFIX}%"))
        .order_by(func.length(Party.party_id).desc(), Party.party_id.desc())
        .first()
    )
    return row[0] if row else None


def count_parties(db: Session) -> int:
    return db.query(func.count(Party.id)).scalar() or 0


def party_id_taken(db: Session, party_id: str) -> bool:
    return db.query(Party.id).filter(Party.party_id == party_id).first() is not None


def create_party(db: Session, **fields) -> Party:
    """Insert a new party with a freshly assigned party_id and commit.

    Retries on unique-constraint collisions, re-reading the maximum each time.
    Raises Conflict only if the clock-derived last resort also collides.
    """
    attempts = max(1, settings.party_id_max_attempts)
    for attempt in range(1, attempts + 1):
        party_id = assign_party_id(current_max_party_id(db), count_parties(db))
        party = Party(party_id=party_id, **fields)
        db.add(party)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            if not party_id_taken(db, party_id):
                raise
            log.info(
                "party_id %s already taken (attempt %d/%d) — retrying",
                party_id,
                attempt,
                attempts,
            )
            continue
        db.commit()
        return party

    party_id = clock_party_id()
    log.warning(
        "party_id assignment exhausted %d attempts — using clock-derived %s",
        attempts,
        party_id,
    )
    party = Party(party_id=party_id, **fields)
    db.add(party)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"Could not assign a unique party_id (last tried {party_id})")
    return party
