"""Party service — deletion guard, statistics, profile updates, dev reset.

Quotation-aware checks go through a QuotationCounter passed in by the
caller. Without one, the guard and the statistics skip the quotation
check and report quotation_counter_available = False.

Usage:
    from app.services.party_service import SqlQuotationCounter, delete_party
    delete_party(db, party, counter=SqlQuotationCounter(db))
"""

import logging
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import Conflict
from app.models import FollowUp, Party, Quotation

log = logging.getLogger("quotedesk.parties")

# Fields a client may change after creation; party_id is immutable
EDITABLE_FIELDS = ("name", "phone", "address", "email", "notes", "tags", "is_active")


class QuotationCounter(Protocol):
    def count_for_party(self, party_id: int) -> int: ...

    def count_parties_with_quotations(self) -> int: ...


class SqlQuotationCounter:
    """QuotationCounter backed by the quotations table."""

    def __init__(self, db: Session):
        self.db = db

    def count_for_party(self, party_id: int) -> int:
        return (
            self.db.query(func.count(Quotation.id))
            .filter(Quotation.party_id == party_id)
            .scalar()
            or 0
        )

    def count_parties_with_quotations(self) -> int:
        return self.db.query(func.count(func.distinct(Quotation.party_id))).scalar() or 0


def find_by_party_code(db: Session, party_code: str) -> Party | None:
    return db.query(Party).filter(Party.party_id == party_code.strip().upper()).first()


def update_party(db: Session, party: Party, updates: dict) -> Party:
    for key, value in updates.items():
        if key in EDITABLE_FIELDS:
            setattr(party, key, value)
    db.commit()
    return party


def delete_party(db: Session, party: Party, counter: QuotationCounter | None = None) -> None:
    """Delete a party and its follow-ups. Refused while quotations exist."""
    if counter is not None:
        existing = counter.count_for_party(party.id)
        if existing:
            raise Conflict(
                f"Cannot delete party {party.party_id}: {existing} quotation(s) exist. "
                "Delete the quotations first."
            )
    else:
        log.info("No quotation counter supplied — deleting %s without quotation check", party.party_id)
    party_code = party.party_id
    db.delete(party)
    try:
        db.commit()
    except IntegrityError:
        # quotations.party_id is NOT NULL, so surviving quotations block the delete
        db.rollback()
        raise Conflict(
            f"Cannot delete party {party_code}: quotations still reference it. "
            "Delete the quotations first."
        )
    log.info("Deleted party %s", party_code)


def party_stats(db: Session, counter: QuotationCounter | None = None) -> dict:
    total = db.query(func.count(Party.id)).scalar() or 0
    active = db.query(func.count(Party.id)).filter(Party.is_active.is_(True)).scalar() or 0
    stats = {
        "total_parties": total,
        "active_parties": active,
        "parties_with_follow_up": (
            db.query(func.count(Party.id)).filter(Party.next_follow_up_at.isnot(None)).scalar() or 0
        ),
        "quotation_counter_available": counter is not None,
        "parties_with_quotations": None,
        "parties_without_quotations": None,
    }
    if counter is not None:
        with_quotes = counter.count_parties_with_quotations()
        stats["parties_with_quotations"] = with_quotes
        stats["parties_without_quotations"] = total - with_quotes
    return stats


def reset_parties(db: Session) -> dict:
    """Delete every party, follow-up and quotation. Callers gate this to development."""
    quotations = db.query(Quotation).delete(synchronize_session=False)
    follow_ups = db.query(FollowUp).delete(synchronize_session=False)
    parties = db.query(Party).delete(synchronize_session=False)
    db.commit()
    log.warning(
        "Reset removed %d parties, %d follow-ups, %d quotations", parties, follow_ups, quotations
    )
    return {"parties": parties, "follow_ups": follow_ups, "quotations": quotations}
