"""
routers/follow_ups.py — Reminder queries over party follow-ups

Business Rules:
- upcoming: active parties whose next follow-up falls on the given UTC day
  (today when omitted)
- overdue: active parties whose next follow-up is already past
- Both ordered by next follow-up date ascending

Called by: main.py (router mount)
Depends on: services/follow_up_service, routers/parties (serialization)
"""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_api_key
from ..services.follow_up_service import overdue_parties, upcoming_parties
from .parties import party_to_dict

router = APIRouter(tags=["follow-ups"], dependencies=[Depends(require_api_key)])


@router.get("/api/follow-ups/upcoming")
async def upcoming(day: date | None = Query(None, alias="date"), db: Session = Depends(get_db)):
    reference = day or datetime.now(timezone.utc).date()
    parties = upcoming_parties(db, reference)
    return {
        "date": reference.isoformat(),
        "parties": [party_to_dict(p) for p in parties],
        "count": len(parties),
    }


@router.get("/api/follow-ups/overdue")
async def overdue(db: Session = Depends(get_db)):
    now = datetime.now(timezone.utc)
    parties = overdue_parties(db, now)
    return {
        "as_of": now.isoformat(),
        "parties": [party_to_dict(p) for p in parties],
        "count": len(parties),
    }
