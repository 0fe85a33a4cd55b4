"""
routers/parties.py — Party (client) & Follow-up Routes

CRUD for parties, lookup by the human-readable party code (P0001), party
statistics, the development-only reset, and the per-party follow-up list.

Business Rules:
- party_id is assigned server-side by sequence_service, never accepted or changed
- A party with quotations cannot be deleted (409)
- Reset is development-only (403 elsewhere)
- Adding/completing follow-ups returns the refreshed next-follow-up projection

Called by: main.py (router mount)
Depends on: models, dependencies, services (sequence, party, follow_up)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from loguru import logger
from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_party_or_404, require_api_key
from ..errors import NotFound
from ..models import FollowUp, Party
from ..rate_limit import limiter
from ..schemas.parties import FollowUpCreate, PartyCreate, PartyUpdate
from ..services.follow_up_service import NextFollowUp, add_follow_up, complete_follow_up
from ..services.party_service import (
    SqlQuotationCounter,
    delete_party,
    find_by_party_code,
    party_stats,
    reset_parties,
    update_party,
)
from ..services.sequence_service import create_party

router = APIRouter(tags=["parties"], dependencies=[Depends(require_api_key)])


# ── Serialization ────────────────────────────────────────────────────────


def next_follow_up_to_dict(projection: NextFollowUp | None) -> dict | None:
    if projection is None:
        return None
    return {
        "follow_up_id": projection.follow_up_id,
        "scheduled_at": projection.scheduled_at.isoformat(),
    }


def follow_up_to_dict(f: FollowUp) -> dict:
    return {
        "id": f.id,
        "party_id": f.party_id,
        "scheduled_at": f.scheduled_at.isoformat() if f.scheduled_at else None,
        "note": f.note,
        "is_completed": f.is_completed,
        "completed_at": f.completed_at.isoformat() if f.completed_at else None,
    }


def party_to_dict(p: Party) -> dict:
    """Serialize a Party to API response dict."""
    return {
        "id": p.id,
        "party_id": p.party_id,
        "name": p.name,
        "phone": p.phone,
        "address": p.address,
        "email": p.email,
        "notes": p.notes,
        "tags": p.tags or [],
        "is_active": p.is_active,
        "next_follow_up": (
            {
                "follow_up_id": p.next_follow_up_id,
                "scheduled_at": p.next_follow_up_at.isoformat(),
            }
            if p.next_follow_up_at
            else None
        ),
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


# ── Parties CRUD ─────────────────────────────────────────────────────────


@router.get("/api/parties")
async def list_parties(
    search: str = Query("", description="Name, phone, email or party code"),
    tag: str = "",
    active: bool | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(Party)
    if search.strip():
        safe = search.strip().replace("%", r"\%").replace("_", r"\_")
        query = query.filter(
            or_(
                Party.name.ilike(f"%{safe}%", escape="\\"),
                Party.phone.ilike(f"%{safe}%", escape="\\"),
                Party.email.ilike(f"%{safe}%", escape="\\"),
                Party.party_id.ilike(f"%{safe}%", escape="\\"),
            )
        )
    if active is not None:
        query = query.filter(Party.is_active.is_(active))
    if tag.strip():
        # JSON array stored as text on both SQLite and PostgreSQL
        safe_tag = tag.strip().replace('"', "")
        query = query.filter(cast(Party.tags, String).like(f'%"{safe_tag}"%'))
    total = query.count()
    parties = (
        query.order_by(func.length(Party.party_id), Party.party_id)
        .limit(limit)
        .offset(offset)
        .all()
    )
    return {
        "parties": [party_to_dict(p) for p in parties],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/api/parties", status_code=201)
@limiter.limit("30/minute")
async def create_party_route(request: Request, payload: PartyCreate, db: Session = Depends(get_db)):
    party = create_party(db, **payload.model_dump())
    logger.info("Party {} created: {}", party.party_id, party.name)
    return party_to_dict(party)


@router.get("/api/parties/stats")
async def get_party_stats(db: Session = Depends(get_db)):
    return party_stats(db, counter=SqlQuotationCounter(db))


@router.post("/api/parties/reset")
@limiter.limit("5/minute")
async def reset_all_parties(request: Request, db: Session = Depends(get_db)):
    """Wipe parties, follow-ups and quotations. Development environments only."""
    if not settings.is_development:
        raise HTTPException(403, "Reset is only available in development")
    removed = reset_parties(db)
    logger.warning("Party data reset via API: {}", removed)
    return {"ok": True, "removed": removed}


@router.get("/api/parties/code/{party_code}")
async def get_party_by_code(party_code: str, db: Session = Depends(get_db)):
    party = find_by_party_code(db, party_code)
    if not party:
        raise NotFound("Party", party_code)
    return party_to_dict(party)


@router.get("/api/parties/{party_id}")
async def get_party(party_id: int, db: Session = Depends(get_db)):
    return party_to_dict(get_party_or_404(db, party_id))


@router.put("/api/parties/{party_id}")
async def update_party_route(party_id: int, payload: PartyUpdate, db: Session = Depends(get_db)):
    party = get_party_or_404(db, party_id)
    update_party(db, party, payload.model_dump(exclude_unset=True))
    return party_to_dict(party)


@router.delete("/api/parties/{party_id}")
async def delete_party_route(party_id: int, db: Session = Depends(get_db)):
    party = get_party_or_404(db, party_id)
    code = party.party_id
    delete_party(db, party, counter=SqlQuotationCounter(db))
    logger.info("Party {} deleted", code)
    return {"ok": True, "party_id": code}


# ── Follow-ups ───────────────────────────────────────────────────────────


@router.get("/api/parties/{party_id}/follow-ups")
async def list_follow_ups(party_id: int, db: Session = Depends(get_db)):
    party = get_party_or_404(db, party_id)
    return {
        "follow_ups": [follow_up_to_dict(f) for f in party.follow_ups],
        "next_follow_up": party_to_dict(party)["next_follow_up"],
    }


@router.post("/api/parties/{party_id}/follow-ups", status_code=201)
async def add_follow_up_route(
    party_id: int, payload: FollowUpCreate, db: Session = Depends(get_db)
):
    party = get_party_or_404(db, party_id)
    projection = add_follow_up(db, party, payload.scheduled_at, payload.note)
    return {
        "follow_up": follow_up_to_dict(party.follow_ups[-1]),
        "next_follow_up": next_follow_up_to_dict(projection),
    }


@router.post("/api/parties/{party_id}/follow-ups/{follow_up_id}/complete")
async def complete_follow_up_route(
    party_id: int, follow_up_id: int, db: Session = Depends(get_db)
):
    party = get_party_or_404(db, party_id)
    projection = complete_follow_up(db, party, follow_up_id)
    return {"ok": True, "next_follow_up": next_follow_up_to_dict(projection)}
