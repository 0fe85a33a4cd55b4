"""
routers/quotations.py — Quotation & Revision Routes

Create, list, read, update, delete and revise quotations. Every quotation
belongs to one party; revisions extend the party's lineage.

Business Rules:
- version, original_quote_id and title are assigned by lineage_service
- Revising copies the source's line items, notes, terms and totals; body overrides
- Update may change content and status only, never party/version/original/title
- Line-item defects reject the whole quotation (422), nothing partial is saved

Called by: main.py (router mount)
Depends on: models, dependencies, services/lineage_service
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..dependencies import get_party_or_404, get_quotation_or_404, require_api_key
from ..models import QUOTATION_STATUSES, Quotation
from ..schemas.quotations import QuotationCreate, QuotationRevise, QuotationUpdate
from ..services.lineage_service import (
    create_quotation,
    delete_quotation,
    quotation_stats,
    revise_quotation,
    update_quotation,
)

router = APIRouter(tags=["quotations"], dependencies=[Depends(require_api_key)])

_TOTAL_FIELDS = ("total_amount", "total_purchase", "total_tax")


def quotation_to_dict(q: Quotation) -> dict:
    """Serialize a Quotation to API response dict."""
    return {
        "id": q.id,
        "party_id": q.party_id,
        "party_code": q.party.party_id if q.party else None,
        "party_name": q.party.name if q.party else None,
        "version": q.version,
        "original_quote_id": q.original_quote_id,
        "title": q.title,
        "line_items": q.line_items or [],
        "total_amount": float(q.total_amount or 0),
        "total_purchase": float(q.total_purchase or 0),
        "total_tax": float(q.total_tax or 0),
        "notes": q.notes,
        "terms_and_conditions": q.terms_and_conditions,
        "status": q.status,
        "created_at": q.created_at.isoformat() if q.created_at else None,
        "updated_at": q.updated_at.isoformat() if q.updated_at else None,
    }


def _totals(payload) -> dict:
    return {k: getattr(payload, k) for k in _TOTAL_FIELDS}


@router.get("/api/quotations")
async def list_quotations(
    status: str = Query("", description=f"One of: {', '.join(QUOTATION_STATUSES)}"),
    party_id: int = 0,
    search: str = "",
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    query = db.query(Quotation).options(joinedload(Quotation.party))
    if status:
        query = query.filter(Quotation.status == status)
    if party_id:
        query = query.filter(Quotation.party_id == party_id)
    if search.strip():
        safe = search.strip().replace("%", r"\%").replace("_", r"\_")
        query = query.filter(Quotation.title.ilike(f"%{safe}%", escape="\\"))
    total = query.count()
    quotations = (
        query.order_by(Quotation.created_at.desc(), Quotation.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return {
        "quotations": [quotation_to_dict(q) for q in quotations],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/api/quotations", status_code=201)
async def create_quotation_route(payload: QuotationCreate, db: Session = Depends(get_db)):
    quotation = create_quotation(
        db,
        payload.party_id,
        payload.line_items,
        totals=_totals(payload),
        notes=payload.notes,
        terms_and_conditions=payload.terms_and_conditions,
        status=payload.status,
    )
    logger.info("Quotation {} created", quotation.title)
    return quotation_to_dict(quotation)


@router.get("/api/quotations/stats")
async def get_quotation_stats(db: Session = Depends(get_db)):
    return quotation_stats(db)


@router.get("/api/quotations/party/{party_id}")
async def party_quotations(party_id: int, db: Session = Depends(get_db)):
    """The party's whole lineage, root first."""
    party = get_party_or_404(db, party_id)
    quotations = (
        db.query(Quotation)
        .filter(Quotation.party_id == party.id)
        .order_by(Quotation.version.asc(), Quotation.id.asc())
        .all()
    )
    return {
        "party_id": party.id,
        "party_code": party.party_id,
        "quotations": [quotation_to_dict(q) for q in quotations],
    }


@router.get("/api/quotations/{quotation_id}")
async def get_quotation(quotation_id: int, db: Session = Depends(get_db)):
    return quotation_to_dict(get_quotation_or_404(db, quotation_id))


@router.put("/api/quotations/{quotation_id}")
async def update_quotation_route(
    quotation_id: int, payload: QuotationUpdate, db: Session = Depends(get_db)
):
    quotation = get_quotation_or_404(db, quotation_id)
    update_quotation(db, quotation, payload.model_dump(exclude_unset=True))
    return quotation_to_dict(quotation)


@router.delete("/api/quotations/{quotation_id}")
async def delete_quotation_route(quotation_id: int, db: Session = Depends(get_db)):
    quotation = get_quotation_or_404(db, quotation_id)
    title = delete_quotation(db, quotation)
    logger.info("Quotation {} deleted", title)
    return {"ok": True, "title": title}


@router.post("/api/quotations/{quotation_id}/revise", status_code=201)
async def revise_quotation_route(
    quotation_id: int,
    payload: QuotationRevise | None = None,
    db: Session = Depends(get_db),
):
    source = get_quotation_or_404(db, quotation_id)
    payload = payload or QuotationRevise()
    supplied = _totals(payload)
    revision = revise_quotation(
        db,
        source,
        line_items=payload.line_items,
        totals=supplied if any(v is not None for v in supplied.values()) else None,
        notes=payload.notes,
        terms_and_conditions=payload.terms_and_conditions,
        status=payload.status,
    )
    logger.info("Quotation {} revised as {}", source.title, revision.title)
    return quotation_to_dict(revision)
