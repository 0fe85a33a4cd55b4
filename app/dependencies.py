"""
dependencies.py — Shared FastAPI Dependencies

API-key stand-in for authentication plus the lookup helpers routers use to
turn path ids into rows. All routers import from here instead of repeating
the 404 handling.

Business Rules:
- require_api_key is a no-op while settings.api_key is empty
- A wrong or missing X-API-Key header is 401
- get_party_or_404 / get_quotation_or_404 raise NotFound, mapped to 404 in main.py

Called by: all routers
Depends on: models, database, config, errors
"""

import hmac
import logging

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from .config import settings
from .errors import NotFound
from .models import Party, Quotation

log = logging.getLogger("quotedesk.auth")


# ── Authentication ────────────────────────────────────────────────────


def require_api_key(request: Request) -> None:
    """Dependency: shared-key check on the X-API-Key header."""
    expected = settings.api_key
    if not expected:
        return
    supplied = request.headers.get("x-api-key", "")
    if not hmac.compare_digest(supplied, expected):
        log.info("Rejected request to %s: bad or missing API key", request.url.path)
        raise HTTPException(401, "Invalid or missing API key")


# ── Query Helpers ─────────────────────────────────────────────────────


def get_party_or_404(db: Session, party_id: int) -> Party:
    party = db.get(Party, party_id)
    if not party:
        raise NotFound("Party", party_id)
    return party


def get_quotation_or_404(db: Session, quotation_id: int) -> Quotation:
    quotation = db.get(Quotation, quotation_id)
    if not quotation:
        raise NotFound("Quotation", quotation_id)
    return quotation
