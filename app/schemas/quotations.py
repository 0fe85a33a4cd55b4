"""
schemas/quotations.py — Pydantic models for Quotation endpoints

Line items stay loosely typed here; lineage_service.normalize_line_items
owns their validation so one bad item rejects the whole batch with a single
error.

Business Rules:
- party_id is required on create
- version, original_quote_id and title are derived, never accepted
- status must be one of: draft, sent, lost, sold
- Totals are optional; omitted totals are computed from the line items

Called by: routers/quotations.py
Depends on: pydantic
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

QuotationStatus = Literal["draft", "sent", "lost", "sold"]


class QuotationCreate(BaseModel):
    party_id: int
    line_items: list[dict]
    total_amount: float | None = None
    total_purchase: float | None = None
    total_tax: float | None = None
    notes: str | None = None
    terms_and_conditions: str | None = None
    status: QuotationStatus = "draft"


class QuotationRevise(BaseModel):
    """Overrides applied on top of the copied source quotation."""

    line_items: list[dict] | None = None
    total_amount: float | None = None
    total_purchase: float | None = None
    total_tax: float | None = None
    notes: str | None = None
    terms_and_conditions: str | None = None
    status: QuotationStatus | None = None


class QuotationUpdate(BaseModel):
    line_items: list[dict] | None = None
    total_amount: float | None = None
    total_purchase: float | None = None
    total_tax: float | None = None
    notes: str | None = None
    terms_and_conditions: str | None = None
    status: QuotationStatus | None = None
