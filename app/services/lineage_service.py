"""Quotation lineage — versions, original back-reference, titles, line items.

Every party has one root quotation (version 1, no original). Each later
quotation for the party, whether a fresh submission or a revision, gets
max(version) + 1 and points straight at the root, never at an intermediate
revision. Titles follow the party code: quote-P0001, quote-P0001-V2, ...

Usage:
    from app.services.lineage_service import plan_quotation, create_quotation
    plan = plan_quotation("P0001", [QuotationRef(id=7, version=1)])
    plan.version, plan.original_quote_id, plan.title   # 2, 7, "quote-P0001-V2"
"""

import logging
import math
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import Conflict, InvariantAnomaly, NotFound, ValidationFailure
from app.models import QUOTATION_STATUSES, Brand, Category, Party, ProductModel, Quotation

log = logging.getLogger("quotedesk.lineage")

ROOT_MISSING = "ROOT_MISSING"
PARTY_UNRESOLVED = "PARTY_UNRESOLVED"


@dataclass(frozen=True)
class QuotationRef:
    id: int
    version: int
    original_quote_id: int | None = None


@dataclass(frozen=True)
class QuotationPlan:
    version: int
    original_quote_id: int | None
    title: str
    anomalies: tuple[InvariantAnomaly, ...] = field(default_factory=tuple)

    def has_anomaly(self, code: str) -> bool:
        return any(a.code == code for a in self.anomalies)


# ═══════════════════════════════════════════════════════════════════════
#  PURE PLANNING
# ═══════════════════════════════════════════════════════════════════════


def quotation_title(party_code: str | None, version: int) -> str:
    party_code = party_code or "unknown"
    if version == 1:
        return f"quote-{party_code}"
    return f"quote-{party_code}-V{version}"


def plan_quotation(
    party_code: str | None,
    existing: list[QuotationRef],
    source_id: int | None = None,
) -> QuotationPlan:
    """Compute version, original_quote_id and title for the next quotation.

    existing holds every quotation the party currently has. source_id is the
    quotation being revised, used only when the root has gone missing.
    """
    anomalies: list[InvariantAnomaly] = []

    if not existing:
        version, original = 1, None
    else:
        version = max(q.version for q in existing) + 1
        root = next((q for q in existing if q.version == 1), None)
        if root:
            original = root.id
        else:
            if source_id is None:
                source_id = min(existing, key=lambda q: q.version).id
            original = source_id
            anomalies.append(
                InvariantAnomaly(
                    f"No version-1 quotation for {party_code}; "
                    f"original set to quotation {source_id}",
                    ROOT_MISSING,
                )
            )

    if not party_code:
        anomalies.append(
            InvariantAnomaly("Party could not be resolved for title", PARTY_UNRESOLVED)
        )

    return QuotationPlan(
        version=version,
        original_quote_id=original,
        title=quotation_title(party_code, version),
        anomalies=tuple(anomalies),
    )


# ═══════════════════════════════════════════════════════════════════════
#  LINE ITEMS — all-or-nothing normalization
# ═══════════════════════════════════════════════════════════════════════

_REFERENCE_FIELDS = ("category", "brand", "model")


def _reference_id(value) -> int | None:
    """Accept a raw id or a populated object ({"id": ..} / {"_id": ..})."""
    if isinstance(value, dict):
        value = value.get("id", value.get("_id"))
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_number(value, default: float, name: str, index: int | None = None) -> float:
    if value is None or value == "":
        return default
    where = f"Line item {index}: " if index is not None else ""
    if isinstance(value, bool):
        raise ValidationFailure(f"{where}{name} must be a number", name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{where}{name} must be a number", name)
    if math.isnan(number) or math.isinf(number) or number < 0:
        raise ValidationFailure(f"{where}{name} must be a non-negative number", name)
    return number


def _raw_reference(item: dict, name: str):
    """Line items may say "category" or "category_id"."""
    if item.get(name) is not None:
        return item.get(name)
    return item.get(f"{name}_id")


def normalize_line_items(db: Session, items: list[dict] | None) -> list[dict]:
    """Validate and normalize a batch of line items.

    Any defect rejects the whole batch with ValidationFailure.
    """
    if not items:
        raise ValidationFailure("Line items are required and must not be empty", "line_items")

    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationFailure(f"Line item {index} must be an object", "line_items")
        refs = {name: _reference_id(_raw_reference(item, name)) for name in _REFERENCE_FIELDS}
        if any(v is None for v in refs.values()):
            raise ValidationFailure(
                f"Line item {index} has missing or invalid references (category, brand, or model)",
                "line_items",
            )
        quantity = _coerce_number(item.get("quantity"), 1, "quantity", index)
        if quantity == 0:
            raise ValidationFailure(f"Line item {index}: quantity must be positive", "quantity")
        parsed.append(
            {
                "category_id": refs["category"],
                "brand_id": refs["brand"],
                "model_id": refs["model"],
                "hsn": item.get("hsn"),
                "warranty": item.get("warranty"),
                "quantity": int(quantity) if float(quantity).is_integer() else quantity,
                "purchase_price": _coerce_number(
                    item.get("purchase_price"), 0, "purchase_price", index
                ),
                "sales_price": _coerce_number(item.get("sales_price"), 0, "sales_price", index),
                "gst_rate": _coerce_number(
                    item.get("gst_rate"), settings.default_gst_rate, "gst_rate", index
                ),
            }
        )

    _resolve_catalog_references(db, parsed)
    return parsed


def _resolve_catalog_references(db: Session, items: list[dict]) -> None:
    """Every reference must exist; hsn/warranty fall back to the catalog model."""
    wanted = (
        ("category", Category, {i["category_id"] for i in items}),
        ("brand", Brand, {i["brand_id"] for i in items}),
    )
    for label, model_cls, ids in wanted:
        found = {row[0] for row in db.query(model_cls.id).filter(model_cls.id.in_(ids))}
        missing = sorted(ids - found)
        if missing:
            raise ValidationFailure(f"Unknown {label} reference(s): {missing}", "line_items")

    model_ids = {i["model_id"] for i in items}
    models = {
        m.id: m for m in db.query(ProductModel).filter(ProductModel.id.in_(model_ids))
    }
    missing = sorted(model_ids - set(models))
    if missing:
        raise ValidationFailure(f"Unknown model reference(s): {missing}", "line_items")

    for item in items:
        catalog = models[item["model_id"]]
        if not item["hsn"]:
            item["hsn"] = catalog.hsn
        if not item["warranty"]:
            item["warranty"] = catalog.warranty


def compute_totals(items: list[dict]) -> dict:
    total_amount = sum(i["quantity"] * i["sales_price"] for i in items)
    total_purchase = sum(i["quantity"] * i["purchase_price"] for i in items)
    total_tax = sum(i["quantity"] * i["sales_price"] * i["gst_rate"] / 100 for i in items)
    return {
        "total_amount": round(total_amount, 2),
        "total_purchase": round(total_purchase, 2),
        "total_tax": round(total_tax, 2),
    }


def _merge_totals(items: list[dict], supplied: dict | None) -> dict:
    """Caller-supplied totals win; anything omitted is computed from the items."""
    totals = compute_totals(items)
    for key, value in (supplied or {}).items():
        if key in totals and value is not None:
            totals[key] = _coerce_number(value, 0, key)
    return totals


def _check_status(status: str) -> str:
    if status not in QUOTATION_STATUSES:
        raise ValidationFailure(
            f"Status must be one of: {', '.join(QUOTATION_STATUSES)}", "status"
        )
    return status


# ═══════════════════════════════════════════════════════════════════════
#  PERSISTENCE — create, revise, update
# ═══════════════════════════════════════════════════════════════════════


def quotation_refs(db: Session, party_id: int) -> list[QuotationRef]:
    """All quotations of a party, highest version first."""
    rows = (
        db.query(Quotation.id, Quotation.version, Quotation.original_quote_id)
        .filter(Quotation.party_id == party_id)
        .order_by(Quotation.version.desc())
        .all()
    )
    return [QuotationRef(id=r[0], version=r[1], original_quote_id=r[2]) for r in rows]


def root_exists(db: Session, party_id: int) -> bool:
    return (
        db.query(Quotation.id)
        .filter(Quotation.party_id == party_id, Quotation.version == 1)
        .first()
        is not None
    )


def _persist_plan(
    db: Session,
    party: Party,
    items: list[dict],
    totals: dict | None,
    notes: str | None,
    terms: str | None,
    status: str,
    source_id: int | None = None,
) -> Quotation:
    """Plan against the party's current quotations and insert.

    On PostgreSQL a partial unique index allows one version-1 row per party;
    losing that race re-plans once against the new history.
    """
    party_pk, party_code = party.id, party.party_id
    status = _check_status(status or "draft")
    totals = _merge_totals(items, totals)

    for attempt in (1, 2):
        plan = plan_quotation(party_code, quotation_refs(db, party_pk), source_id=source_id)
        for anomaly in plan.anomalies:
            log.warning("Lineage anomaly for party %s: %s", party_code, anomaly.message)
        if plan.has_anomaly(PARTY_UNRESOLVED):
            raise NotFound("Party", party_pk)

        quotation = Quotation(
            party_id=party_pk,
            version=plan.version,
            original_quote_id=plan.original_quote_id,
            title=plan.title,
            line_items=items,
            notes=notes or "",
            terms_and_conditions=terms or "",
            status=status,
            **totals,
        )
        db.add(quotation)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if db.get(Party, party_pk) is None:
                raise NotFound("Party", party_pk)
            if not root_exists(db, party_pk):
                raise
            if attempt == 2:
                raise Conflict(f"Concurrent quotation creation for party {party_code}")
            log.info("Root quotation race for %s — re-planning", party_code)
            continue
        log.info("Created %s (version %d)", quotation.title, quotation.version)
        return quotation


def create_quotation(
    db: Session,
    party_id: int,
    line_items: list[dict],
    totals: dict | None = None,
    notes: str | None = None,
    terms_and_conditions: str | None = None,
    status: str = "draft",
) -> Quotation:
    party = db.get(Party, party_id)
    if not party:
        raise NotFound("Party", party_id)
    items = normalize_line_items(db, line_items)
    return _persist_plan(db, party, items, totals, notes, terms_and_conditions, status)


def revise_quotation(
    db: Session,
    source: Quotation,
    line_items: list[dict] | None = None,
    totals: dict | None = None,
    notes: str | None = None,
    terms_and_conditions: str | None = None,
    status: str | None = None,
) -> Quotation:
    """New revision of source's lineage, starting from a copy of its content."""
    party = db.get(Party, source.party_id)
    if not party:
        raise NotFound("Party", source.party_id)

    if line_items is None:
        items = normalize_line_items(db, [dict(i) for i in source.line_items or []])
        if totals is None:
            totals = {
                "total_amount": source.total_amount,
                "total_purchase": source.total_purchase,
                "total_tax": source.total_tax,
            }
    else:
        items = normalize_line_items(db, line_items)

    return _persist_plan(
        db,
        party,
        items,
        totals,
        notes if notes is not None else source.notes,
        terms_and_conditions if terms_and_conditions is not None else source.terms_and_conditions,
        status or "draft",
        source_id=source.id,
    )


def update_quotation(db: Session, quotation: Quotation, updates: dict) -> Quotation:
    """Edit content or status. party, version, original and title never change."""
    for frozen in ("party_id", "version", "original_quote_id", "title"):
        updates.pop(frozen, None)

    supplied_totals = {
        k: updates.pop(k) for k in ("total_amount", "total_purchase", "total_tax") if k in updates
    }
    if "line_items" in updates:
        items = normalize_line_items(db, updates.pop("line_items"))
        quotation.line_items = items
        for key, value in _merge_totals(items, supplied_totals).items():
            setattr(quotation, key, value)
    else:
        for key, value in supplied_totals.items():
            if value is not None:
                setattr(quotation, key, _coerce_number(value, 0, key))

    if "status" in updates:
        quotation.status = _check_status(updates.pop("status"))
    for key in ("notes", "terms_and_conditions"):
        if key in updates:
            setattr(quotation, key, updates.pop(key) or "")

    db.commit()
    return quotation


def delete_quotation(db: Session, quotation: Quotation) -> str:
    if quotation.version == 1:
        revisions = (
            db.query(func.count(Quotation.id))
            .filter(Quotation.original_quote_id == quotation.id)
            .scalar()
        )
        if revisions:
            log.warning(
                "Deleting root %s with %d revision(s); lineage will fall back to revision sources",
                quotation.title,
                revisions,
            )
    title = quotation.title
    db.delete(quotation)
    db.commit()
    return title


def quotation_stats(db: Session) -> dict:
    rows = (
        db.query(
            Quotation.status,
            func.count(Quotation.id),
            func.coalesce(func.sum(Quotation.total_amount), 0),
        )
        .group_by(Quotation.status)
        .all()
    )
    return {
        "total_quotations": sum(r[1] for r in rows),
        "status_breakdown": [
            {"status": r[0], "count": r[1], "total_amount": float(r[2] or 0)} for r in rows
        ],
    }
