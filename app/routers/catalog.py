"""
routers/catalog.py — Categories, Brands & Product Models

The reference data quotation line items point at.

Business Rules:
- Category and brand names are unique (409 on duplicates)
- A model must reference an existing category and brand
- Model search matches name or HSN code, capped at 10 results

Called by: main.py (router mount)
Depends on: models, dependencies, schemas/catalog
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..database import get_db
from ..dependencies import require_api_key
from ..errors import Conflict, NotFound
from ..models import Brand, Category, ProductModel
from ..schemas.catalog import BrandCreate, CategoryCreate, ProductModelCreate

router = APIRouter(tags=["catalog"], dependencies=[Depends(require_api_key)])


def _named_to_dict(row) -> dict:
    return {"id": row.id, "name": row.name}


def model_to_dict(m: ProductModel) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "category": _named_to_dict(m.category) if m.category else None,
        "brand": _named_to_dict(m.brand) if m.brand else None,
        "hsn": m.hsn,
        "warranty": m.warranty,
        "purchase_price": float(m.purchase_price or 0),
        "sales_price": float(m.sales_price or 0),
        "gst_rate": float(m.gst_rate or 0),
    }


def _create_named(db: Session, cls, name: str):
    row = cls(name=name)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"{cls.__name__} '{name}' already exists")
    logger.info("{} created: {}", cls.__name__, name)
    return row


# ── Categories & Brands ──────────────────────────────────────────────────


@router.get("/api/categories")
async def list_categories(db: Session = Depends(get_db)):
    return [_named_to_dict(c) for c in db.query(Category).order_by(Category.name).all()]


@router.post("/api/categories", status_code=201)
async def create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return _named_to_dict(_create_named(db, Category, payload.name))


@router.get("/api/brands")
async def list_brands(db: Session = Depends(get_db)):
    return [_named_to_dict(b) for b in db.query(Brand).order_by(Brand.name).all()]


@router.post("/api/brands", status_code=201)
async def create_brand(payload: BrandCreate, db: Session = Depends(get_db)):
    return _named_to_dict(_create_named(db, Brand, payload.name))


# ── Models ───────────────────────────────────────────────────────────────


def _models_query(db: Session):
    return db.query(ProductModel).options(
        joinedload(ProductModel.category), joinedload(ProductModel.brand)
    )


@router.get("/api/models")
async def list_models(
    category_id: int = 0,
    brand_id: int = 0,
    db: Session = Depends(get_db),
):
    query = _models_query(db)
    if category_id:
        query = query.filter(ProductModel.category_id == category_id)
    if brand_id:
        query = query.filter(ProductModel.brand_id == brand_id)
    return [model_to_dict(m) for m in query.order_by(ProductModel.name).all()]


@router.get("/api/models/search")
async def search_models(
    term: str = Query("", description="Model name or HSN code"),
    db: Session = Depends(get_db),
):
    term = term.strip()
    if not term:
        return []
    safe = term.replace("%", r"\%").replace("_", r"\_")
    models = (
        _models_query(db)
        .filter(
            or_(
                ProductModel.name.ilike(f"%{safe}%", escape="\\"),
                ProductModel.hsn.ilike(f"%{safe}%", escape="\\"),
            )
        )
        .order_by(ProductModel.name)
        .limit(10)
        .all()
    )
    return [model_to_dict(m) for m in models]


@router.post("/api/models", status_code=201)
async def create_model(payload: ProductModelCreate, db: Session = Depends(get_db)):
    if not db.get(Category, payload.category_id):
        raise NotFound("Category", payload.category_id)
    if not db.get(Brand, payload.brand_id):
        raise NotFound("Brand", payload.brand_id)
    model = ProductModel(**payload.model_dump())
    db.add(model)
    db.commit()
    logger.info("Model created: {}", model.name)
    return model_to_dict(model)
