"""
schemas/catalog.py — Pydantic models for Category, Brand and Model endpoints

Called by: routers/catalog.py
Depends on: pydantic
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class _Named(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class CategoryCreate(_Named):
    pass


class BrandCreate(_Named):
    pass


class ProductModelCreate(_Named):
    category_id: int
    brand_id: int
    hsn: str
    warranty: str
    purchase_price: float
    sales_price: float
    gst_rate: float = 18

    @field_validator("hsn", "warranty")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be blank")
        return v

    @field_validator("purchase_price", "sales_price", "gst_rate")
    @classmethod
    def non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Must not be negative")
        return v
