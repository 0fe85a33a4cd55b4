"""Catalog models — categories, brands, and product models quoted in line items."""

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))


class Brand(Base):
    __tablename__ = "brands"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))


class ProductModel(Base):
    """A sellable model, e.g. "Ryzen 5 5600X" (category Processor, brand AMD)."""

    __tablename__ = "models"
    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    brand_id = Column(Integer, ForeignKey("brands.id"), nullable=False)
    hsn = Column(String(50), nullable=False)
    warranty = Column(String(100), nullable=False)
    purchase_price = Column(Numeric(12, 2), nullable=False)
    sales_price = Column(Numeric(12, 2), nullable=False)
    gst_rate = Column(Numeric(5, 2), nullable=False, default=18)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    category = relationship("Category")
    brand = relationship("Brand")

    __table_args__ = (
        Index("ix_models_name", "name"),
        Index("ix_models_category", "category_id"),
        Index("ix_models_brand", "brand_id"),
    )
