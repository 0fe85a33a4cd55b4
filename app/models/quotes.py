"""Quotation models."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base

QUOTATION_STATUSES = ("draft", "sent", "lost", "sold")


class Quotation(Base):
    """Customer quotation. version/original_quote_id/title are derived, never posted."""

    __tablename__ = "quotations"
    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=False)

    version = Column(Integer, nullable=False, default=1)
    # Always the party's version-1 quotation; null on the root itself
    original_quote_id = Column(
        Integer, ForeignKey("quotations.id", ondelete="SET NULL")
    )
    title = Column(String(100), nullable=False)

    line_items = Column(JSON, nullable=False, default=list)

    total_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_purchase = Column(Numeric(12, 2), nullable=False, default=0)
    total_tax = Column(Numeric(12, 2), nullable=False, default=0)

    notes = Column(Text)
    terms_and_conditions = Column(Text)
    status = Column(String(20), nullable=False, default="draft")

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    party = relationship("Party", back_populates="quotations")
    original_quote = relationship("Quotation", remote_side=[id])

    __table_args__ = (
        Index("ix_quotations_party_version", "party_id", "version"),
        Index("ix_quotations_title", "title"),
        Index("ix_quotations_status", "status"),
    )
