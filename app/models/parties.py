"""Party models — clients and their follow-up schedule."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import UTCDateTime
from .base import Base


class Party(Base):
    """A client. party_id (P0001, P0002, ...) is assigned once, before insert."""

    __tablename__ = "parties"
    id = Column(Integer, primary_key=True)
    party_id = Column(String(20), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(100), nullable=False)
    address = Column(Text, nullable=False)
    email = Column(String(255))
    notes = Column(Text)
    tags = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    # NextFollowUp projection: earliest incomplete follow-up, or null.
    # Plain integer (no FK) so parties <-> follow_ups has no dependency cycle.
    next_follow_up_id = Column(Integer)
    next_follow_up_at = Column(UTCDateTime)

    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        UTCDateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    follow_ups = relationship(
        "FollowUp",
        back_populates="party",
        order_by="FollowUp.id",
        cascade="all, delete-orphan",
    )
    quotations = relationship("Quotation", back_populates="party")

    __table_args__ = (
        Index("ix_parties_name", "name"),
        Index("ix_parties_created", "created_at"),
        Index("ix_parties_next_follow_up", "is_active", "next_follow_up_at"),
    )


class FollowUp(Base):
    """Scheduled contact with a party. Never deleted, only completed."""

    __tablename__ = "follow_ups"
    id = Column(Integer, primary_key=True)
    party_id = Column(
        Integer, ForeignKey("parties.id", ondelete="CASCADE"), nullable=False
    )
    scheduled_at = Column(UTCDateTime, nullable=False)
    note = Column(Text)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=lambda: datetime.now(timezone.utc))

    party = relationship("Party", back_populates="follow_ups")

    __table_args__ = (
        Index("ix_follow_ups_party", "party_id"),
        Index("ix_follow_ups_pending", "party_id", "is_completed", "scheduled_at"),
    )
