"""Boost model"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, Index, DateTime
from sqlalchemy.orm import relationship
from app.models.base import Base, as_utc, new_uuid, utcnow

BOOST_TYPES = ("premium", "featured", "urgent")


class Boost(Base):
    """Paid visibility promotion for one item"""
    __tablename__ = "boosts"

    id = Column(String(36), primary_key=True, default=new_uuid)
    item_id = Column(String(36), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    transaction_id = Column(String(36), ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True)
    boost_type = Column(String(20), nullable=False)  # One of BOOST_TYPES
    duration_days = Column(Integer, nullable=False)
    amount_paid = Column(Integer, nullable=False)  # Minor currency units
    currency = Column(String(3), nullable=False)
    starts_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    item = relationship("Item", back_populates="boosts")
    transaction = relationship("Transaction", back_populates="boosts")

    __table_args__ = (
        Index('ix_boosts_item_active_expires', 'item_id', 'is_active', 'expires_at'),
    )

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """Active and not yet expired. Expiry is derived at read time, nothing sweeps it."""
        now = now or utcnow()
        return bool(self.is_active) and as_utc(self.expires_at) > now
