"""Item model (owned by the marketplace; this service patches boost columns only)"""
from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from app.models.base import Base, new_uuid, utcnow


class Item(Base):
    """Marketplace item with denormalized boost state"""
    __tablename__ = "items"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    # Read-optimization copy of the item's live boost, see boost_service.sync_item_boost_state
    is_boosted = Column(Boolean, default=False, nullable=False)
    boost_type = Column(String(20), nullable=True)
    boost_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    boosts = relationship("Boost", back_populates="item", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="item")
