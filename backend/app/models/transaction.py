"""Transaction model"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, JSON, Index, DateTime
from sqlalchemy.orm import relationship
from app.models.base import Base, new_uuid, utcnow

TRANSACTION_STATUSES = ("pending", "processing", "succeeded", "failed", "canceled", "refunded")
TERMINAL_STATUSES = ("succeeded", "failed", "canceled", "refunded")


class Transaction(Base):
    """One payment attempt with the payment provider"""
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    item_id = Column(String(36), ForeignKey("items.id", ondelete="SET NULL"), nullable=True)
    payment_provider = Column(String(50), nullable=False, default="stripe")
    provider_transaction_id = Column(String(255), unique=True, nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Minor currency units
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # One of TRANSACTION_STATUSES
    description = Column(Text, nullable=True)
    transaction_metadata = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    item = relationship("Item", back_populates="transactions")
    boosts = relationship("Boost", back_populates="transaction")

    __table_args__ = (
        Index('ix_transactions_user_created', 'user_id', 'created_at'),
    )

    @property
    def is_boost_payment(self) -> bool:
        return (self.transaction_metadata or {}).get("type") == "boost"
