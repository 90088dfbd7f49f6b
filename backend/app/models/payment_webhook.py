"""PaymentWebhook model"""
from sqlalchemy import Column, Integer, String, Boolean, Text, JSON, DateTime
from app.models.base import Base, utcnow


class PaymentWebhook(Base):
    """Append-only log of payment provider webhook events, used for idempotency"""
    __tablename__ = "payment_webhooks"

    id = Column(Integer, primary_key=True, index=True)
    provider = Column(String(50), nullable=False, default="stripe")
    event_id = Column(String(255), unique=True, nullable=False, index=True)
    event_type = Column(String(100), nullable=False, index=True)
    payload = Column(JSON, nullable=False)
    processed = Column(Boolean, default=False, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
