"""Notification model"""
from sqlalchemy import Column, String, Text, JSON, Boolean, DateTime
from app.models.base import Base, new_uuid, utcnow


class Notification(Base):
    """User-facing notification emitted by the payment flow"""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # 'boost_activated', 'payment_failed'
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    notification_metadata = Column("metadata", JSON, default=dict)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
