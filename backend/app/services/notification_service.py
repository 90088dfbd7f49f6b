"""Notification service - user-facing notifications emitted by the payment flow"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.models.notification import Notification

logger = logging.getLogger(__name__)


def create_notification(
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    db: Session,
    metadata: Optional[Dict[str, Any]] = None
) -> Notification:
    """Queue a notification on the session (committed with the caller's unit of work)"""
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        notification_metadata=metadata or {},
    )
    db.add(notification)
    logger.info(f"Notification '{notification_type}' queued for user {user_id}")
    return notification


def notify_boost_activated(
    user_id: str,
    boost_type: Optional[str],
    item_id: Optional[str],
    transaction_id: str,
    db: Session
) -> Notification:
    return create_notification(
        user_id,
        "boost_activated",
        "Boost Activated!",
        f"Your {boost_type} boost is now active." if boost_type else "Your boost is now active.",
        db,
        metadata={
            "itemId": item_id,
            "boostType": boost_type,
            "transactionId": transaction_id,
        },
    )


def notify_payment_failed(user_id: str, payment_intent_id: str, reason: str, db: Session) -> Notification:
    return create_notification(
        user_id,
        "payment_failed",
        "Payment Failed",
        "Your payment could not be processed. Please try again.",
        db,
        metadata={
            "paymentIntentId": payment_intent_id,
            "reason": reason,
        },
    )
