"""SQLAlchemy models package - imports all models so they register with Base.metadata"""
from app.models.base import Base
from app.models.item import Item
from app.models.transaction import Transaction
from app.models.boost import Boost
from app.models.notification import Notification
from app.models.payment_webhook import PaymentWebhook

# Export all for convenience
__all__ = [
    "Base", "Item", "Transaction", "Boost", "Notification", "PaymentWebhook"
]
