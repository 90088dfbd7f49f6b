"""Payment service - boost payment intent creation and transaction reads"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidRequest, ItemNotFound, PaymentProviderError, PersistenceError
from app.core.metrics import bookkeeping_failures_counter, payment_intents_counter
from app.models.base import as_utc, utcnow
from app.models.boost import Boost
from app.models.item import Item
from app.models.transaction import Transaction
from app.schemas.payments import CreatePaymentRequest
from app.services.boost_service import sync_item_boost_state
from app.services.payment_provider import PaymentIntentResult, StripePaymentProvider
from app.services.pricing_service import calculate_boost_price

logger = logging.getLogger(__name__)


def _validate_boost_request(payment_request: CreatePaymentRequest) -> Dict[str, Any]:
    """Resolve defaults and reject incomplete boost requests"""
    if payment_request.type == "subscription":
        raise InvalidRequest("Subscription payments not yet implemented")
    if payment_request.type != "boost":
        raise InvalidRequest("Invalid payment type")

    if not payment_request.item_id or not payment_request.boost_type:
        raise InvalidRequest("itemId and boostType are required for boost payments")

    duration = payment_request.duration
    if duration is None:
        duration = settings.DEFAULT_BOOST_DURATION_DAYS
    if duration <= 0:
        raise InvalidRequest("duration must be a positive number of days")

    return {
        "item_id": payment_request.item_id,
        "boost_type": payment_request.boost_type,
        "currency": (payment_request.currency or settings.DEFAULT_BOOST_CURRENCY).upper(),
        "duration": duration,
    }


def _build_payment_metadata(
    user_id: str,
    item: Item,
    boost_type: str,
    duration: int,
    client_metadata: Optional[Dict[str, Any]]
) -> Dict[str, str]:
    """Stripe metadata: client keys first, server-resolved keys win"""
    client_metadata = client_metadata or {}
    metadata = {str(k): str(v) for k, v in client_metadata.items() if v is not None}
    metadata.update({
        "userId": user_id,
        "type": "boost",
        "itemId": item.id,
        "boostType": boost_type,
        "duration": str(duration),
        "itemTitle": item.title,
        "source": str(client_metadata.get("source") or "web"),
    })
    return metadata


def _record_boost_purchase(
    user_id: str,
    item: Item,
    intent: PaymentIntentResult,
    provider_name: str,
    boost_type: str,
    currency: str,
    duration: int,
    amount: int,
    description: str,
    metadata: Dict[str, str],
    db: Session,
    now: datetime
) -> Transaction:
    """Insert transaction + boost and patch the item as one unit of work"""
    transaction = Transaction(
        user_id=user_id,
        item_id=item.id,
        payment_provider=provider_name,
        provider_transaction_id=intent.id,
        amount=amount,
        currency=currency,
        status="pending",
        description=description,
        transaction_metadata=metadata,
    )
    db.add(transaction)
    db.flush()

    activate_now = settings.BOOST_ACTIVATE_ON_CREATE
    boost = Boost(
        item_id=item.id,
        user_id=user_id,
        transaction_id=transaction.id,
        boost_type=boost_type,
        duration_days=duration,
        amount_paid=amount,
        currency=currency,
        starts_at=now,
        expires_at=now + timedelta(days=duration),
        is_active=activate_now,
    )
    db.add(boost)

    if activate_now:
        sync_item_boost_state(item.id, db, now)

    db.commit()
    db.refresh(transaction)
    return transaction


def create_boost_payment(
    user_id: str,
    payment_request: CreatePaymentRequest,
    db: Session,
    provider: StripePaymentProvider,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Create a provider payment intent for a boost and record it locally

    Order: validate, price, verify item ownership, call the provider, then
    write transaction + boost + item patch in a single commit. A failed
    provider call writes nothing. A failed commit is logged and rolled back,
    and the client secret is still returned since the intent already exists.

    Raises:
        InvalidRequest: wrong type, missing itemId/boostType, bad duration
        InvalidPricingInput: unknown boost type or currency
        ItemNotFound: item missing or owned by someone else
        PaymentProviderError: provider call failed
    """
    now = now or utcnow()
    params = _validate_boost_request(payment_request)
    item_id = params["item_id"]
    boost_type = params["boost_type"]
    currency = params["currency"]
    duration = params["duration"]

    amount = calculate_boost_price(boost_type, currency, duration)

    item = db.query(Item).filter(Item.id == item_id, Item.user_id == user_id).first()
    if not item:
        payment_intents_counter.labels(status="rejected").inc()
        raise ItemNotFound()

    description = f'{boost_type.capitalize()} boost for "{item.title}" ({duration} days)'
    metadata = _build_payment_metadata(user_id, item, boost_type, duration, payment_request.metadata)

    try:
        intent = provider.create_payment_intent(amount, currency, description, metadata)
    except PaymentProviderError:
        payment_intents_counter.labels(status="provider_error").inc()
        raise

    transaction_id = None
    try:
        transaction = _record_boost_purchase(
            user_id, item, intent, provider.name, boost_type, currency,
            duration, amount, description, metadata, db, now
        )
        transaction_id = transaction.id
        logger.info(f"Transaction {transaction_id} recorded for PaymentIntent {intent.id} (user {user_id}, item {item_id})")
    except SQLAlchemyError as e:
        db.rollback()
        error = PersistenceError(details=str(e))
        bookkeeping_failures_counter.inc()
        # The intent exists at the provider; the caller can still pay
        logger.error(
            f"{error.message} for PaymentIntent {intent.id} (user {user_id}, item {item_id}): {e}",
            exc_info=True
        )

    payment_intents_counter.labels(status="created").inc()
    return {
        "clientSecret": intent.client_secret,
        "paymentIntentId": intent.id,
        "transactionId": transaction_id,
        "amount": amount,
        "currency": currency,
        "description": description,
        "success": True,
    }


def build_transaction_response(transaction: Transaction) -> Dict[str, Any]:
    created_at = as_utc(transaction.created_at)
    completed_at = as_utc(transaction.completed_at)
    return {
        "id": transaction.id,
        "item_id": transaction.item_id,
        "provider": transaction.payment_provider,
        "provider_transaction_id": transaction.provider_transaction_id,
        "amount": transaction.amount,
        "currency": transaction.currency,
        "status": transaction.status,
        "description": transaction.description,
        "metadata": transaction.transaction_metadata or {},
        "created_at": created_at.isoformat() if created_at else None,
        "completed_at": completed_at.isoformat() if completed_at else None,
    }


def list_user_transactions(user_id: str, limit: int, db: Session) -> List[Dict[str, Any]]:
    """Payment attempts of a user, newest first"""
    transactions = db.query(Transaction).filter(
        Transaction.user_id == user_id
    ).order_by(Transaction.created_at.desc()).limit(limit).all()
    return [build_transaction_response(t) for t in transactions]
