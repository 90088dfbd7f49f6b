"""Webhook service - reconcile local payment state with provider webhook events"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.metrics import webhook_events_counter
from app.models.base import utcnow
from app.models.payment_webhook import PaymentWebhook
from app.models.transaction import TERMINAL_STATUSES, Transaction
from app.services.boost_service import activate_boosts_for_transaction, deactivate_boosts_for_transaction
from app.services.notification_service import notify_boost_activated, notify_payment_failed
from app.services.payment_provider import StripePaymentProvider

logger = logging.getLogger(__name__)


# ============================================================================
# EVENT LOG
# ============================================================================

def log_webhook_event(event: Dict[str, Any], provider_name: str, db: Session) -> PaymentWebhook:
    """Persist a webhook event, or return the existing row for a redelivered event id

    Raises IntegrityError when another request inserted the same event id
    concurrently. Other database errors propagate to the caller.
    """
    webhook = db.query(PaymentWebhook).filter(PaymentWebhook.event_id == event["id"]).first()
    if webhook:
        return webhook

    webhook = PaymentWebhook(
        provider=provider_name,
        event_id=event["id"],
        event_type=event["type"],
        payload=event,
        processed=False,
    )
    db.add(webhook)
    db.commit()
    db.refresh(webhook)
    return webhook


def mark_webhook_processed(event_id: str, db: Session, error_message: Optional[str] = None):
    """Flag a logged event as processed; best-effort"""
    try:
        webhook = db.query(PaymentWebhook).filter(PaymentWebhook.event_id == event_id).first()
        if webhook:
            webhook.processed = True
            webhook.processed_at = utcnow()
            webhook.error_message = error_message
            db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to mark webhook {event_id} as processed: {e}")


# ============================================================================
# PAYMENT INTENT HANDLERS
# ============================================================================

def _get_value(obj: Any, key: str, default=None):
    """Read a key from a webhook object that may be a dict or attribute-style object"""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    value = getattr(obj, key, None)
    return default if value is None else value


def _find_transaction(payment_intent_id: str, db: Session) -> Optional[Transaction]:
    transaction = db.query(Transaction).filter(
        Transaction.provider_transaction_id == payment_intent_id
    ).first()
    if not transaction:
        # Webhook can race the creator's commit, or bookkeeping failed at creation time
        logger.warning(
            f"No transaction found for PaymentIntent {payment_intent_id}; "
            f"acknowledging without changes, needs manual investigation"
        )
    return transaction


def handle_payment_intent_succeeded(payment_intent: Any, db: Session, now: Optional[datetime] = None):
    """Mark the transaction succeeded and activate any boost it paid for"""
    now = now or utcnow()
    intent_id = _get_value(payment_intent, "id")
    logger.info(f"Payment succeeded: {intent_id}")

    transaction = _find_transaction(intent_id, db)
    if not transaction:
        return
    if transaction.status == "succeeded":
        logger.info(f"Transaction {transaction.id} already succeeded, skipping")
        return

    transaction.status = "succeeded"
    transaction.completed_at = now

    metadata = _get_value(payment_intent, "metadata", {}) or {}
    is_boost = transaction.is_boost_payment or _get_value(metadata, "type") == "boost"
    if is_boost:
        boosts = activate_boosts_for_transaction(transaction.id, db, now)
        if not boosts:
            logger.warning(f"Boost payment {intent_id} has no boost record for transaction {transaction.id}")
        notify_boost_activated(
            transaction.user_id,
            _get_value(metadata, "boostType") or (boosts[0].boost_type if boosts else None),
            _get_value(metadata, "itemId") or transaction.item_id,
            transaction.id,
            db,
        )

    db.commit()
    logger.info(f"Transaction {transaction.id} succeeded")


def _is_settled(transaction: Transaction) -> bool:
    """Succeeded, canceled or refunded; a failed payment can still be retried"""
    return transaction.status in TERMINAL_STATUSES and transaction.status != "failed"


def _fail_transaction(transaction: Transaction, db: Session, now: datetime):
    transaction.status = "failed"
    transaction.completed_at = now
    # Undo an optimistic activation so a failed payment leaves no visible boost
    deactivate_boosts_for_transaction(transaction.id, db, now)


def handle_payment_intent_failed(payment_intent: Any, db: Session, now: Optional[datetime] = None):
    """Mark the transaction failed and tell the user why"""
    now = now or utcnow()
    intent_id = _get_value(payment_intent, "id")
    logger.info(f"Payment failed: {intent_id}")

    transaction = _find_transaction(intent_id, db)
    if transaction and _is_settled(transaction):
        # Events are not ordered; a late decline must not undo a paid boost
        logger.info(f"Transaction {transaction.id} already {transaction.status}, ignoring failure event")
        return
    if transaction:
        _fail_transaction(transaction, db, now)

    metadata = _get_value(payment_intent, "metadata", {}) or {}
    user_id = _get_value(metadata, "userId") or (transaction.user_id if transaction else None)
    if user_id:
        last_error = _get_value(payment_intent, "last_payment_error")
        reason = _get_value(last_error, "message") or "Unknown error"
        notify_payment_failed(user_id, intent_id, reason, db)

    db.commit()


def handle_payment_intent_canceled(payment_intent: Any, db: Session, now: Optional[datetime] = None):
    """Canceled intents are recorded as failed; no notification"""
    now = now or utcnow()
    intent_id = _get_value(payment_intent, "id")
    logger.info(f"Payment canceled: {intent_id}")

    transaction = _find_transaction(intent_id, db)
    if not transaction:
        return
    if _is_settled(transaction):
        logger.info(f"Transaction {transaction.id} already {transaction.status}, ignoring cancellation")
        return
    _fail_transaction(transaction, db, now)
    db.commit()


def handle_payment_method_attached(payment_method: Any, db: Session, now: Optional[datetime] = None):
    customer = _get_value(payment_method, "customer")
    logger.info(f"Payment method attached: {_get_value(payment_method, 'id')} (customer: {customer})")


EVENT_HANDLERS = {
    "payment_intent.succeeded": handle_payment_intent_succeeded,
    "payment_intent.payment_failed": handle_payment_intent_failed,
    "payment_intent.canceled": handle_payment_intent_canceled,
    "payment_method.attached": handle_payment_method_attached,
}


# ============================================================================
# WEBHOOK PROCESSING
# ============================================================================

def process_payment_webhook(
    payload: bytes,
    sig_header: Optional[str],
    db: Session,
    provider: StripePaymentProvider
) -> Dict[str, Any]:
    """Process a payment provider webhook

    Verifies the signature, logs the event for idempotency, and dispatches by
    event type. Returns an acknowledgement even on processing errors so the
    provider does not retry; only signature/configuration failures raise.

    Args:
        payload: Raw request body as bytes (must not be parsed by middleware)
        sig_header: ``stripe-signature`` header
        db: Database session
        provider: Payment provider client

    Raises:
        InvalidSignature: missing or invalid signature
        WebhookConfigurationError: signing secret not configured
    """
    event = provider.construct_event(payload, sig_header)
    event_id = event["id"]
    event_type = event["type"]
    logger.info(f"Received webhook {event_id}: {event_type}")

    try:
        webhook = log_webhook_event(event, provider.name, db)
        if webhook.processed:
            logger.info(f"Webhook event {event_id} already processed")
            webhook_events_counter.labels(event_type=event_type, status="duplicate").inc()
            return {"received": True, "status": "already_processed"}
    except IntegrityError:
        db.rollback()
        logger.info(f"Webhook event {event_id} is being processed by another request")
        webhook_events_counter.labels(event_type=event_type, status="duplicate").inc()
        return {"received": True, "status": "already_processed"}
    except SQLAlchemyError as e:
        # Logging is best-effort; still reconcile
        db.rollback()
        logger.error(f"Failed to store webhook event {event_id}: {e}")

    handler = EVENT_HANDLERS.get(event_type)
    data = (event.get("data") or {}).get("object") or {}

    try:
        if handler:
            handler(data, db)
        else:
            logger.info(f"Unhandled event type: {event_type}")

        mark_webhook_processed(event_id, db)
        webhook_events_counter.labels(event_type=event_type, status="success").inc()
        return {"received": True}
    except Exception as e:
        # Acknowledge anyway: the provider would otherwise retry indefinitely
        db.rollback()
        logger.error(f"Error processing webhook {event_id}: {e}", exc_info=True)
        mark_webhook_processed(event_id, db, error_message=str(e))
        webhook_events_counter.labels(event_type=event_type, status="error").inc()
        return {"received": True, "status": "error_logged"}
