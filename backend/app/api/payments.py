"""Payments API routes"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import require_auth
from app.db.session import get_db
from app.schemas.payments import CreatePaymentRequest
from app.services.payment_provider import StripePaymentProvider, get_payment_provider
from app.services.payment_service import create_boost_payment, list_user_transactions

router = APIRouter(prefix="/api/payments", tags=["payments"])
logger = logging.getLogger(__name__)


@router.post("/create-payment-intent")
def create_payment_intent(
    payment_request: CreatePaymentRequest,
    user_id: str = Depends(require_auth),
    db: Session = Depends(get_db),
    provider: StripePaymentProvider = Depends(get_payment_provider)
):
    """Create a payment intent for a boost purchase

    Returns the client secret the frontend hands to Stripe Elements.
    """
    return create_boost_payment(user_id, payment_request, db, provider)


@router.get("/transactions")
def get_transactions(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Get the caller's transactions, newest first"""
    return {"transactions": list_user_transactions(user_id, limit, db)}


# Separate router for /api/stripe
stripe_router = APIRouter(prefix="/api/stripe", tags=["stripe"])


@stripe_router.get("/config")
def get_stripe_config():
    """Get Stripe publishable key for frontend"""
    publishable_key = settings.STRIPE_PUBLISHABLE_KEY
    if not publishable_key:
        logger.warning("STRIPE_PUBLISHABLE_KEY not set in environment variables")
        raise HTTPException(500, "Stripe not configured")

    return {"publishable_key": publishable_key}
