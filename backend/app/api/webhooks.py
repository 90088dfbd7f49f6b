"""Payment provider webhook routes"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.services.payment_provider import StripePaymentProvider, get_payment_provider
from app.services.webhook_service import process_payment_webhook

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    provider: StripePaymentProvider = Depends(get_payment_provider)
):
    """Handle Stripe webhook events

    Note: This route must be excluded from any global JSON parsing middleware
    to ensure the request body remains as raw bytes for signature verification.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    return process_payment_webhook(payload, sig_header, db, provider)
