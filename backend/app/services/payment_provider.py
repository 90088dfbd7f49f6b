"""Payment provider client - thin wrapper over the Stripe SDK

Handlers receive a provider instance through the ``get_payment_provider``
dependency so tests can swap in a fake without patching module globals.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from app.core.config import settings
from app.core.exceptions import InvalidSignature, PaymentProviderError, WebhookConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class PaymentIntentResult:
    id: str
    client_secret: str
    status: Optional[str] = None


class StripePaymentProvider:
    """Stripe-backed payment provider"""

    name = "stripe"

    def __init__(self, secret_key: str, webhook_secret: str, api_version: Optional[str] = None):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version

    def create_payment_intent(
        self,
        amount: int,
        currency: str,
        description: str,
        metadata: Dict[str, str]
    ) -> PaymentIntentResult:
        """Create a PaymentIntent for ``amount`` minor units

        Raises:
            PaymentProviderError: Stripe not configured or the API call failed
        """
        if not self.secret_key:
            logger.error("STRIPE_SECRET_KEY not configured")
            raise PaymentProviderError("Stripe configuration error")

        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=currency.lower(),
                description=description,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=self.secret_key,
                stripe_version=self.api_version,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent creation failed: {e}")
            raise PaymentProviderError(
                "Failed to create payment intent",
                details=getattr(e, "user_message", None) or str(e)
            )

        logger.info(f"Created PaymentIntent {intent.id} for {amount} {currency.upper()}")
        return PaymentIntentResult(
            id=intent.id,
            client_secret=intent.client_secret,
            status=getattr(intent, "status", None),
        )

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """Verify the ``stripe-signature`` header and return the event as a plain dict

        Raises:
            WebhookConfigurationError: signing secret not configured
            InvalidSignature: header missing, signature mismatch, stale timestamp or bad JSON
        """
        if not self.webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured")
            raise WebhookConfigurationError()

        if not sig_header:
            raise InvalidSignature(details="Missing stripe-signature header")

        if hasattr(payload, "decode"):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                logger.error(f"Invalid webhook payload encoding: {e}")
                raise InvalidSignature(details="Invalid payload")

        try:
            stripe.WebhookSignature.verify_header(
                payload, sig_header, self.webhook_secret, stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid webhook signature: {e}")
            raise InvalidSignature()

        try:
            event = json.loads(payload)
        except ValueError as e:
            logger.error(f"Invalid webhook payload: {e}")
            raise InvalidSignature(details="Invalid payload")

        if not isinstance(event, dict) or "id" not in event or "type" not in event:
            raise InvalidSignature(details="Invalid payload")
        return event


def get_payment_provider() -> StripePaymentProvider:
    """Dependency: payment provider configured from settings"""
    return StripePaymentProvider(
        secret_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        api_version=settings.STRIPE_API_VERSION or None,
    )
