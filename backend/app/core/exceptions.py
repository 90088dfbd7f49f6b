"""Payment flow exception hierarchy

Services raise these; the handler registered in app.core.middleware renders
them as ``{"error", "details", "success": false}`` with the matching status.
"""
from typing import Any, Dict, Optional


class PaymentError(Exception):
    """Base exception for all payment flow errors"""

    status_code = 500
    default_message = "Payment processing error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "details": self.details,
            "success": False,
        }


class Unauthorized(PaymentError):
    """Missing or invalid caller credential"""
    status_code = 401
    default_message = "Invalid authentication"


class InvalidRequest(PaymentError):
    """Missing or malformed request fields"""
    status_code = 400
    default_message = "Invalid request"


class InvalidPricingInput(PaymentError):
    """Unknown boost tier or currency"""
    status_code = 400
    default_message = "Invalid boost type or currency"


class ItemNotFound(PaymentError):
    """Item missing or not owned by the caller"""
    status_code = 404
    default_message = "Item not found or access denied"


class PaymentProviderError(PaymentError):
    """The payment provider API call failed"""
    status_code = 502
    default_message = "Payment provider error"


class InvalidSignature(PaymentError):
    """Webhook signature missing or not verifiable"""
    status_code = 400
    default_message = "Webhook signature verification failed"


class WebhookConfigurationError(PaymentError):
    """Webhook signing secret is not configured"""
    status_code = 500
    default_message = "Webhook configuration error"


class PersistenceError(PaymentError):
    """A database write failed after the provider call succeeded.

    Logged server-side only; the caller already holds a valid client secret.
    """
    status_code = 500
    default_message = "Failed to record payment"
