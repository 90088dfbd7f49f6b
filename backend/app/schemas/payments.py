"""Pydantic schemas for payments and boosts"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class CreatePaymentRequest(BaseModel):
    """Body of POST /api/payments/create-payment-intent (camelCase on the wire)

    Fields are optional here so missing values surface as InvalidRequest from
    the service rather than a schema error.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None  # 'boost'
    item_id: Optional[str] = Field(None, alias="itemId")
    boost_type: Optional[str] = Field(None, alias="boostType")  # 'premium', 'featured', 'urgent'
    currency: Optional[str] = None  # 'USD', 'EUR', 'CHF', 'GBP'
    duration: Optional[int] = None  # days
    metadata: Optional[Dict[str, Any]] = None
