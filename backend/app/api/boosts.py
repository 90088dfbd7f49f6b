"""Boosts API routes"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import InvalidPricingInput
from app.core.security import require_auth
from app.db.session import get_db
from app.services.boost_service import list_item_live_boosts, list_user_boosts
from app.services.pricing_service import SUPPORTED_CURRENCIES, list_boost_prices

router = APIRouter(prefix="/api/boosts", tags=["boosts"])


@router.get("")
def get_my_boosts(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(require_auth),
    db: Session = Depends(get_db)
):
    """Get boosts purchased by the caller, newest first"""
    return {"boosts": list_user_boosts(user_id, limit, db)}


@router.get("/pricing")
def get_boost_pricing(
    currency: str = Query(None),
    duration: int = Query(None, ge=1)
):
    """Price quotes for every boost tier"""
    code = (currency or settings.DEFAULT_BOOST_CURRENCY).upper()
    if code not in SUPPORTED_CURRENCIES:
        raise InvalidPricingInput(f"Unsupported currency: {code}")
    duration_days = duration or settings.DEFAULT_BOOST_DURATION_DAYS
    return {
        "currency": code,
        "duration_days": duration_days,
        "prices": list_boost_prices(code, duration_days),
    }


@router.get("/item/{item_id}")
def get_item_boosts(item_id: str, db: Session = Depends(get_db)):
    """Live boosts of an item"""
    return {"item_id": item_id, "boosts": list_item_live_boosts(item_id, db)}
