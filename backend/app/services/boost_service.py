"""Boost service - boost state transitions, item denormalization and boost reads"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.metrics import boost_state_changes_counter
from app.models.base import as_utc, utcnow
from app.models.boost import Boost
from app.models.item import Item

logger = logging.getLogger(__name__)


def get_live_boost_for_item(item_id: str, db: Session, now: Optional[datetime] = None) -> Optional[Boost]:
    """Latest-expiring active, unexpired boost of an item"""
    now = now or utcnow()
    return db.query(Boost).filter(
        Boost.item_id == item_id,
        Boost.is_active.is_(True),
        Boost.expires_at > now
    ).order_by(Boost.expires_at.desc()).first()


def sync_item_boost_state(item_id: str, db: Session, now: Optional[datetime] = None) -> Optional[Item]:
    """Recompute an item's denormalized boost columns from its live boosts

    Does not commit; callers commit it together with the boost change that
    triggered it.
    """
    item = db.query(Item).filter(Item.id == item_id).first()
    if not item:
        logger.warning(f"Cannot sync boost state: item {item_id} not found")
        return None

    # Pending boost rows must be visible to the query below
    db.flush()
    live = get_live_boost_for_item(item_id, db, now)

    if live:
        item.is_boosted = True
        item.boost_type = live.boost_type
        item.boost_expires_at = live.expires_at
    else:
        item.is_boosted = False
        item.boost_type = None
        item.boost_expires_at = None
    return item


def activate_boosts_for_transaction(transaction_id: str, db: Session, now: Optional[datetime] = None) -> List[Boost]:
    """Activate every boost paid by a transaction, starting now"""
    now = now or utcnow()
    boosts = db.query(Boost).filter(Boost.transaction_id == transaction_id).all()

    for boost in boosts:
        boost.is_active = True
        boost.starts_at = now
        boost.expires_at = now + timedelta(days=boost.duration_days)
        boost_state_changes_counter.labels(boost_type=boost.boost_type, state="activated").inc()
        logger.info(f"Boost {boost.id} activated for item {boost.item_id} until {boost.expires_at.isoformat()}")

    for item_id in {b.item_id for b in boosts}:
        sync_item_boost_state(item_id, db, now)
    return boosts


def deactivate_boosts_for_transaction(transaction_id: str, db: Session, now: Optional[datetime] = None) -> List[Boost]:
    """Deactivate boosts of a transaction whose payment did not go through"""
    boosts = db.query(Boost).filter(
        Boost.transaction_id == transaction_id,
        Boost.is_active.is_(True)
    ).all()

    for boost in boosts:
        boost.is_active = False
        boost_state_changes_counter.labels(boost_type=boost.boost_type, state="deactivated").inc()
        logger.info(f"Boost {boost.id} deactivated for item {boost.item_id}")

    for item_id in {b.item_id for b in boosts}:
        sync_item_boost_state(item_id, db, now)
    return boosts


def build_boost_response(boost: Boost, now: Optional[datetime] = None) -> Dict[str, Any]:
    starts_at = as_utc(boost.starts_at)
    expires_at = as_utc(boost.expires_at)
    return {
        "id": boost.id,
        "item_id": boost.item_id,
        "transaction_id": boost.transaction_id,
        "boost_type": boost.boost_type,
        "duration_days": boost.duration_days,
        "amount_paid": boost.amount_paid,
        "currency": boost.currency,
        "starts_at": starts_at.isoformat() if starts_at else None,
        "expires_at": expires_at.isoformat() if expires_at else None,
        "is_active": boost.is_active,
        "is_live": boost.is_live(now),
    }


def list_user_boosts(user_id: str, limit: int, db: Session) -> List[Dict[str, Any]]:
    """Boosts purchased by a user, newest first"""
    boosts = db.query(Boost).filter(
        Boost.user_id == user_id
    ).order_by(Boost.created_at.desc()).limit(limit).all()
    now = utcnow()
    return [build_boost_response(b, now) for b in boosts]


def list_item_live_boosts(item_id: str, db: Session) -> List[Dict[str, Any]]:
    """Active, unexpired boosts of an item"""
    now = utcnow()
    boosts = db.query(Boost).filter(
        Boost.item_id == item_id,
        Boost.is_active.is_(True),
        Boost.expires_at > now
    ).order_by(Boost.expires_at.desc()).all()
    return [build_boost_response(b, now) for b in boosts]
