"""Activity log entries and shop notifications"""
from typing import Dict, Optional

from sqlalchemy.orm import Session

from shopdesk.config import get_settings
from shopdesk.models.activity import ActivityLog, Notification
from shopdesk.models.product import Product


def log_activity(db: Session, shop_id: str, user_id: Optional[int], action: str,
                 details: Optional[Dict] = None) -> ActivityLog:
    """Record an action; the caller commits."""
    entry = ActivityLog(shop_id=shop_id, user_id=user_id, action=action, details=details or {})
    db.add(entry)
    return entry


def notify(db: Session, shop_id: str, title: str, message: str = "",
           type: str = "info", user_id: Optional[int] = None) -> Notification:
    note = Notification(shop_id=shop_id, user_id=user_id, type=type, title=title, message=message)
    db.add(note)
    return note


def check_low_stock(db: Session, product: Product) -> Optional[Notification]:
    """Add a low_stock notification if product is at or under the threshold."""
    threshold = get_settings().low_stock_threshold
    if product.stock > threshold:
        return None
    if product.stock <= 0:
        message = f"{product.name} is out of stock"
    else:
        message = f"Only {product.stock} units of {product.name} remaining"
    return notify(db, product.shop_id, title="Low stock", message=message, type="low_stock")
