"""Notification endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.activity import Notification
from shopdesk.models.base import get_db

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_out(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "is_read": n.is_read,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


def _visible(db: Session, ctx: ShopContext):
    """Shop-wide notifications plus the ones addressed to the current user."""
    return db.query(Notification).filter(
        Notification.shop_id == ctx.shop_id,
        or_(Notification.user_id.is_(None), Notification.user_id == ctx.user.id),
    )


def _get_notification(db: Session, ctx: ShopContext, notification_id: int) -> Notification:
    note = _visible(db, ctx).filter(Notification.id == notification_id).first()
    if not note:
        raise HTTPException(status_code=404, detail="Notification not found")
    return note


@router.get("")
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("notifications:read")),
):
    query = _visible(db, ctx)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    notes = query.order_by(Notification.created_at.desc()).limit(limit).all()
    unread = _visible(db, ctx).filter(Notification.is_read == False).count()
    return {"notifications": [_notification_out(n) for n in notes], "unread_count": unread}


@router.post("/read-all")
async def mark_all_read(db: Session = Depends(get_db),
                        ctx: ShopContext = Depends(require_permission("notifications:update"))):
    count = _visible(db, ctx).filter(Notification.is_read == False).update(
        {Notification.is_read: True}, synchronize_session=False
    )
    db.commit()
    return {"success": True, "updated": count}


@router.post("/{notification_id}/read")
async def mark_read(notification_id: int, db: Session = Depends(get_db),
                    ctx: ShopContext = Depends(require_permission("notifications:update"))):
    note = _get_notification(db, ctx, notification_id)
    note.is_read = True
    db.commit()
    return _notification_out(note)


@router.delete("/{notification_id}")
async def delete_notification(notification_id: int, db: Session = Depends(get_db),
                              ctx: ShopContext = Depends(require_permission("notifications:update"))):
    note = _get_notification(db, ctx, notification_id)
    db.delete(note)
    db.commit()
    return {"success": True}
