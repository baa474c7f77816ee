"""Shop endpoints — list, create and update the shops a user can access."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, get_shop_context, require_authenticated, require_permission
from shopdesk.models.base import get_db
from shopdesk.models.shop import Shop, StaffShop
from shopdesk.models.user import User
from shopdesk.services import auth_service
from shopdesk.services.permissions import ALL_PERMISSIONS

router = APIRouter(prefix="/shops", tags=["shops"])


class ShopCreate(BaseModel):
    name: str
    address: str | None = None


class ShopUpdate(BaseModel):
    name: str | None = None
    address: str | None = None


def _shop_out(shop: Shop, role: str, permissions: list) -> dict:
    return {
        "id": shop.id,
        "name": shop.name,
        "address": shop.address,
        "owner_id": shop.owner_id,
        "role": role,
        "permissions": permissions,
        "created_at": shop.created_at.isoformat() if shop.created_at else None,
    }


@router.get("/my-shops")
async def my_shops(db: Session = Depends(get_db), user: User = Depends(require_authenticated)):
    """Shops the user owns plus shops where they are active staff."""
    owned = db.query(Shop).filter(Shop.owner_id == user.id).order_by(Shop.created_at).all()
    shops = [_shop_out(s, "owner", ALL_PERMISSIONS) for s in owned]

    memberships = (
        db.query(StaffShop)
        .filter(StaffShop.user_id == user.id, StaffShop.is_active == True)
        .all()
    )
    owned_ids = {s.id for s in owned}
    for m in memberships:
        if m.shop_id not in owned_ids:
            shops.append(_shop_out(m.shop, m.role.name, m.role.permissions or []))
    return {"shops": shops}


@router.post("", status_code=201)
async def create_shop(body: ShopCreate, db: Session = Depends(get_db),
                      user: User = Depends(require_authenticated)):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Shop name is required")
    shop = auth_service.create_shop(db, user, body.name, body.address)
    return _shop_out(shop, "owner", ALL_PERMISSIONS)


@router.get("/current")
async def current_shop(ctx: ShopContext = Depends(get_shop_context)):
    return _shop_out(ctx.shop, ctx.role_name, ctx.permissions)


@router.patch("/current")
async def update_shop(body: ShopUpdate, db: Session = Depends(get_db),
                      ctx: ShopContext = Depends(require_permission("shop:update"))):
    shop = ctx.shop
    if body.name is not None:
        if not body.name.strip():
            raise HTTPException(status_code=400, detail="Shop name cannot be empty")
        shop.name = body.name.strip()
    if body.address is not None:
        shop.address = body.address
    db.commit()
    db.refresh(shop)
    return _shop_out(shop, ctx.role_name, ctx.permissions)
