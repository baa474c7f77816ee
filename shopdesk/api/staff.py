"""Staff membership endpoints — add existing users to a shop with a role"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.base import get_db
from shopdesk.models.shop import Role, StaffShop
from shopdesk.models.user import User
from shopdesk.services.activity_service import log_activity

router = APIRouter(prefix="/staff", tags=["staff"])


class StaffAdd(BaseModel):
    email: str
    role_id: int


class StaffRoleUpdate(BaseModel):
    role_id: int


def _staff_out(m: StaffShop, user: User) -> dict:
    return {
        "id": m.id,
        "user_id": user.id,
        "email": user.email,
        "name": user.name,
        "role": {"id": m.role.id, "name": m.role.name},
        "is_active": m.is_active,
    }


def _get_role(db: Session, shop_id: str, role_id: int) -> Role:
    role = db.query(Role).filter(Role.id == role_id, Role.shop_id == shop_id).first()
    if not role:
        raise HTTPException(status_code=400, detail="Role not found in this shop")
    return role


def _get_member(db: Session, shop_id: str, staff_id: int) -> StaffShop:
    member = db.query(StaffShop).filter(StaffShop.id == staff_id, StaffShop.shop_id == shop_id).first()
    if not member:
        raise HTTPException(status_code=404, detail="Staff member not found")
    return member


@router.get("")
async def list_staff(db: Session = Depends(get_db),
                     ctx: ShopContext = Depends(require_permission("staff:read"))):
    rows = (
        db.query(StaffShop, User)
        .join(User, User.id == StaffShop.user_id)
        .filter(StaffShop.shop_id == ctx.shop_id)
        .order_by(User.email)
        .all()
    )
    return {"staff": [_staff_out(m, u) for m, u in rows]}


@router.post("", status_code=201)
async def add_staff(body: StaffAdd, db: Session = Depends(get_db),
                    ctx: ShopContext = Depends(require_permission("staff:create"))):
    user = db.query(User).filter(User.email == body.email.lower().strip(), User.is_active == True).first()
    if not user:
        raise HTTPException(status_code=404, detail="No active user with that email")
    if user.id == ctx.shop.owner_id:
        raise HTTPException(status_code=400, detail="The owner already has full access")
    role = _get_role(db, ctx.shop_id, body.role_id)

    member = db.query(StaffShop).filter(StaffShop.shop_id == ctx.shop_id, StaffShop.user_id == user.id).first()
    if member and member.is_active:
        raise HTTPException(status_code=409, detail="User is already staff in this shop")
    if member:
        member.is_active = True
        member.role_id = role.id
    else:
        member = StaffShop(user_id=user.id, shop_id=ctx.shop_id, role_id=role.id)
        db.add(member)
    log_activity(db, ctx.shop_id, ctx.user.id, "add_staff", {"user_id": user.id, "role": role.name})
    db.commit()
    db.refresh(member)
    return _staff_out(member, user)


@router.patch("/{staff_id}/role")
async def change_role(staff_id: int, body: StaffRoleUpdate, db: Session = Depends(get_db),
                      ctx: ShopContext = Depends(require_permission("staff:manage_roles"))):
    member = _get_member(db, ctx.shop_id, staff_id)
    role = _get_role(db, ctx.shop_id, body.role_id)
    member.role_id = role.id
    db.commit()
    db.refresh(member)
    user = db.query(User).filter(User.id == member.user_id).first()
    return _staff_out(member, user)


@router.delete("/{staff_id}")
async def remove_staff(staff_id: int, db: Session = Depends(get_db),
                       ctx: ShopContext = Depends(require_permission("staff:delete"))):
    """Deactivate a membership; the user account itself is untouched."""
    member = _get_member(db, ctx.shop_id, staff_id)
    member.is_active = False
    log_activity(db, ctx.shop_id, ctx.user.id, "remove_staff", {"user_id": member.user_id})
    db.commit()
    return {"success": True}
