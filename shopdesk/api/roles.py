"""Role and permission management for the shop in context"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.base import get_db
from shopdesk.models.shop import Role, StaffShop
from shopdesk.services.permissions import ALL_PERMISSIONS, unknown_permissions

router = APIRouter(prefix="/roles", tags=["roles"])


class RoleCreate(BaseModel):
    name: str
    description: str | None = None
    permissions: list[str] = []


class RoleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    permissions: list[str] | None = None


def _role_out(r: Role) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "permissions": r.permissions or [],
        "is_system": r.is_system,
    }


def _validate_permissions(permissions: list[str]) -> list[str]:
    unknown = unknown_permissions(permissions)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown permissions: {unknown}")
    return sorted(set(permissions))


def _get_role(db: Session, shop_id: str, role_id: int) -> Role:
    role = db.query(Role).filter(Role.id == role_id, Role.shop_id == shop_id).first()
    if not role:
        raise HTTPException(status_code=404, detail="Role not found")
    return role


def _check_name_free(db: Session, shop_id: str, name: str, exclude_id: int | None = None) -> None:
    query = db.query(Role.id).filter(Role.shop_id == shop_id, Role.name == name)
    if exclude_id is not None:
        query = query.filter(Role.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=409, detail=f"Role '{name}' already exists")


@router.get("/permissions")
async def list_permissions(ctx: ShopContext = Depends(require_permission("roles:read"))):
    return {"permissions": ALL_PERMISSIONS}


@router.get("")
async def list_roles(db: Session = Depends(get_db),
                     ctx: ShopContext = Depends(require_permission("roles:read"))):
    roles = db.query(Role).filter(Role.shop_id == ctx.shop_id).order_by(Role.name).all()
    return {"roles": [_role_out(r) for r in roles]}


@router.post("", status_code=201)
async def create_role(body: RoleCreate, db: Session = Depends(get_db),
                      ctx: ShopContext = Depends(require_permission("roles:create"))):
    name = body.name.strip().lower()
    if not name:
        raise HTTPException(status_code=400, detail="Role name is required")
    if name == "owner":
        raise HTTPException(status_code=400, detail="'owner' is reserved")
    _check_name_free(db, ctx.shop_id, name)

    role = Role(shop_id=ctx.shop_id, name=name, description=body.description,
                permissions=_validate_permissions(body.permissions), is_system=False)
    db.add(role)
    db.commit()
    db.refresh(role)
    return _role_out(role)


@router.patch("/{role_id}")
async def update_role(role_id: int, body: RoleUpdate, db: Session = Depends(get_db),
                      ctx: ShopContext = Depends(require_permission("roles:update"))):
    role = _get_role(db, ctx.shop_id, role_id)
    if body.name is not None:
        name = body.name.strip().lower()
        if role.is_system and name != role.name:
            raise HTTPException(status_code=400, detail="System roles cannot be renamed")
        if not name or name == "owner":
            raise HTTPException(status_code=400, detail="Invalid role name")
        _check_name_free(db, ctx.shop_id, name, exclude_id=role.id)
        role.name = name
    if body.description is not None:
        role.description = body.description
    if body.permissions is not None:
        role.permissions = _validate_permissions(body.permissions)
    db.commit()
    db.refresh(role)
    return _role_out(role)


@router.delete("/{role_id}")
async def delete_role(role_id: int, db: Session = Depends(get_db),
                      ctx: ShopContext = Depends(require_permission("roles:delete"))):
    role = _get_role(db, ctx.shop_id, role_id)
    if role.is_system:
        raise HTTPException(status_code=400, detail="System roles cannot be deleted")
    in_use = db.query(StaffShop.id).filter(StaffShop.role_id == role.id).first()
    if in_use:
        raise HTTPException(status_code=409, detail="Role is assigned to staff")
    db.delete(role)
    db.commit()
    return {"success": True, "message": f"Role {role.name} deleted"}
