"""Shared route dependencies: current user, shop context, permission checks."""
from dataclasses import dataclass
from typing import List

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from shopdesk.errors import NotAuthenticated, PermissionDenied, ShopAccessDenied, ShopContextMissing
from shopdesk.models.base import get_db
from shopdesk.models.shop import Shop, StaffShop
from shopdesk.models.user import User
from shopdesk.services.permissions import ALL_PERMISSIONS, can


@dataclass
class ShopContext:
    shop: Shop
    user: User
    is_owner: bool
    role_name: str
    permissions: List[str]

    @property
    def shop_id(self) -> str:
        return self.shop.id


def require_authenticated(request: Request) -> User:
    """Dependency: raise 401 if no authenticated user on request."""
    user = getattr(request.state, "user", None)
    if not user:
        raise NotAuthenticated()
    return user


def get_shop_context(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_authenticated),
) -> ShopContext:
    """Resolve the shop from the X-Shop-Id header (or shop_id query) and check access."""
    shop_id = request.headers.get("x-shop-id") or request.query_params.get("shop_id")
    if not shop_id:
        raise ShopContextMissing("Provide the shop id in the X-Shop-Id header or shop_id query parameter")

    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if shop and shop.owner_id == user.id:
        return ShopContext(shop=shop, user=user, is_owner=True, role_name="owner",
                           permissions=list(ALL_PERMISSIONS))

    membership = None
    if shop:
        membership = (
            db.query(StaffShop)
            .filter(StaffShop.shop_id == shop.id, StaffShop.user_id == user.id, StaffShop.is_active == True)
            .first()
        )
    if not membership:
        # Unknown shops and foreign shops look the same to the caller
        raise ShopAccessDenied("You do not have access to this shop")

    return ShopContext(shop=shop, user=user, is_owner=False, role_name=membership.role.name,
                       permissions=list(membership.role.permissions or []))


def require_permission(action: str):
    """Dependency factory: shop context whose permissions include action."""

    def dependency(ctx: ShopContext = Depends(get_shop_context)) -> ShopContext:
        if not can(ctx.permissions, action):
            raise PermissionDenied(f"Missing permission: {action}")
        return ctx

    return dependency
