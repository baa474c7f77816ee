"""
Shop permission matrix and default role templates.

Permissions are "resource:action" strings. Shop owners hold every
permission; staff hold the list stored on their Role.
"""
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from shopdesk.models.shop import Role, Shop


ALL_PERMISSIONS: List[str] = [
    "products:read", "products:create", "products:update", "products:delete",
    "sales:read", "sales:create", "sales:update", "sales:delete",
    "staff:read", "staff:create", "staff:update", "staff:delete", "staff:manage_roles",
    "shop:read", "shop:update", "shop:delete",
    "roles:read", "roles:create", "roles:update", "roles:delete",
    "suppliers:read", "suppliers:create", "suppliers:update", "suppliers:delete",
    "notifications:read", "notifications:update",
    "analytics:read",
]

DEFAULT_ROLE_TEMPLATES: Dict[str, Dict] = {
    "manager": {
        "description": "Manager with full access except shop deletion and role management",
        "permissions": [
            "products:read", "products:create", "products:update", "products:delete",
            "sales:read", "sales:create", "sales:update", "sales:delete",
            "staff:read", "staff:create", "staff:update",
            "shop:read", "shop:update",
            "roles:read",
            "suppliers:read", "suppliers:create", "suppliers:update", "suppliers:delete",
            "notifications:read", "notifications:update",
            "analytics:read",
        ],
    },
    "cashier": {
        "description": "Cashier focused on sales operations",
        "permissions": [
            "products:read",
            "sales:read", "sales:create", "sales:update", "sales:delete",
            "notifications:read", "notifications:update",
            "analytics:read",
        ],
    },
    "clerk": {
        "description": "Inventory clerk focused on product management",
        "permissions": [
            "products:read", "products:create", "products:update", "products:delete",
            "sales:read",
            "suppliers:read", "suppliers:create", "suppliers:update",
            "notifications:read", "notifications:update",
        ],
    },
}


def can(permissions: Iterable[str], action: str) -> bool:
    """True if action is granted by permissions."""
    return action in set(permissions or ())


def unknown_permissions(permissions: Iterable[str]) -> List[str]:
    known = set(ALL_PERMISSIONS)
    return sorted({p for p in permissions if p not in known})


def create_default_roles(db: Session, shop: Shop) -> List[Role]:
    """Add the manager/cashier/clerk system roles to a new shop (caller commits)."""
    roles = []
    for name, template in DEFAULT_ROLE_TEMPLATES.items():
        role = Role(
            shop_id=shop.id,
            name=name,
            description=template["description"],
            permissions=list(template["permissions"]),
            is_system=True,
        )
        db.add(role)
        roles.append(role)
    return roles
