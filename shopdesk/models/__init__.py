"""Database models for ShopDesk"""

from shopdesk.models.user import User, UserSession

from shopdesk.models.shop import (
    Shop,
    Role,
    StaffShop
)

from shopdesk.models.product import (
    Product,
    Supplier
)

from shopdesk.models.sale import (
    Sale,
    SaleItem
)

from shopdesk.models.activity import (
    ActivityLog,
    Notification
)
