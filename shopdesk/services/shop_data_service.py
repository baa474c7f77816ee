"""
Shop data access for AI insights
Read-only snapshot of a shop's recent sales and inventory
"""
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from shopdesk.config import get_settings
from shopdesk.models.activity import ActivityLog
from shopdesk.models.product import Product
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.models.shop import Shop


# Days-until-stockout reported for products that aren't selling
NO_VELOCITY_DAYS = 999


class ShopNotFound(LookupError):
    pass


@dataclass
class ProductStat:
    name: str
    stock: int
    total_sold: int
    sales_velocity: float  # units per day over the window
    days_until_stockout: int


@dataclass
class ShopSnapshot:
    shop_id: str
    shop_name: str
    window_days: int
    total_sales: int = 0
    total_revenue: float = 0.0
    sales_by_day: Dict[str, float] = field(default_factory=dict)
    today_sales: int = 0
    today_revenue: float = 0.0
    today_items_sold: int = 0
    activity_counts: Dict[str, int] = field(default_factory=dict)
    products: List[ProductStat] = field(default_factory=list)
    low_stock: List[ProductStat] = field(default_factory=list)

    @property
    def avg_daily_revenue(self) -> float:
        return self.total_revenue / self.window_days if self.window_days else 0.0

    @property
    def is_empty(self) -> bool:
        return self.total_sales == 0 and not self.products


@dataclass
class MonthSnapshot:
    shop_id: str
    month: str  # YYYY-MM
    total_sales: int
    total_revenue: float
    items_sold: int


def days_until_stockout(stock: int, total_sold: int, window_days: int) -> int:
    """Whole days of stock left at the window's average sales rate."""
    velocity = total_sold / window_days if window_days else 0
    if velocity <= 0:
        return NO_VELOCITY_DAYS
    return int(max(stock, 0) / velocity)


class ShopDataService:
    """Queries one shop's recent activity for the insights aggregator"""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _get_shop(self, shop_id: str) -> Shop:
        shop = self.db.query(Shop).filter(Shop.id == shop_id).first()
        if not shop:
            raise ShopNotFound(f"Shop {shop_id} not found")
        return shop

    def load_snapshot(self, shop_id: str, now: Optional[datetime] = None) -> ShopSnapshot:
        """Recent sales and inventory for shop_id. Raises ShopNotFound."""
        shop = self._get_shop(shop_id)
        now = now or datetime.utcnow()
        window_days = self.settings.insights_window_days
        window_start = now - timedelta(days=window_days)
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        sales = (
            self.db.query(Sale)
            .filter(Sale.shop_id == shop_id, Sale.created_at >= window_start)
            .order_by(Sale.created_at.desc())
            .limit(self.settings.insights_max_sales)
            .all()
        )

        snapshot = ShopSnapshot(shop_id=shop.id, shop_name=shop.name, window_days=window_days)
        by_day = defaultdict(float)
        for sale in sales:
            amount = float(sale.total_amount or 0)
            snapshot.total_sales += 1
            snapshot.total_revenue += amount
            by_day[sale.created_at.strftime("%Y-%m-%d")] += amount
            if sale.created_at >= today_start:
                snapshot.today_sales += 1
                snapshot.today_revenue += amount
                snapshot.today_items_sold += sum(item.quantity for item in sale.items)
        snapshot.sales_by_day = dict(sorted(by_day.items()))

        sold_rows = (
            self.db.query(SaleItem.product_id, func.sum(SaleItem.quantity))
            .join(Sale, Sale.id == SaleItem.sale_id)
            .filter(Sale.shop_id == shop_id, Sale.created_at >= window_start)
            .group_by(SaleItem.product_id)
            .all()
        )
        sold = {product_id: int(qty or 0) for product_id, qty in sold_rows}

        products = (
            self.db.query(Product)
            .filter(Product.shop_id == shop_id, Product.is_active == True)
            .order_by(Product.name)
            .all()
        )
        for p in products:
            total_sold = sold.get(p.id, 0)
            stat = ProductStat(
                name=p.name,
                stock=p.stock or 0,
                total_sold=total_sold,
                sales_velocity=round(total_sold / window_days, 2) if window_days else 0.0,
                days_until_stockout=days_until_stockout(p.stock or 0, total_sold, window_days),
            )
            snapshot.products.append(stat)
            if stat.days_until_stockout < self.settings.stockout_warning_days:
                snapshot.low_stock.append(stat)
        # Best sellers first so the prompt's top-N is meaningful
        snapshot.products.sort(key=lambda s: s.total_sold, reverse=True)

        actions = (
            self.db.query(ActivityLog.action)
            .filter(ActivityLog.shop_id == shop_id, ActivityLog.created_at >= today_start)
            .order_by(ActivityLog.created_at.desc())
            .limit(50)
            .all()
        )
        snapshot.activity_counts = dict(Counter(a for (a,) in actions))

        return snapshot

    def load_month(self, shop_id: str, now: Optional[datetime] = None) -> MonthSnapshot:
        """Month-to-date sales totals for shop_id. Raises ShopNotFound."""
        self._get_shop(shop_id)
        now = now or datetime.utcnow()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        total_sales, total_revenue = (
            self.db.query(func.count(Sale.id), func.coalesce(func.sum(Sale.total_amount), 0))
            .filter(Sale.shop_id == shop_id, Sale.created_at >= month_start)
            .one()
        )
        items_sold = (
            self.db.query(func.coalesce(func.sum(SaleItem.quantity), 0))
            .join(Sale, Sale.id == SaleItem.sale_id)
            .filter(Sale.shop_id == shop_id, Sale.created_at >= month_start)
            .scalar()
        )
        return MonthSnapshot(
            shop_id=shop_id,
            month=month_start.strftime("%Y-%m"),
            total_sales=int(total_sales or 0),
            total_revenue=float(total_revenue or 0),
            items_sold=int(items_sold or 0),
        )
