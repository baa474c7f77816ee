"""Sales endpoints — record sales and list recent ones"""
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.base import get_db
from shopdesk.models.product import Product
from shopdesk.models.sale import Sale, SaleItem
from shopdesk.services.activity_service import check_low_stock, log_activity
from shopdesk.utils.logger import log

router = APIRouter(prefix="/sales", tags=["sales"])


class SaleItemIn(BaseModel):
    product_id: int
    quantity: int = Field(gt=0)
    price: float | None = Field(default=None, ge=0)  # defaults to the product price


class SaleCreate(BaseModel):
    items: list[SaleItemIn] = Field(min_length=1)


def sale_out(sale: Sale) -> dict:
    return {
        "id": sale.id,
        "order_id": sale.order_id,
        "staff_id": sale.staff_id,
        "total_amount": sale.total_amount,
        "created_at": sale.created_at.isoformat() if sale.created_at else None,
        "items": [
            {
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "price": item.price,
            }
            for item in sale.items
        ],
    }


def _new_order_id() -> str:
    return f"ORD-{datetime.utcnow():%Y%m%d}-{secrets.token_hex(3).upper()}"


@router.get("")
async def list_sales(
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("sales:read")),
):
    sales = (
        db.query(Sale)
        .filter(Sale.shop_id == ctx.shop_id)
        .order_by(Sale.created_at.desc())
        .limit(limit)
        .all()
    )
    return {"sales": [sale_out(s) for s in sales], "count": len(sales)}


@router.post("", status_code=201)
async def create_sale(
    body: SaleCreate,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("sales:create")),
):
    """Record a sale, decrementing stock. The total is computed here, not trusted from the client."""
    product_ids = {item.product_id for item in body.items}
    products = {
        p.id: p
        for p in db.query(Product).filter(
            Product.id.in_(product_ids), Product.shop_id == ctx.shop_id, Product.is_active == True
        )
    }
    missing = sorted(product_ids - set(products))
    if missing:
        raise HTTPException(status_code=400, detail=f"Unknown products: {missing}")

    requested: dict[int, int] = {}
    for item in body.items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    short = [products[pid].name for pid, qty in requested.items() if products[pid].stock < qty]
    if short:
        raise HTTPException(status_code=400, detail=f"Insufficient stock for: {', '.join(short)}")

    sale = Sale(shop_id=ctx.shop_id, staff_id=ctx.user.id, order_id=_new_order_id())
    total = 0.0
    for item in body.items:
        product = products[item.product_id]
        price = item.price if item.price is not None else product.price
        sale.items.append(SaleItem(product_id=product.id, quantity=item.quantity, price=price))
        total += price * item.quantity
    sale.total_amount = round(total, 2)
    db.add(sale)

    for pid, qty in requested.items():
        product = products[pid]
        product.stock -= qty
        check_low_stock(db, product)

    db.flush()
    log_activity(db, ctx.shop_id, ctx.user.id, "create_sale",
                 {"sale_id": sale.id, "order_id": sale.order_id, "total_amount": sale.total_amount})
    db.commit()
    db.refresh(sale)
    log.info(f"Recorded sale {sale.order_id} for shop {ctx.shop_id}: {sale.total_amount:.2f}")
    return sale_out(sale)


@router.get("/{sale_id}")
async def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("sales:read")),
):
    sale = db.query(Sale).filter(Sale.id == sale_id, Sale.shop_id == ctx.shop_id).first()
    if not sale:
        raise HTTPException(status_code=404, detail="Sale not found")
    return sale_out(sale)
