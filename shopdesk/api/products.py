"""Product endpoints for the shop in context"""
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.config import get_settings
from shopdesk.models.base import get_db
from shopdesk.models.product import Product, Supplier
from shopdesk.services.activity_service import check_low_stock, log_activity

router = APIRouter(prefix="/products", tags=["products"])

# NOT NULL columns; PATCH may omit them but not clear them
REQUIRED_FIELDS = ("name", "price", "stock")


class ProductCreate(BaseModel):
    name: str
    price: float = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    sku: str | None = None
    category: str | None = None
    supplier_id: int | None = None


class ProductUpdate(BaseModel):
    name: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    sku: str | None = None
    category: str | None = None
    supplier_id: int | None = None


def product_out(p: Product) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "sku": p.sku,
        "category": p.category,
        "price": p.price,
        "stock": p.stock,
        "supplier_id": p.supplier_id,
        "is_active": p.is_active,
        "created_at": p.created_at.isoformat() if p.created_at else None,
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }


def _get_product(db: Session, shop_id: str, product_id: int) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id, Product.shop_id == shop_id, Product.is_active == True)
        .first()
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


def _check_supplier(db: Session, shop_id: str, supplier_id: int | None) -> None:
    if supplier_id is None:
        return
    exists = db.query(Supplier.id).filter(Supplier.id == supplier_id, Supplier.shop_id == shop_id).first()
    if not exists:
        raise HTTPException(status_code=400, detail="Supplier not found in this shop")


@router.get("")
async def list_products(
    search: str | None = Query(None, description="Match on name or SKU"),
    low_stock: bool = Query(False, description="Only products at or below the low-stock threshold"),
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("products:read")),
):
    query = db.query(Product).filter(Product.shop_id == ctx.shop_id, Product.is_active == True)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if low_stock:
        query = query.filter(Product.stock <= get_settings().low_stock_threshold)
    products = query.order_by(Product.name).all()
    return {"products": [product_out(p) for p in products], "count": len(products)}


@router.post("", status_code=201)
async def create_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("products:create")),
):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Product name is required")
    _check_supplier(db, ctx.shop_id, body.supplier_id)

    product = Product(shop_id=ctx.shop_id, **body.model_dump())
    product.name = body.name.strip()
    db.add(product)
    db.flush()
    log_activity(db, ctx.shop_id, ctx.user.id, "create_product",
                 {"product_id": product.id, "name": product.name})
    db.commit()
    db.refresh(product)
    return product_out(product)


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("products:read")),
):
    return product_out(_get_product(db, ctx.shop_id, product_id))


@router.patch("/{product_id}")
async def update_product(
    product_id: int,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("products:update")),
):
    product = _get_product(db, ctx.shop_id, product_id)
    changes = body.model_dump(exclude_unset=True)
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=400, detail=f"Product {field} cannot be null")
    if "name" in changes:
        if not changes["name"].strip():
            raise HTTPException(status_code=400, detail="Product name cannot be empty")
        changes["name"] = changes["name"].strip()
    if "supplier_id" in changes:
        _check_supplier(db, ctx.shop_id, changes["supplier_id"])

    previous_stock = product.stock
    for field, value in changes.items():
        setattr(product, field, value)

    if "stock" in changes and changes["stock"] != previous_stock:
        log_activity(db, ctx.shop_id, ctx.user.id, "update_stock",
                     {"product_id": product.id, "previous_stock": previous_stock, "new_stock": product.stock})
        check_low_stock(db, product)
    else:
        log_activity(db, ctx.shop_id, ctx.user.id, "update_product",
                     {"product_id": product.id, "fields": sorted(changes)})
    db.commit()
    db.refresh(product)
    return product_out(product)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    ctx: ShopContext = Depends(require_permission("products:delete")),
):
    """Soft delete: sale history keeps pointing at the product."""
    product = _get_product(db, ctx.shop_id, product_id)
    product.is_active = False
    log_activity(db, ctx.shop_id, ctx.user.id, "delete_product", {"product_id": product.id})
    db.commit()
    return {"success": True, "message": f"Product {product.name} deleted"}
