"""Supplier endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shopdesk.api.deps import ShopContext, require_permission
from shopdesk.models.base import get_db
from shopdesk.models.product import Product, Supplier

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


class SupplierIn(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class SupplierUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


def _supplier_out(s: Supplier, product_count: int | None = None) -> dict:
    out = {
        "id": s.id,
        "name": s.name,
        "email": s.email,
        "phone": s.phone,
        "address": s.address,
        "created_at": s.created_at.isoformat() if s.created_at else None,
    }
    if product_count is not None:
        out["product_count"] = product_count
    return out


def _get_supplier(db: Session, shop_id: str, supplier_id: int) -> Supplier:
    supplier = db.query(Supplier).filter(Supplier.id == supplier_id, Supplier.shop_id == shop_id).first()
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier


@router.get("")
async def list_suppliers(db: Session = Depends(get_db),
                         ctx: ShopContext = Depends(require_permission("suppliers:read"))):
    suppliers = db.query(Supplier).filter(Supplier.shop_id == ctx.shop_id).order_by(Supplier.name).all()
    return {
        "suppliers": [
            _supplier_out(s, sum(1 for p in s.products if p.is_active)) for s in suppliers
        ]
    }


@router.post("", status_code=201)
async def create_supplier(body: SupplierIn, db: Session = Depends(get_db),
                          ctx: ShopContext = Depends(require_permission("suppliers:create"))):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Supplier name is required")
    supplier = Supplier(shop_id=ctx.shop_id, **body.model_dump())
    supplier.name = body.name.strip()
    db.add(supplier)
    db.commit()
    db.refresh(supplier)
    return _supplier_out(supplier)


@router.patch("/{supplier_id}")
async def update_supplier(supplier_id: int, body: SupplierUpdate, db: Session = Depends(get_db),
                          ctx: ShopContext = Depends(require_permission("suppliers:update"))):
    supplier = _get_supplier(db, ctx.shop_id, supplier_id)
    changes = body.model_dump(exclude_unset=True)
    if "name" in changes:
        if not (changes["name"] or "").strip():
            raise HTTPException(status_code=400, detail="Supplier name cannot be empty")
        changes["name"] = changes["name"].strip()
    for field, value in changes.items():
        setattr(supplier, field, value)
    db.commit()
    db.refresh(supplier)
    return _supplier_out(supplier)


@router.delete("/{supplier_id}")
async def delete_supplier(supplier_id: int, db: Session = Depends(get_db),
                          ctx: ShopContext = Depends(require_permission("suppliers:delete"))):
    """Delete a supplier and unlink its products."""
    supplier = _get_supplier(db, ctx.shop_id, supplier_id)
    db.query(Product).filter(Product.supplier_id == supplier.id).update({Product.supplier_id: None})
    db.delete(supplier)
    db.commit()
    return {"success": True, "message": f"Supplier {supplier.name} deleted"}
