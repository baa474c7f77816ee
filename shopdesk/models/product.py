"""
Product and supplier models
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from shopdesk.models.base import Base


class Supplier(Base):
    """A vendor the shop restocks from"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(String(32), ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    products = relationship("Product", back_populates="supplier")


class Product(Base):
    """Inventory item with current stock level"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(String(32), ForeignKey("shops.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)

    # Basic info
    name = Column(String, nullable=False, index=True)
    sku = Column(String, nullable=True, index=True)
    category = Column(String, nullable=True)

    # Pricing / inventory
    price = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    supplier = relationship("Supplier", back_populates="products")
    sale_items = relationship("SaleItem", back_populates="product")
