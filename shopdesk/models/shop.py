"""
Shop tenancy models
A shop owns its products, sales, suppliers and roles; staff join through StaffShop.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from shopdesk.models.base import Base


def _new_shop_id() -> str:
    return uuid.uuid4().hex


class Shop(Base):
    """A tenant store"""
    __tablename__ = "shops"

    id = Column(String(32), primary_key=True, default=_new_shop_id)
    name = Column(String, nullable=False, index=True)
    address = Column(String, nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    roles = relationship("Role", back_populates="shop", cascade="all, delete-orphan")
    staff = relationship("StaffShop", back_populates="shop", cascade="all, delete-orphan")


class Role(Base):
    """Named permission set scoped to one shop"""
    __tablename__ = "roles"
    __table_args__ = (UniqueConstraint("shop_id", "name", name="uq_role_shop_name"),)

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(String(32), ForeignKey("shops.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    permissions = Column(JSON, nullable=False, default=list)  # ["products:read", ...]
    is_system = Column(Boolean, default=False)  # default templates can't be deleted
    created_at = Column(DateTime, default=datetime.utcnow)

    shop = relationship("Shop", back_populates="roles")
    members = relationship("StaffShop", back_populates="role")


class StaffShop(Base):
    """Staff membership of a user in a shop"""
    __tablename__ = "staff_shops"
    __table_args__ = (UniqueConstraint("user_id", "shop_id", name="uq_staff_user_shop"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    shop_id = Column(String(32), ForeignKey("shops.id"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    shop = relationship("Shop", back_populates="staff")
    role = relationship("Role", back_populates="members")
