"""
SQLAlchemy Database Models

Storefront schema for the cloud-kitchen chain:
- Users (phone login) and OTP verifications
- Kitchens, categories, products
- Delivery slots with capacity bookkeeping
- Orders and order items with price snapshots

Author: Khalil Bannouri
Version: 4.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class OrderMode(str, enum.Enum):
    """How the customer receives the order."""
    DELIVERY = "delivery"
    TAKEAWAY = "takeaway"
    DINE_IN = "dine_in"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class User(Base):
    """Customer or admin, identified by a 10-digit phone number."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)

    # Id at the external auth provider (Supabase) when one is used
    external_auth_id = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    orders = relationship("Order", back_populates="user")

    def __repr__(self):
        return f"<User #{self.id} - {self.phone}>"


class Kitchen(Base):
    """A fulfilment location."""
    __tablename__ = "kitchens"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    area = Column(String(100), nullable=False)
    city = Column(String(50), nullable=False)
    open_time = Column(String(20), nullable=False)
    close_time = Column(String(20), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Decimal strings, e.g. "26.1445"
    latitude = Column(String(20), nullable=True)
    longitude = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Kitchen #{self.id} - {self.name}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Category {self.slug}>"


class Product(Base):
    """A menu item, optionally bound to one kitchen."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    image_url = Column(String(500), nullable=True)
    in_stock = Column(Boolean, default=True, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    # Denormalised copy of the category slug for cheap filtering
    category_slug = Column(String(100), nullable=True, index=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id", ondelete="SET NULL"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    category = relationship("Category")
    kitchen = relationship("Kitchen")

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - {self.price}>"


class DeliverySlot(Base):
    """A delivery window with a booking capacity."""
    __tablename__ = "delivery_slots"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    capacity = Column(Integer, default=10, nullable=False)
    booked_count = Column(Integer, default=0, nullable=False)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    kitchen = relationship("Kitchen")

    @property
    def available(self) -> int:
        return max((self.capacity or 0) - (self.booked_count or 0), 0)

    def __repr__(self):
        return f"<DeliverySlot #{self.id} - {self.booked_count}/{self.capacity}>"


class Order(Base):
    """
    Customer order.

    Money columns are computed server-side from live product prices at
    checkout and never trusted from the client.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    kitchen_id = Column(Integer, ForeignKey("kitchens.id"), nullable=False, index=True)

    order_mode = Column(
        Enum(OrderMode, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
    )
    order_status = Column(
        Enum(OrderStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    delivery_slot_id = Column(Integer, ForeignKey("delivery_slots.id"), nullable=True)
    delivery_address = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    service_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    user = relationship("User", back_populates="orders")
    kitchen = relationship("Kitchen")
    delivery_slot = relationship("DeliverySlot")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order #{self.id} - {self.order_mode.value} - {self.order_status.value}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # unit price at checkout
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class OtpVerification(Base):
    """Pending one-time code. Deleted on successful verification."""
    __tablename__ = "otp_verifications"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    phone = Column(String(20), nullable=False, index=True)
    otp_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
