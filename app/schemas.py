"""
Pydantic Schemas for Request/Response Validation

JSON on the wire is camelCase (kitchenId, orderMode, ...); snake_case is
accepted on input too. Money is Decimal and serializes as a string.

Author: Khalil Bannouri
Version: 4.0.0
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.core.config import get_settings
from app.models import OrderMode, OrderStatus


class CamelModel(BaseModel):
    """Base for every wire schema."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PartialUpdate(CamelModel):
    """
    Base for PUT bodies applied with ``exclude_unset``.

    Omitting a field leaves it alone; sending null for one listed in
    ``not_null`` is rejected instead of reaching a NOT NULL column.
    """
    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def reject_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for name in cls.not_null:
                for key in (name, to_camel(name)):
                    if key in data and data[key] is None:
                        raise ValueError(f"{to_camel(name)} cannot be null")
        return data


COORDINATE_LIMITS = {"latitude": 90.0, "longitude": 180.0}


def _check_coordinate(v: Optional[str], axis: str) -> Optional[str]:
    if v is None or v == "":
        return None
    try:
        value = float(v)
    except ValueError:
        raise ValueError("Coordinate must be a decimal number")
    limit = COORDINATE_LIMITS[axis]
    if not math.isfinite(value) or abs(value) > limit:
        raise ValueError(f"{axis.capitalize()} must be between -{limit:g} and {limit:g}")
    return v


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    environment: str
    database: str
    redis: str
    geo_service: str
    notification_service: str
    auth_service: str
    timestamp: datetime


# =============================================================================
# AUTH / USERS
# =============================================================================

class SendOtpRequest(CamelModel):
    phone: str = Field(..., pattern=r"^\d{10}$", examples=["9876543210"])


class SendOtpResponse(CamelModel):
    success: bool
    message: str
    otp: Optional[str] = None  # only echoed in development when enabled


class VerifyOtpRequest(CamelModel):
    phone: str = Field(..., pattern=r"^\d{10}$", examples=["9876543210"])
    otp: str = Field(..., examples=["123456"])

    @field_validator("otp")
    @classmethod
    def validate_otp(cls, v: str) -> str:
        length = get_settings().otp_length
        if len(v) != length or not v.isdigit():
            raise ValueError(f"OTP must be {length} digits")
        return v


class UserResponse(CamelModel):
    id: int
    phone: str
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


class UserUpdate(CamelModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email format")
        return v


class AuthResponse(CamelModel):
    user: UserResponse
    token: str
    message: str


# =============================================================================
# KITCHENS
# =============================================================================

class KitchenCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    area: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=50)
    open_time: str = Field(..., max_length=20, examples=["10:00 AM"])
    close_time: str = Field(..., max_length=20, examples=["10:00 PM"])
    is_active: bool = True
    latitude: Optional[str] = Field(None, examples=["26.1445"])
    longitude: Optional[str] = Field(None, examples=["91.7362"])

    @field_validator("latitude", "longitude")
    @classmethod
    def validate_coordinate(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_coordinate(v, info.field_name)


class KitchenUpdate(PartialUpdate):
    not_null = ("name", "area", "city", "open_time", "close_time", "is_active")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    area: Optional[str] = Field(None, max_length=100)
    city: Optional[str] = Field(None, max_length=50)
    open_time: Optional[str] = Field(None, max_length=20)
    close_time: Optional[str] = Field(None, max_length=20)
    is_active: Optional[bool] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None

    @field_validator("latitude", "longitude")
    @classmethod
    def validate_coordinate(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_coordinate(v, info.field_name)


class KitchenResponse(CamelModel):
    id: int
    name: str
    area: str
    city: str
    open_time: str
    close_time: str
    is_active: bool
    latitude: Optional[str] = None
    longitude: Optional[str] = None


class NearestKitchenResponse(CamelModel):
    kitchen: KitchenResponse
    distance_km: float


class AddressLookupRequest(CamelModel):
    address: str = Field(..., min_length=3, max_length=255)
    city: str = Field(default="Guwahati", max_length=50)


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)


class CategoryUpdate(PartialUpdate):
    not_null = ("name", "slug")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)


class CategoryResponse(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None


# =============================================================================
# PRODUCTS
# =============================================================================

class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, examples=["320.00"])
    image_url: Optional[str] = Field(None, max_length=500)
    in_stock: bool = True
    category_id: Optional[int] = None
    kitchen_id: Optional[int] = None


class ProductUpdate(PartialUpdate):
    not_null = ("name", "price", "in_stock")

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = Field(None, max_length=500)
    in_stock: Optional[bool] = None
    category_id: Optional[int] = None
    kitchen_id: Optional[int] = None


class ProductResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    image_url: Optional[str] = None
    in_stock: bool
    category_id: Optional[int] = None
    category_slug: Optional[str] = None
    kitchen_id: Optional[int] = None


# =============================================================================
# DELIVERY SLOTS
# =============================================================================

class DeliverySlotCreate(CamelModel):
    start_time: datetime
    end_time: datetime
    capacity: int = Field(default=10, ge=1, le=1000)
    kitchen_id: int

    @model_validator(mode="after")
    def check_window(self):
        if self.end_time <= self.start_time:
            raise ValueError("endTime must be after startTime")
        return self


class DeliverySlotUpdate(PartialUpdate):
    not_null = ("start_time", "end_time", "capacity", "kitchen_id")

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=1, le=1000)
    kitchen_id: Optional[int] = None


class DeliverySlotResponse(CamelModel):
    id: int
    start_time: datetime
    end_time: datetime
    capacity: int
    booked_count: int
    available: int
    kitchen_id: int


# =============================================================================
# PRICING
# =============================================================================

class DeliveryFeeRequest(CamelModel):
    distance: float = Field(..., ge=0, description="Distance in km")
    order_value: Decimal = Field(..., ge=0)
    has_subscription: bool = False


class DeliveryFeeResponse(CamelModel):
    delivery_fee: Decimal
    distance: float
    free_delivery: bool


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line in a checkout request. Price is looked up server-side."""
    product_id: int
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    notes: Optional[str] = Field(None, max_length=200)


class OrderCreate(CamelModel):
    kitchen_id: int
    order_mode: OrderMode = Field(..., examples=["delivery"])
    delivery_slot_id: Optional[int] = None
    delivery_address: Optional[str] = Field(None, max_length=500)
    items: List[OrderItemCreate] = Field(..., min_length=1)


class OrderItemResponse(CamelModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal
    notes: Optional[str] = None
    product: Optional[ProductResponse] = None


class OrderResponse(CamelModel):
    id: int
    user_id: int
    kitchen_id: int
    order_mode: OrderMode
    order_status: OrderStatus
    delivery_slot_id: Optional[int] = None
    delivery_address: Optional[str] = None
    subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    total: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []
    kitchen: Optional[KitchenResponse] = None
    delivery_slot: Optional[DeliverySlotResponse] = None


class AdminOrderResponse(OrderResponse):
    user: Optional[UserResponse] = None


class OrderCreateResponse(CamelModel):
    success: bool
    order: OrderResponse
    message: str


class OrderListResponse(CamelModel):
    total: int
    orders: List[AdminOrderResponse]


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


# =============================================================================
# ADMIN DASHBOARD
# =============================================================================

class OrderStats(CamelModel):
    total: int
    pending: int
    delivered: int
    cancelled: int


class RevenueStats(CamelModel):
    total: Decimal
    today: Decimal
    average_order_value: Decimal


class ProductStats(CamelModel):
    total: int
    in_stock: int
    out_of_stock: int


class CustomerStats(CamelModel):
    total: int
    new_today: int


class DashboardStats(CamelModel):
    orders: OrderStats
    revenue: RevenueStats
    products: ProductStats
    customers: CustomerStats


# =============================================================================
# GATEWAY
# =============================================================================

class ServiceInfo(CamelModel):
    name: str
    url: Optional[str] = None  # None when the service is not configured
    routes: List[str]


class ServiceDiscoveryResponse(CamelModel):
    services: List[ServiceInfo]
    gateway: Dict[str, str]
