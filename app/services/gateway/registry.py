"""
Downstream service registry.

Maps each notional microservice to its base URL (from settings) and to
the public route prefixes the gateway forwards to it.
"""

from enum import Enum
from typing import Optional

from app.core.config import Settings, get_settings


class ServiceName(str, Enum):
    USER = "user"
    PRODUCT = "product"
    ORDER = "order"
    PAYMENT = "payment"
    DELIVERY = "delivery"
    ONDC = "ondc"


# Public prefix -> owning service
ROUTE_TABLE: dict[str, ServiceName] = {
    "users": ServiceName.USER,
    "products": ServiceName.PRODUCT,
    "categories": ServiceName.PRODUCT,
    "orders": ServiceName.ORDER,
    "payments": ServiceName.PAYMENT,
    "deliveries": ServiceName.DELIVERY,
    "ondc": ServiceName.ONDC,
}


def service_urls(settings: Optional[Settings] = None) -> dict[ServiceName, str]:
    settings = settings or get_settings()
    return {
        ServiceName.USER: settings.user_service_url,
        ServiceName.PRODUCT: settings.product_service_url,
        ServiceName.ORDER: settings.order_service_url,
        ServiceName.PAYMENT: settings.payment_service_url,
        ServiceName.DELIVERY: settings.delivery_service_url,
        ServiceName.ONDC: settings.ondc_service_url,
    }


def resolve_prefix(prefix: str) -> Optional[ServiceName]:
    return ROUTE_TABLE.get(prefix.strip("/").lower())


def routes_for(service: ServiceName) -> list[str]:
    return [f"/{prefix}" for prefix, owner in ROUTE_TABLE.items() if owner == service]
