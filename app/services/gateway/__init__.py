"""
API Gateway

Proxies public route prefixes to the downstream microservices.

Usage:
    from app.services.gateway import get_service_client, ServiceName

    client = get_service_client()
    response = await client.forward(ServiceName.PRODUCT, "GET", "/")

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.gateway.client import ServiceClient, filter_headers
from app.services.gateway.registry import (
    ROUTE_TABLE,
    ServiceName,
    resolve_prefix,
    routes_for,
    service_urls,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_service_client() -> ServiceClient:
    """Shared client for the process; closed on application shutdown."""
    settings = get_settings()
    logger.info("Gateway: ServiceClient initialized")
    return ServiceClient(service_urls(settings), timeout=settings.gateway_timeout_seconds)


def reset_service_client() -> None:
    get_service_client.cache_clear()


__all__ = [
    "get_service_client",
    "reset_service_client",
    "ServiceClient",
    "ServiceName",
    "ROUTE_TABLE",
    "filter_headers",
    "resolve_prefix",
    "routes_for",
    "service_urls",
]
