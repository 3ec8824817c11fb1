"""
ONDC Service Factory

Development answers ONDC actions from the local catalog; staging and
production forward them to the ONDC microservice via the API gateway.

Usage:
    from app.services.ondc import get_ondc_service

    ondc = get_ondc_service()
    result = await ondc.search(request, db)

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.gateway import get_service_client
from app.services.ondc.base import (
    FULFILLMENT_STATES,
    ORDER_STATES,
    BaseOndcService,
    OndcResult,
    ondc_error,
)
from app.services.ondc.gateway import GatewayOndcService
from app.services.ondc.local import LocalOndcService

logger = logging.getLogger(__name__)


@lru_cache()
def get_ondc_service() -> BaseOndcService:
    settings = get_settings()

    if settings.is_development:
        logger.info("ONDC Service: Using LocalOndcService (development mode)")
        return LocalOndcService()

    logger.info(f"ONDC Service: Using GatewayOndcService ({settings.env_mode.value} mode)")
    return GatewayOndcService(get_service_client())


def reset_ondc_service() -> None:
    get_ondc_service.cache_clear()


__all__ = [
    "get_ondc_service",
    "reset_ondc_service",
    "BaseOndcService",
    "OndcResult",
    "LocalOndcService",
    "GatewayOndcService",
    "ORDER_STATES",
    "FULFILLMENT_STATES",
    "ondc_error",
]
