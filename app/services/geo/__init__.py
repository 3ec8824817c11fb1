"""
Geo Service Factory

Provides a single entry point for obtaining a geo service instance.
Automatically selects Mock or Google Maps based on ENV_MODE configuration.

Usage:
    from app.services.geo import get_geo_service

    geo_service = get_geo_service()
    result = await geo_service.geocode_address("Zoo Road", "Guwahati")

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    DistanceResult,
)
from app.services.geo.distance import (
    NearestKitchen,
    find_nearest_kitchen,
    haversine_km,
)
from app.services.geo.mock import MockGeoService
from app.services.geo.google import GoogleGeoService

logger = logging.getLogger(__name__)


@lru_cache()
def get_geo_service() -> BaseGeoService:
    """
    Get the configured geo service instance.

    Returns:
        BaseGeoService: MockGeoService in development, GoogleGeoService otherwise

    Raises:
        ValueError: If production mode but Google API key not configured
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Geo Service: Using MockGeoService (development mode)")
        return MockGeoService(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
        )
    else:
        logger.info(
            f"Geo Service: Using GoogleGeoService "
            f"({settings.env_mode.value} mode)"
        )
        return GoogleGeoService()


def reset_geo_service() -> None:
    """Clear the cached geo service instance."""
    get_geo_service.cache_clear()
    logger.debug("Geo service cache cleared")


__all__ = [
    "get_geo_service",
    "reset_geo_service",
    "BaseGeoService",
    "GeocodeResult",
    "DistanceResult",
    "MockGeoService",
    "GoogleGeoService",
    "NearestKitchen",
    "find_nearest_kitchen",
    "haversine_km",
]
