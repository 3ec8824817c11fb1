"""
Google Maps Geo Service Implementation

Production implementation using the Google Maps Geocoding and
Distance Matrix APIs. Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - GOOGLE_MAPS_API_KEY must be set in environment
    - Geocoding and Distance Matrix APIs enabled in Google Cloud Console

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime
from typing import Optional

import googlemaps
from googlemaps.exceptions import ApiError, Timeout, TransportError

from app.core.config import get_settings
from app.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    DistanceResult,
)

logger = logging.getLogger(__name__)


class GoogleGeoService(BaseGeoService):
    """
    Production Google Maps geo service implementation.

    Configuration:
        Requires GOOGLE_MAPS_API_KEY environment variable.
    """

    def __init__(self):
        """
        Initialize Google Maps client with API key.

        Raises:
            ValueError: If GOOGLE_MAPS_API_KEY is not configured
        """
        settings = get_settings()

        if not settings.google_maps_api_key:
            raise ValueError(
                "GOOGLE_MAPS_API_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        self._client = googlemaps.Client(key=settings.google_maps_api_key)
        logger.info("GoogleGeoService initialized")

    @property
    def provider_name(self) -> str:
        return "google"

    @staticmethod
    def _extract_city(components: list) -> Optional[str]:
        for component in components:
            if "locality" in component.get("types", []):
                return component.get("long_name")
        return None

    def _failure(self, start_time: datetime, message: str, code: str) -> GeocodeResult:
        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        return GeocodeResult(
            success=False,
            error_message=message,
            error_code=code,
            response_time_ms=elapsed_ms,
        )

    async def geocode_address(
        self,
        address: str,
        city: str,
        country: str = "IN",
    ) -> GeocodeResult:
        start_time = datetime.now()
        full_address = f"{address}, {city}, {country}"

        logger.debug(f"Google: Geocoding address - {full_address}")

        try:
            # googlemaps is synchronous, but lightweight
            geocode_result = self._client.geocode(full_address, region=country.lower())
        except Timeout:
            logger.error("Google: API timeout")
            return self._failure(start_time, "Address lookup timed out. Please try again.", "timeout")
        except ApiError as e:
            logger.error(f"Google: API error - {e}")
            return self._failure(start_time, "Address lookup service error", "api_error")
        except TransportError as e:
            logger.error(f"Google: Transport error - {e}")
            return self._failure(start_time, "Unable to reach address lookup service", "transport_error")

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        if not geocode_result:
            logger.warning(f"Google: Address not found - {full_address}")
            return GeocodeResult(
                success=False,
                error_message="Address not found. Please check and try again.",
                error_code="address_not_found",
                response_time_ms=elapsed_ms,
            )

        best = geocode_result[0]
        location = best.get("geometry", {}).get("location", {})

        logger.info(f"Google: Address geocoded - {best.get('formatted_address')}")

        return GeocodeResult(
            success=True,
            formatted_address=best.get("formatted_address", full_address),
            latitude=location.get("lat"),
            longitude=location.get("lng"),
            city=self._extract_city(best.get("address_components", [])),
            response_time_ms=elapsed_ms,
        )

    async def calculate_distance(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> DistanceResult:
        """Road distance via the Distance Matrix API."""
        try:
            result = self._client.distance_matrix(
                origins=[(origin_lat, origin_lng)],
                destinations=[(dest_lat, dest_lng)],
                mode="driving",
                units="metric",
            )
        except (ApiError, Timeout, TransportError) as e:
            logger.error(f"Google: Distance calculation error - {e}")
            return DistanceResult(success=False, error_message=str(e))

        element = result["rows"][0]["elements"][0]

        if element["status"] != "OK":
            return DistanceResult(
                success=False,
                error_message=f"Distance calculation failed: {element['status']}",
            )

        return DistanceResult(
            success=True,
            distance_km=round(element["distance"]["value"] / 1000, 2),
            duration_minutes=int(element["duration"]["value"] / 60),
        )

    async def health_check(self) -> bool:
        try:
            return bool(self._client.geocode("Guwahati, Assam, IN"))
        except (ApiError, Timeout, TransportError) as e:
            logger.error(f"Google: Health check failed - {e}")
            return False
