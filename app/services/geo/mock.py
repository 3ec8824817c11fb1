"""
Mock Geo Service Implementation

Simulates Google Maps Geocoding API without making real API calls.
Used in development mode (ENV_MODE=development) for local testing.

Behavior:
    - Geocodes any non-empty address to a point near central Guwahati
    - Straight-line (haversine) distances
    - Simulated network latency and random API failures

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import random
import logging
from datetime import datetime

from app.services.geo.base import (
    BaseGeoService,
    GeocodeResult,
    DistanceResult,
)
from app.services.geo.distance import haversine_km

logger = logging.getLogger(__name__)


class MockGeoService(BaseGeoService):
    """
    Mock implementation of the geo service.

    Attributes:
        failure_rate: Probability of simulated API failure (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
    """

    # Ganeshguri, Guwahati
    CENTER_LAT = 26.1445
    CENTER_LNG = 91.7362

    # Roughly 20 km/h average across town
    AVERAGE_SPEED_KMH = 20.0

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.5,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency

        logger.info(f"MockGeoService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency; returns it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def _generate_coordinates(self) -> tuple[float, float]:
        lat = self.CENTER_LAT + random.uniform(-0.02, 0.02)
        lng = self.CENTER_LNG + random.uniform(-0.02, 0.02)
        return round(lat, 6), round(lng, 6)

    async def geocode_address(
        self,
        address: str,
        city: str,
        country: str = "IN",
    ) -> GeocodeResult:
        start_time = datetime.now()
        logger.debug(f"Mock: Geocoding address - {address}, {city}")

        await self._simulate_latency()
        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

        if self._should_fail():
            logger.debug("Mock: Simulated API failure")
            return GeocodeResult(
                success=False,
                error_message="Geocoding service temporarily unavailable",
                error_code="service_unavailable",
                response_time_ms=elapsed_ms,
            )

        if not address or not address.strip():
            return GeocodeResult(
                success=False,
                error_message="Address is required",
                error_code="invalid_address",
                response_time_ms=elapsed_ms,
            )

        lat, lng = self._generate_coordinates()
        formatted_address = f"{address.strip().title()}, {city.title()}, {country.upper()}"

        logger.info(f"Mock: Address geocoded - {formatted_address}")

        return GeocodeResult(
            success=True,
            formatted_address=formatted_address,
            latitude=lat,
            longitude=lng,
            city=city.title(),
            response_time_ms=elapsed_ms,
        )

    async def calculate_distance(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> DistanceResult:
        await self._simulate_latency()

        distance_km = round(haversine_km(origin_lat, origin_lng, dest_lat, dest_lng), 2)
        duration_minutes = int(distance_km / self.AVERAGE_SPEED_KMH * 60)

        return DistanceResult(
            success=True,
            distance_km=distance_km,
            duration_minutes=max(duration_minutes, 5),  # Minimum 5 minutes
        )

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        return True
