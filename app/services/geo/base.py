"""
Geo Service Abstract Base Class

Defines the interface contract for all geolocation service implementations.
Both MockGeoService and GoogleGeoService must implement these methods.

Use Cases:
    - Geocoding a typed address before nearest-kitchen lookup
    - Road distance for distance-based delivery fees

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class GeocodeResult:
    """
    Standardized result from geocoding an address.

    Attributes:
        success: Whether the address resolved to a coordinate
        formatted_address: Provider-normalised address
        latitude: GPS latitude coordinate
        longitude: GPS longitude coordinate
        city: Extracted city name
        error_message: Error description if geocoding failed
        error_code: Machine-readable error code
        response_time_ms: API response time
    """
    success: bool
    formatted_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "formatted_address": self.formatted_address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "city": self.city,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
        }


@dataclass
class DistanceResult:
    """
    Result from distance calculation between two points.

    Attributes:
        success: Whether calculation succeeded
        distance_km: Distance in kilometers
        duration_minutes: Estimated travel time
        error_message: Error if calculation failed
    """
    success: bool
    distance_km: Optional[float] = None
    duration_minutes: Optional[int] = None
    error_message: Optional[str] = None


class BaseGeoService(ABC):
    """
    Abstract base class for geolocation services.

    Example:
        >>> service = get_geo_service()
        >>> result = await service.geocode_address("Zoo Road", "Guwahati")
        >>> if result.success:
        ...     print(result.latitude, result.longitude)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the geo provider ("mock", "google")."""
        pass

    @abstractmethod
    async def geocode_address(
        self,
        address: str,
        city: str,
        country: str = "IN",
    ) -> GeocodeResult:
        """
        Resolve a street address to coordinates.

        Args:
            address: Street address or locality
            city: City name
            country: Country code (default: "IN")

        Returns:
            GeocodeResult: Coordinates or an error description
        """
        pass

    @abstractmethod
    async def calculate_distance(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> DistanceResult:
        """
        Calculate travel distance between two points.

        Args:
            origin_lat: Origin latitude (kitchen location)
            origin_lng: Origin longitude
            dest_lat: Destination latitude (customer)
            dest_lng: Destination longitude

        Returns:
            DistanceResult: Distance and duration information
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the geo service."""
        pass
