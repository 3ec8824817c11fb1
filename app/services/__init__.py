"""
                        Services Module

Contains all business logic services with the hybrid architecture pattern.
Provider services have Mock (development) and Real (production) implementations.

Services:
    - geo: Google Maps geocoding and nearest-kitchen distance
    - notifications: Twilio SMS and SendGrid email
    - auth: Bearer tokens (local JWT or Supabase)
    - ondc: ONDC seller endpoints (local catalog or ONDC service)
    - gateway: API gateway client for the microservices
    - otp, orders, pricing, catalog, dashboard: Storefront business logic
    - excel_manager: Thread-safe Excel operations
"""

from app.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
