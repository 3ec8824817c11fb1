"""
Auth Service Factory

Returns the local JWT issuer or Supabase based on ENV_MODE.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from functools import lru_cache

from app.core.config import get_settings
from app.services.auth.base import AuthPrincipal, AuthTokenResult, BaseAuthService
from app.services.auth.mock import MockAuthService
from app.services.auth.supabase import SupabaseAuthService

logger = logging.getLogger(__name__)


@lru_cache()
def get_auth_service() -> BaseAuthService:
    """Get the configured auth service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Auth Service: Using MockAuthService (development mode)")
        return MockAuthService(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expire_minutes=settings.access_token_expire_minutes,
        )
    else:
        logger.info(f"Auth Service: Using SupabaseAuthService ({settings.env_mode.value} mode)")
        return SupabaseAuthService()


def reset_auth_service() -> None:
    """Clear the cached service instance."""
    get_auth_service.cache_clear()


__all__ = [
    "get_auth_service",
    "reset_auth_service",
    "AuthPrincipal",
    "AuthTokenResult",
    "BaseAuthService",
    "MockAuthService",
    "SupabaseAuthService",
]
