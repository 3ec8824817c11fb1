"""
Auth Service Abstract Base Class

Bearer tokens are issued after OTP verification and checked on every
authenticated request. Development signs tokens locally; production
delegates to the external auth provider.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class AuthPrincipal:
    """Who a verified bearer token belongs to."""
    user_id: int
    external_id: Optional[str] = None


@dataclass
class AuthTokenResult:
    """
    Result from issuing a token.

    Attributes:
        success: Whether a token was issued
        token: Bearer token for the client
        external_id: Provider-side user id, if any
        error_message: Error description if issuing failed
        error_code: Machine-readable error code
    """
    success: bool
    token: Optional[str] = None
    external_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


class BaseAuthService(ABC):
    """Abstract base class for auth providers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def issue_token(self, user_id: int, phone: str) -> AuthTokenResult:
        """Issue a bearer token for a verified phone login."""
        pass

    @abstractmethod
    async def verify_token(self, token: str) -> Optional[AuthPrincipal]:
        """Return the principal for a valid token, None otherwise."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
