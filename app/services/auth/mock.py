"""
Local JWT Auth Service

Signs and verifies HS256 access tokens in-process with python-jose.
Used in development mode, where no external auth provider is configured.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from app.services.auth.base import AuthPrincipal, AuthTokenResult, BaseAuthService

logger = logging.getLogger(__name__)


class MockAuthService(BaseAuthService):
    """Token issuer backed by a shared secret."""

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_minutes: int = 60):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        logger.info(f"MockAuthService initialized ({algorithm}, {expire_minutes} min tokens)")

    @property
    def provider_name(self) -> str:
        return "mock"

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=self.expire_minutes))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None

    async def issue_token(self, user_id: int, phone: str) -> AuthTokenResult:
        token = self.create_access_token({"sub": str(user_id), "phone": phone})
        return AuthTokenResult(success=True, token=token)

    async def verify_token(self, token: str) -> Optional[AuthPrincipal]:
        payload = self.decode_token(token)
        if payload is None:
            return None
        try:
            return AuthPrincipal(user_id=int(payload["sub"]))
        except (KeyError, TypeError, ValueError):
            logger.warning("Token without a usable subject")
            return None

    async def health_check(self) -> bool:
        return True
