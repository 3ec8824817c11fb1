"""
Supabase Auth Service

Production implementation delegating sessions to Supabase GoTrue over
its REST API. Phone logins map to a synthetic email account
``{phone}@{AUTH_EMAIL_DOMAIN}`` whose password is an HMAC of the phone
under the server secret, so it never leaves the backend.

Requirements:
    - SUPABASE_URL and SUPABASE_ANON_KEY
    - Email confirmations disabled for the project (signup returns a session)

Author: Khalil Bannouri
Version: 4.0.0
"""

import hashlib
import hmac
import logging
from typing import Optional

import httpx

from app.core.config import get_settings
from app.services.auth.base import AuthPrincipal, AuthTokenResult, BaseAuthService

logger = logging.getLogger(__name__)


class SupabaseAuthService(BaseAuthService):
    """Issues and verifies Supabase access tokens."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()

        if not settings.supabase_url or not settings.supabase_anon_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY are required for production mode."
            )

        self.base_url = settings.supabase_url.rstrip("/")
        self.anon_key = settings.supabase_anon_key
        self.email_domain = settings.auth_email_domain
        self._secret = settings.jwt_secret_key.encode()
        self._transport = transport
        self._timeout = settings.gateway_timeout_seconds

        logger.info(f"SupabaseAuthService initialized ({self.base_url})")

    @property
    def provider_name(self) -> str:
        return "supabase"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": self.anon_key},
            timeout=self._timeout,
            transport=self._transport,
        )

    def _credentials(self, phone: str) -> dict[str, str]:
        password = hmac.new(self._secret, phone.encode(), hashlib.sha256).hexdigest()
        return {"email": f"{phone}@{self.email_domain}", "password": password}

    async def issue_token(self, user_id: int, phone: str) -> AuthTokenResult:
        credentials = self._credentials(phone)

        try:
            async with self._client() as client:
                response = await client.post(
                    "/auth/v1/token",
                    params={"grant_type": "password"},
                    json=credentials,
                )
                if response.status_code != 200:
                    # First login for this phone: create the account
                    response = await client.post(
                        "/auth/v1/signup",
                        json={**credentials, "data": {"userId": user_id, "phone": phone}},
                    )
        except httpx.HTTPError as e:
            logger.error(f"Supabase: token request failed - {e}")
            return AuthTokenResult(
                success=False,
                error_message="Unable to reach auth provider",
                error_code="transport_error",
            )

        if response.status_code not in (200, 201):
            logger.error(f"Supabase: sign-in rejected ({response.status_code}) for user #{user_id}")
            return AuthTokenResult(
                success=False,
                error_message="Auth provider rejected the login",
                error_code="provider_error",
            )

        body = response.json()
        token = body.get("access_token")
        if not token:
            return AuthTokenResult(
                success=False,
                error_message="Auth provider returned no session",
                error_code="no_session",
            )

        return AuthTokenResult(
            success=True,
            token=token,
            external_id=(body.get("user") or {}).get("id"),
        )

    async def verify_token(self, token: str) -> Optional[AuthPrincipal]:
        try:
            async with self._client() as client:
                response = await client.get(
                    "/auth/v1/user",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Supabase: token verification failed - {e}")
            return None

        if response.status_code != 200:
            return None

        body = response.json()
        user_id = (body.get("user_metadata") or {}).get("userId")
        if user_id is None:
            logger.warning(f"Supabase user {body.get('id')} has no userId metadata")
            return None

        return AuthPrincipal(user_id=int(user_id), external_id=body.get("id"))

    async def health_check(self) -> bool:
        try:
            async with self._client() as client:
                response = await client.get("/auth/v1/health")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Supabase: health check failed - {e}")
            return False
