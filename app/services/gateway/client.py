"""
Service Client

Thin httpx.AsyncClient wrapper that forwards requests to downstream
services. Downstream status codes and bodies pass through untouched;
transport failures surface as httpx.TransportError for the caller to
turn into a 502.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Any, Mapping, Optional

import httpx

from app.services.gateway.registry import ServiceName

logger = logging.getLogger(__name__)

# Never forwarded in either direction
HOP_BY_HOP_HEADERS = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
})


def filter_headers(headers: Optional[Mapping[str, str]]) -> dict[str, str]:
    if not headers:
        return {}
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


class ServiceClient:
    """
    Forwards HTTP calls to registered services.

    Attributes:
        registry: Base URL per service
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        registry: Mapping[ServiceName, str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.registry = dict(registry)
        self.timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def configured_url(self, name: ServiceName) -> Optional[str]:
        url = self.registry.get(name)
        return url.rstrip("/") if url else None

    def get_service_url(self, name: ServiceName) -> str:
        """
        Base URL for a service.

        Raises:
            ValueError: If the service has no URL configured
        """
        url = self.configured_url(name)
        if url is None:
            raise ValueError(f"No URL configured for {name.value}-service")
        return url

    def build_url(self, name: ServiceName, path: str) -> str:
        path = path.lstrip("/")
        base = self.get_service_url(name)
        return f"{base}/{path}" if path else base

    async def forward(
        self,
        name: ServiceName,
        method: str,
        path: str,
        headers: Optional[Mapping[str, str]] = None,
        params: Any = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        """Proxy one request; raises httpx.TransportError if unreachable."""
        url = self.build_url(name, path)
        logger.debug(f"Gateway: {method} {url}")

        response = await self._client.request(
            method,
            url,
            headers=filter_headers(headers),
            params=params,
            content=content,
        )

        logger.info(f"Gateway: {method} {url} -> {response.status_code}")
        return response

    async def post_json(self, name: ServiceName, path: str, payload: Any) -> httpx.Response:
        url = self.build_url(name, path)
        return await self._client.post(url, json=payload)

    async def health(self, name: ServiceName) -> bool:
        try:
            response = await self._client.get(self.build_url(name, "health"))
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    async def aclose(self) -> None:
        await self._client.aclose()
