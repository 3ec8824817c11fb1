"""
Gateway ONDC Service

Forwards ONDC actions to the dedicated ONDC microservice through the
API gateway's ServiceClient and relays its answer unchanged.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import User
from app.services.gateway import ServiceClient, ServiceName
from app.services.ondc.base import BaseOndcService, OndcResult, ondc_error
from app.services.ondc.schemas import (
    OndcOrderIdRequest,
    OndcOrderRequest,
    OndcSearchRequest,
    OndcSelectRequest,
)

logger = logging.getLogger(__name__)


class GatewayOndcService(BaseOndcService):
    """
    ONDC handlers backed by the remote ONDC service.

    Attributes:
        client: Shared gateway ServiceClient
    """

    def __init__(self, client: ServiceClient):
        self.client = client

    @property
    def provider_name(self) -> str:
        return "ONDC service"

    async def _forward(self, action: str, request: BaseModel) -> OndcResult:
        try:
            response = await self.client.post_json(
                ServiceName.ONDC, action, request.model_dump(exclude_none=True)
            )
        except httpx.HTTPError as e:
            logger.error(f"ONDC {action}: service unreachable: {e}")
            return ondc_error(
                "Unable to connect to the target service", status_code=502, error="Bad Gateway"
            )

        try:
            body = response.json()
        except ValueError:
            logger.error(f"ONDC {action}: non-JSON reply ({response.status_code})")
            return ondc_error(
                "Invalid response from the target service", status_code=502, error="Bad Gateway"
            )

        return OndcResult(status_code=response.status_code, body=body)

    async def search(self, request: OndcSearchRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        return await self._forward("search", request)

    async def select(self, request: OndcSelectRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        return await self._forward("select", request)

    async def init(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        return await self._forward("init", request)

    async def confirm(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        return await self._forward("confirm", request)

    async def status(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        return await self._forward("status", request)

    async def cancel(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        return await self._forward("cancel", request)

    async def update(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        return await self._forward("update", request)

    async def health_check(self) -> bool:
        return await self.client.health(ServiceName.ONDC)
