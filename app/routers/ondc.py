"""
ONDC seller endpoints.

Bodies are parsed here rather than by FastAPI so that shape errors use
the ONDC error format instead of the API's generic validation body.
Status and cancel act on a customer's own orders, so they need a bearer
token.
"""

import logging
from typing import Type, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models import User
from app.services.ondc import BaseOndcService, OndcResult, get_ondc_service, ondc_error
from app.services.ondc.schemas import (
    OndcOrderIdRequest,
    OndcOrderRequest,
    OndcSearchRequest,
    OndcSelectRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ondc", tags=["ONDC"])

RequestModel = TypeVar("RequestModel", bound=BaseModel)

MISSING_FIELDS = {
    "search": "Required fields missing: context.domain and context.action are required",
    "select": "Required fields missing: context, message.order.items",
    "init": "Required fields missing: context, message.order",
    "confirm": "Required fields missing: context, message.order",
    "update": "Required fields missing: context, message.order",
    "status": "Required fields missing: context, message.order_id",
    "cancel": "Required fields missing: context, message.order_id",
}


class OndcBadRequest(Exception):
    def __init__(self, result: OndcResult):
        self.result = result


async def _parse(request: Request, model: Type[RequestModel], action: str) -> RequestModel:
    try:
        payload = await request.json()
    except ValueError:
        raise OndcBadRequest(ondc_error("Body must be a JSON object"))

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.info(f"ONDC {action}: rejected ({e.error_count()} validation errors)")
        raise OndcBadRequest(ondc_error(MISSING_FIELDS[action]))


def _respond(result: OndcResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body)


async def _handle(
    action: str,
    model: Type[BaseModel],
    request: Request,
    db: AsyncSession,
    ondc: BaseOndcService,
    **extra,
) -> JSONResponse:
    try:
        body = await _parse(request, model, action)
    except OndcBadRequest as e:
        return _respond(e.result)

    logger.info(f"ONDC {action} (transaction {body.context.transaction_id})")
    handler = getattr(ondc, action)
    return _respond(await handler(body, db, **extra))


@router.post("/search", summary="ONDC Search")
async def search(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
) -> JSONResponse:
    return await _handle("search", OndcSearchRequest, request, db, ondc)


@router.post("/select", summary="ONDC Select")
async def select(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
) -> JSONResponse:
    return await _handle("select", OndcSelectRequest, request, db, ondc)


@router.post("/init", summary="ONDC Init")
async def init(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
) -> JSONResponse:
    return await _handle("init", OndcOrderRequest, request, db, ondc)


@router.post("/confirm", summary="ONDC Confirm")
async def confirm(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
) -> JSONResponse:
    return await _handle("confirm", OndcOrderRequest, request, db, ondc)


@router.post("/status", summary="ONDC Status")
async def status(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
    user: User = Depends(get_current_user),
) -> JSONResponse:
    return await _handle("status", OndcOrderIdRequest, request, db, ondc, customer=user)


@router.post("/cancel", summary="ONDC Cancel")
async def cancel(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
    user: User = Depends(get_current_user),
) -> JSONResponse:
    return await _handle("cancel", OndcOrderIdRequest, request, db, ondc, customer=user)


@router.post("/update", summary="ONDC Update")
async def update(
    request: Request,
    db: AsyncSession = Depends(get_db),
    ondc: BaseOndcService = Depends(get_ondc_service),
) -> JSONResponse:
    return await _handle("update", OndcOrderRequest, request, db, ondc)
