"""
Phone login by OTP.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.database import get_db
from app.schemas import (
    AuthResponse,
    ErrorResponse,
    SendOtpRequest,
    SendOtpResponse,
    UserResponse,
    VerifyOtpRequest,
)
from app.services import otp as otp_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/send-otp",
    response_model=SendOtpResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Send Login OTP",
)
async def send_otp(
    data: SendOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> SendOtpResponse:
    settings = get_settings()
    result = await otp_service.issue_otp(db, data.phone)

    if not result.success:
        raise HTTPException(status_code=502, detail=result.error_message)

    echo = settings.is_development and settings.otp_debug_echo
    return SendOtpResponse(
        success=True,
        message="OTP sent successfully",
        otp=result.otp if echo else None,
    )


@router.post(
    "/verify-otp",
    response_model=AuthResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Verify OTP and Sign In",
)
async def verify_otp(
    data: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    result = await otp_service.verify_otp(db, data.phone, data.otp)

    if not result.success:
        status_code = 502 if result.error_code == "auth_error" else 400
        raise HTTPException(status_code=status_code, detail=result.error_message)

    return AuthResponse(
        user=UserResponse.model_validate(result.user),
        token=result.token,
        message=(
            "Account created and authenticated"
            if result.is_new_user
            else "Authentication successful"
        ),
    )
