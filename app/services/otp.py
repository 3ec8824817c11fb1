"""
OTP Service

Phone login by one-time code:
    1. issue_otp() replaces any pending code for the phone, stores a
       SHA-256 hash with an expiry, and texts the code.
    2. verify_otp() matches (phone, hash, not expired), deletes the row,
       gets or creates the user, and issues a bearer token.

Only the hash is stored; the plain code exists in the SMS and, when
OTP_DEBUG_ECHO is on in development, in the API response.

Author: Khalil Bannouri
Version: 4.0.0
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import OtpVerification, User, utcnow
from app.services.auth import get_auth_service
from app.services.notifications import get_notification_service
from app.services.notifications.base import mask_phone

logger = logging.getLogger(__name__)

INVALID_OTP_MESSAGE = "Invalid or expired OTP"


@dataclass
class OtpSendResult:
    success: bool
    otp: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class OtpVerifyResult:
    """
    Result from verifying a code.

    Attributes:
        success: Whether the login succeeded
        user: The authenticated user
        token: Bearer token for the client
        is_new_user: True when the account was created by this login
        error_message: Error description if verification failed
        error_code: "invalid_otp" or "auth_error"
    """
    success: bool
    user: Optional[User] = None
    token: Optional[str] = None
    is_new_user: bool = False
    error_message: Optional[str] = None
    error_code: Optional[str] = None


def generate_otp(length: Optional[int] = None) -> str:
    """Random numeric code without a leading zero."""
    if length is None:
        length = get_settings().otp_length
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_otp(phone: str, code: str) -> str:
    return hashlib.sha256(f"{phone}:{code}".encode()).hexdigest()


async def issue_otp(db: AsyncSession, phone: str) -> OtpSendResult:
    settings = get_settings()

    await db.execute(delete(OtpVerification).where(OtpVerification.phone == phone))

    code = generate_otp()
    db.add(OtpVerification(
        phone=phone,
        otp_hash=hash_otp(phone, code),
        expires_at=utcnow() + timedelta(minutes=settings.otp_expiry_minutes),
    ))
    await db.flush()

    notifier = get_notification_service()
    sms_result = await notifier.send_otp(phone, code, settings.otp_expiry_minutes)

    if not sms_result.success:
        await db.rollback()
        logger.error(f"OTP SMS to {mask_phone(phone)} failed: {sms_result.error_message}")
        return OtpSendResult(
            success=False,
            error_message="Could not send OTP. Please try again.",
            error_code="sms_failed",
        )

    await db.commit()
    logger.info(f"OTP issued for {mask_phone(phone)} (expires in {settings.otp_expiry_minutes} min)")

    return OtpSendResult(success=True, otp=code)


async def verify_otp(db: AsyncSession, phone: str, code: str) -> OtpVerifyResult:
    result = await db.execute(
        select(OtpVerification)
        .where(
            OtpVerification.phone == phone,
            OtpVerification.otp_hash == hash_otp(phone, code),
            OtpVerification.expires_at > utcnow(),
        )
        .limit(1)
    )
    record = result.scalar_one_or_none()

    if record is None:
        logger.info(f"OTP verification failed for {mask_phone(phone)}")
        return OtpVerifyResult(
            success=False,
            error_message=INVALID_OTP_MESSAGE,
            error_code="invalid_otp",
        )

    await db.delete(record)

    user_result = await db.execute(select(User).where(User.phone == phone))
    user = user_result.scalar_one_or_none()
    is_new_user = user is None

    if is_new_user:
        user = User(phone=phone)
        db.add(user)
        await db.flush()
        logger.info(f"Created user #{user.id} for {mask_phone(phone)}")

    token_result = await get_auth_service().issue_token(user.id, phone)

    if not token_result.success:
        # Keep the OTP usable so the client can retry
        await db.rollback()
        return OtpVerifyResult(
            success=False,
            error_message=token_result.error_message,
            error_code="auth_error",
        )

    if token_result.external_id and user.external_auth_id != token_result.external_id:
        user.external_auth_id = token_result.external_id

    await db.commit()
    await db.refresh(user)

    return OtpVerifyResult(
        success=True,
        user=user,
        token=token_result.token,
        is_new_user=is_new_user,
    )


async def purge_expired_otps(db: AsyncSession) -> int:
    """Delete expired codes; returns how many went."""
    result = await db.execute(
        delete(OtpVerification).where(OtpVerification.expires_at <= utcnow())
    )
    await db.commit()
    return result.rowcount or 0
