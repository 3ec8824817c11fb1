import logging
from datetime import timedelta

from sqlalchemy import func, select, update

from app.core.config import get_settings
from app.models import OtpVerification, User, utcnow
from app.services import otp as otp_service
from app.services.notifications import get_notification_service
from app.services.notifications.base import NotificationResult, mask_phone

from conftest import TEST_OTP, bearer, login

PHONE = "9876543210"


async def count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar()


async def test_send_otp_stores_hash_and_texts_code(client, session):
    r = await client.post("/api/auth/send-otp", json={"phone": PHONE})

    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "OTP sent successfully"}

    row = (await session.execute(select(OtpVerification))).scalar_one()
    assert row.phone == PHONE
    assert row.otp_hash == otp_service.hash_otp(PHONE, TEST_OTP)
    assert TEST_OTP not in row.otp_hash

    sms = get_notification_service().messages_to(PHONE)[-1]
    assert sms["channel"] == "sms"
    assert TEST_OTP in sms["body"]


async def test_resend_replaces_previous_code(client, session):
    await client.post("/api/auth/send-otp", json={"phone": PHONE})
    await client.post("/api/auth/send-otp", json={"phone": PHONE})

    assert await count(session, OtpVerification) == 1


async def test_otp_echo_only_when_enabled(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "otp_debug_echo", True)

    r = await client.post("/api/auth/send-otp", json={"phone": PHONE})
    assert r.json()["otp"] == TEST_OTP


async def test_verify_creates_user_then_otp_is_single_use(client, session):
    await client.post("/api/auth/send-otp", json={"phone": PHONE})

    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": TEST_OTP})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Account created and authenticated"
    assert body["user"]["phone"] == PHONE
    assert body["token"]
    assert await count(session, OtpVerification) == 0

    # Same code again fails
    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": TEST_OTP})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired OTP"


async def test_returning_user_is_not_duplicated(client, session):
    await login(client, PHONE)
    await client.post("/api/auth/send-otp", json={"phone": PHONE})
    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": TEST_OTP})

    assert r.json()["message"] == "Authentication successful"
    assert await count(session, User) == 1


async def test_wrong_code_is_rejected_and_kept(client, session):
    await client.post("/api/auth/send-otp", json={"phone": PHONE})

    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": "654321"})
    assert r.status_code == 400
    assert await count(session, OtpVerification) == 1
    assert await count(session, User) == 0


async def test_expired_code_is_rejected(client, session):
    await client.post("/api/auth/send-otp", json={"phone": PHONE})
    await session.execute(
        update(OtpVerification).values(expires_at=utcnow() - timedelta(seconds=1))
    )
    await session.commit()

    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": TEST_OTP})
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid or expired OTP"


async def test_code_for_another_phone_is_rejected(client):
    await client.post("/api/auth/send-otp", json={"phone": PHONE})

    r = await client.post("/api/auth/verify-otp", json={"phone": "9123456780", "otp": TEST_OTP})
    assert r.status_code == 400


async def test_phone_and_otp_shape_validation(client):
    for phone in ["98765", "98765432101", "98765abcde", "+919876543210"]:
        r = await client.post("/api/auth/send-otp", json={"phone": phone})
        assert r.status_code == 400, phone

    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": "12345"})
    assert r.status_code == 400
    r = await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": "12a456"})
    assert r.status_code == 400


async def test_sms_failure_persists_nothing(client, session, monkeypatch):
    async def failing_send_otp(*args, **kwargs):
        return NotificationResult(success=False, error_message="carrier down", provider="mock")

    monkeypatch.setattr(get_notification_service(), "send_otp", failing_send_otp)

    r = await client.post("/api/auth/send-otp", json={"phone": PHONE})
    assert r.status_code == 502
    assert await count(session, OtpVerification) == 0


async def test_purge_removes_only_expired_codes(session):
    session.add_all([
        OtpVerification(phone="9000000001", otp_hash="a" * 64, expires_at=utcnow() - timedelta(minutes=1)),
        OtpVerification(phone="9000000002", otp_hash="b" * 64, expires_at=utcnow() + timedelta(minutes=5)),
    ])
    await session.commit()

    assert await otp_service.purge_expired_otps(session) == 1
    remaining = (await session.execute(select(OtpVerification.phone))).scalars().all()
    assert remaining == ["9000000002"]


async def test_token_grants_access_to_profile(client):
    token = await login(client, PHONE)

    r = await client.get("/api/users/me", headers=bearer(token))
    assert r.status_code == 200
    assert r.json()["phone"] == PHONE

    r = await client.put(
        "/api/users/me",
        json={"name": "Priya", "email": "priya@example.com", "address": "Zoo Road"},
        headers=bearer(token),
    )
    assert r.status_code == 200
    assert r.json()["name"] == "Priya"
    assert r.json()["email"] == "priya@example.com"


async def test_profile_requires_valid_token(client):
    assert (await client.get("/api/users/me")).status_code == 401
    r = await client.get("/api/users/me", headers=bearer("not-a-jwt"))
    assert r.status_code == 401


def test_phone_numbers_are_masked_in_logs():
    assert mask_phone(PHONE) == "******3210"
    assert mask_phone("123") == "123"


async def test_login_flow_keeps_full_number_out_of_logs(client, caplog):
    caplog.set_level(logging.INFO)

    await login(client, PHONE)
    await client.post("/api/auth/verify-otp", json={"phone": PHONE, "otp": "000000"})

    assert "******3210" in caplog.text
    assert PHONE not in caplog.text
