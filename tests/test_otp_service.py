from datetime import timedelta

import pytest

from app.models.otp import OneTimeCode, OTPPurpose
from app.services import otp as otp_module
from app.services.otp import Channel, OTPCooldownError, OTPManager, generate_code, run_otp_cleanup_job

EMAIL = Channel.email("a@x.com")
PHONE = Channel.phone("9876543210")
TTL = timedelta(minutes=15)


@pytest.fixture
def manager(db, clock):
    return OTPManager(db, cooldown_seconds=60, clock=clock)


def _codes(monkeypatch, *codes):
    it = iter(codes)
    monkeypatch.setattr(otp_module, "generate_code", lambda: next(it))


def test_generate_code_is_six_digits():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert code.isdigit()


def test_issue_invalidates_previous_code(manager, monkeypatch):
    _codes(monkeypatch, "111111", "222222")
    first = manager.issue(EMAIL, OTPPurpose.verification, TTL)
    second = manager.issue(EMAIL, OTPPurpose.verification, TTL)
    assert manager.verify(EMAIL, OTPPurpose.verification, first) is False
    assert manager.verify(EMAIL, OTPPurpose.verification, second) is True
    assert manager.db.query(OneTimeCode).count() == 1


def test_code_is_single_use(manager):
    code = manager.issue(EMAIL, OTPPurpose.verification, TTL)
    assert manager.verify(EMAIL, OTPPurpose.verification, code)
    manager.consume(EMAIL, OTPPurpose.verification)
    assert manager.verify(EMAIL, OTPPurpose.verification, code) is False


def test_expiry_boundary(manager, clock):
    issued_at = clock.now
    code = manager.issue(EMAIL, OTPPurpose.verification, TTL)
    expires_at = issued_at + TTL

    clock.now = expires_at - timedelta(milliseconds=1)
    assert manager.verify(EMAIL, OTPPurpose.verification, code) is True
    clock.now = expires_at
    assert manager.verify(EMAIL, OTPPurpose.verification, code) is False
    clock.now = expires_at + timedelta(milliseconds=1)
    assert manager.verify(EMAIL, OTPPurpose.verification, code) is False


def test_codes_are_scoped_to_channel_and_purpose(manager, monkeypatch):
    _codes(monkeypatch, "123456", "654321")
    manager.issue(EMAIL, OTPPurpose.verification, TTL)
    manager.issue(PHONE, OTPPurpose.verification, timedelta(minutes=10))
    assert manager.verify(PHONE, OTPPurpose.verification, "123456") is False
    assert manager.verify(EMAIL, OTPPurpose.login, "123456") is False
    assert manager.verify(EMAIL, OTPPurpose.verification, "123456") is True
    assert manager.verify(PHONE, OTPPurpose.verification, "654321") is True


def test_resend_cooldown(manager, clock):
    manager.issue(EMAIL, OTPPurpose.verification, TTL)
    clock.advance(seconds=30)
    with pytest.raises(OTPCooldownError) as exc:
        manager.resend(EMAIL, OTPPurpose.verification, TTL)
    assert exc.value.retry_after == 30

    clock.advance(seconds=30)
    code = manager.resend(EMAIL, OTPPurpose.verification, TTL)
    assert manager.verify(EMAIL, OTPPurpose.verification, code)


def test_resend_without_previous_code_is_allowed(manager):
    assert manager.seconds_until_resend(PHONE, OTPPurpose.verification) == 0
    code = manager.resend(PHONE, OTPPurpose.verification, timedelta(minutes=10))
    assert manager.verify(PHONE, OTPPurpose.verification, code)


def test_purge_expired_keeps_live_codes(manager, clock):
    manager.issue(PHONE, OTPPurpose.verification, timedelta(minutes=10))
    manager.issue(EMAIL, OTPPurpose.verification, TTL)
    clock.advance(minutes=12)
    assert manager.purge_expired() == 1
    remaining = manager.db.query(OneTimeCode).all()
    assert [r.email for r in remaining] == ["a@x.com"]


def test_cleanup_job_uses_its_own_session(database):
    db = database.SessionLocal()
    try:
        OTPManager(db).issue(EMAIL, OTPPurpose.verification, timedelta(minutes=-1))
    finally:
        db.close()
    assert run_otp_cleanup_job(database) == 1
