"""OTP lifecycle: issue, resend with cooldown, verify, consume, purge."""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from app.database import utcnow
from app.models.otp import OneTimeCode, OTPPurpose

logger = logging.getLogger(__name__)

CHANNEL_EMAIL = "email"
CHANNEL_PHONE = "phone"
CODE_LENGTH = 6


@dataclass(frozen=True)
class Channel:
    """Where a code is delivered: an email address or a phone number."""

    kind: str
    value: str

    @classmethod
    def email(cls, address: str) -> "Channel":
        return cls(CHANNEL_EMAIL, address)

    @classmethod
    def phone(cls, number: str) -> "Channel":
        return cls(CHANNEL_PHONE, number)

    def column(self):
        return OneTimeCode.email if self.kind == CHANNEL_EMAIL else OneTimeCode.phone

    def __str__(self) -> str:
        return f"{self.kind}:{self.value}"


class OTPCooldownError(Exception):
    def __init__(self, retry_after: int):
        super().__init__(f"OTP requested too recently; retry in {retry_after}s")
        self.retry_after = retry_after


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


class OTPManager:
    """Persists codes per (channel, purpose). Issuing replaces every earlier code for the pair."""

    def __init__(
        self,
        db: Session,
        cooldown_seconds: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock

    def _query(self, channel: Channel, purpose: OTPPurpose):
        return self.db.query(OneTimeCode).filter(
            channel.column() == channel.value,
            OneTimeCode.purpose == purpose,
        )

    def issue(self, channel: Channel, purpose: OTPPurpose, ttl: timedelta) -> str:
        now = self.clock()
        code = generate_code()
        self._query(channel, purpose).delete(synchronize_session=False)
        self.db.commit()
        record = OneTimeCode(
            code=code,
            purpose=purpose,
            expires_at=now + ttl,
            created_at=now,
        )
        if channel.kind == CHANNEL_EMAIL:
            record.email = channel.value
        else:
            record.phone = channel.value
        self.db.add(record)
        self.db.commit()
        logger.info("[OTP] Issued %s code for %s (expires %s)", purpose.value, channel, record.expires_at.isoformat())
        return code

    def seconds_until_resend(self, channel: Channel, purpose: OTPPurpose) -> int:
        latest = self._query(channel, purpose).order_by(OneTimeCode.created_at.desc()).first()
        if not latest:
            return 0
        elapsed = (self.clock() - latest.created_at).total_seconds()
        if elapsed >= self.cooldown_seconds:
            return 0
        return max(1, int(self.cooldown_seconds - elapsed))

    def resend(self, channel: Channel, purpose: OTPPurpose, ttl: timedelta) -> str:
        wait = self.seconds_until_resend(channel, purpose)
        if wait:
            raise OTPCooldownError(wait)
        return self.issue(channel, purpose, ttl)

    def verify(self, channel: Channel, purpose: OTPPurpose, code: str) -> bool:
        match = self._query(channel, purpose).filter(
            OneTimeCode.code == code,
            OneTimeCode.expires_at > self.clock(),
        ).first()
        return match is not None

    def consume(self, channel: Channel, purpose: OTPPurpose) -> int:
        deleted = self._query(channel, purpose).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def purge_expired(self) -> int:
        deleted = self.db.query(OneTimeCode).filter(
            OneTimeCode.expires_at <= self.clock(),
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted


def run_otp_cleanup_job(database) -> int:
    """Scheduled job: delete expired codes."""
    db = database.SessionLocal()
    try:
        deleted = OTPManager(db).purge_expired()
        if deleted:
            logger.info("OTP cleanup: deleted %d expired code(s).", deleted)
        return deleted
    finally:
        db.close()
