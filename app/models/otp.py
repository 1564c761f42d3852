"""One-time codes bound to an email address or a phone number."""
from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, CheckConstraint
from app.database import Base, utcnow
import enum


class OTPPurpose(str, enum.Enum):
    verification = "verification"
    login = "login"
    reset = "reset"


class OneTimeCode(Base):
    __tablename__ = "otp_codes"
    __table_args__ = (
        CheckConstraint(
            "(email IS NULL) != (phone IS NULL)",
            name="ck_otp_codes_single_channel",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True, index=True)
    code = Column(String(6), nullable=False)
    purpose = Column(SQLEnum(OTPPurpose), nullable=False, default=OTPPurpose.verification)

    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
