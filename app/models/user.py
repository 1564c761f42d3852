"""Accounts: identity, verification flags and KYC state."""
from sqlalchemy import Column, Integer, String, Enum as SQLEnum, DateTime, Boolean, Text, JSON
from app.database import Base, utcnow
import enum


class UserRole(str, enum.Enum):
    buyer = "buyer"
    vendor = "vendor"
    admin = "admin"


class AuthProvider(str, enum.Enum):
    local = "local"
    google = "google"


class KYCStatus(str, enum.Enum):
    not_submitted = "not_submitted"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    # Legacy spelling of approved written by older admin tooling
    verified = "verified"


APPROVED_KYC_STATUSES = frozenset({KYCStatus.approved, KYCStatus.verified})


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)  # empty for Google-only accounts
    phone = Column(String(20), nullable=True, index=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.buyer)
    auth_provider = Column(SQLEnum(AuthProvider), nullable=False, default=AuthProvider.local)

    email_verified = Column(Boolean, default=False, nullable=False)
    is_phone_verified = Column(Boolean, default=False, nullable=False)

    kyc_status = Column(SQLEnum(KYCStatus), nullable=False, default=KYCStatus.not_submitted)
    # {phone, address, company_name, gstin, pan, aadhaar, documents: [url, ...]}
    kyc_details = Column(JSON, nullable=True)

    image = Column(String(1024), nullable=True)
    google_id = Column(String(255), unique=True, nullable=True)

    # Single active refresh token per account; overwritten on every login
    refresh_token = Column(Text, nullable=True)
    refresh_token_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
