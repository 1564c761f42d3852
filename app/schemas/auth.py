"""Auth, verification and KYC schemas."""
import re

from email_validator import EmailNotValidError, validate_email
from pydantic import AliasChoices, Field, field_validator, model_validator

from app.models.otp import OTPPurpose
from app.models.user import AuthProvider, KYCStatus, UserRole
from app.schemas.common import CamelModel, is_http_url, require_min_length

PHONE_MIN_LENGTH = 10
PHONE_MAX_LENGTH = 15
_PHONE_ALLOWED = re.compile(r"^[+]?[\d\s\-()]+$")
_PHONE_FORMATTING = re.compile(r"[\s\-()]")


def normalize_email(value: str | None) -> str:
    value = (value or "").strip().lower()
    if not value:
        raise ValueError("Email is required")
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Invalid email address")
    return value


def normalize_phone(value: str | None) -> str:
    """Strip spaces, dashes and parentheses; keep digits and a leading '+'."""
    value = (value or "").strip()
    if not value:
        raise ValueError("Phone number is required")
    if len(value) < PHONE_MIN_LENGTH:
        raise ValueError(f"Phone number must be at least {PHONE_MIN_LENGTH} digits")
    if len(value) > PHONE_MAX_LENGTH:
        raise ValueError(f"Phone number must not exceed {PHONE_MAX_LENGTH} characters")
    if not _PHONE_ALLOWED.match(value):
        raise ValueError("Phone number can only contain digits, +, -, (, ), and spaces")
    return _PHONE_FORMATTING.sub("", value)


def validate_otp(value: str | None) -> str:
    value = (value or "").strip()
    if len(value) != 6:
        raise ValueError("OTP must be 6 digits")
    if not value.isdigit():
        raise ValueError("OTP must contain only numbers")
    return value


class RegisterRequest(CamelModel):
    name: str
    email: str
    password: str
    role: UserRole = UserRole.buyer

    @field_validator("name")
    @classmethod
    def name_valid(cls, v: str) -> str:
        return require_min_length(v, 2, "Name must be at least 2 characters")

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_valid(cls, v: str) -> str:
        if len(v or "") < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("role")
    @classmethod
    def role_self_service(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("Role must be buyer or vendor")
        return v


class LoginRequest(CamelModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_present(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class VerifyEmailRequest(CamelModel):
    email: str
    otp: str

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("otp")
    @classmethod
    def otp_valid(cls, v: str) -> str:
        return validate_otp(v)


class ResendOTPRequest(CamelModel):
    email: str | None = None
    phone: str | None = None
    purpose: OTPPurpose = Field(
        default=OTPPurpose.verification,
        validation_alias=AliasChoices("purpose", "type"),
    )

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str | None) -> str | None:
        return normalize_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str | None) -> str | None:
        return normalize_phone(v) if v else None

    @model_validator(mode="after")
    def one_channel(self):
        if not self.email and not self.phone:
            raise ValueError("Email or phone is required")
        return self


class KYCRequest(CamelModel):
    phone: str
    company_name: str | None = None
    gstin: str | None = None
    pan: str
    aadhaar: str
    address: str | None = None
    documents: list[str] = []

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("pan")
    @classmethod
    def pan_valid(cls, v: str) -> str:
        return require_min_length(v, 10, "PAN is required")

    @field_validator("aadhaar")
    @classmethod
    def aadhaar_valid(cls, v: str) -> str:
        return require_min_length(v, 12, "Aadhaar is required")

    @field_validator("documents")
    @classmethod
    def documents_are_urls(cls, v: list[str]) -> list[str]:
        if any(not is_http_url(doc) for doc in v):
            raise ValueError("Documents must be valid URLs")
        return v

    def details(self) -> dict:
        """KYC record as stored on the account (camelCase, like every other payload)."""
        return {
            "address": self.address,
            "companyName": self.company_name,
            "gstin": self.gstin,
            "pan": self.pan,
            "aadhaar": self.aadhaar,
            "documents": list(self.documents),
        }


class VerifyPhoneRequest(CamelModel):
    phone: str
    otp: str

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("otp")
    @classmethod
    def otp_valid(cls, v: str) -> str:
        return validate_otp(v)


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    phone: str | None = None
    email_verified: bool = False
    is_phone_verified: bool = False
    kyc_status: KYCStatus = KYCStatus.not_submitted
    auth_provider: AuthProvider = AuthProvider.local
    image: str | None = None
