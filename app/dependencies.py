"""Shared dependencies: DB session, current user, role gates, provider adapters."""
from fastapi import BackgroundTasks, Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import get_db
from app.exceptions import APIError
from app.models.user import User, UserRole
from app.services.audit_log import request_context
from app.services.auth import user_id_from_payload, verify_access_token
from app.services.notifications import Notifier
from app.services.otp import OTPManager
from app.services.verification import booking_eligibility
from app.services.workflow import VerificationWorkflow

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_payment_gateway(request: Request):
    return request.app.state.payments


def get_geocoder(request: Request):
    return request.app.state.geocoder


def get_storage(request: Request):
    return request.app.state.storage


def get_oauth_client(request: Request):
    return request.app.state.oauth


def get_otp_manager(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> OTPManager:
    return OTPManager(db, cooldown_seconds=settings.otp_resend_cooldown_seconds, clock=request.app.state.clock)


def get_verification_workflow(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    otp: OTPManager = Depends(get_otp_manager),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
) -> VerificationWorkflow:
    return VerificationWorkflow(
        db=db,
        otp=otp,
        notifier=notifier,
        settings=settings,
        background=background_tasks,
        request_meta=request_context(request),
    )


def _access_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    """accessToken cookie first, Authorization: Bearer as fallback."""
    token = (request.cookies.get(ACCESS_TOKEN_COOKIE) or "").strip()
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials.strip()
    return None


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> User | None:
    """Caller's account when a valid access token is present; None otherwise (never raises)."""
    user_id = user_id_from_payload(verify_access_token(_access_token(request, credentials), settings))
    if user_id is None:
        return None
    return db.query(User).filter(User.id == user_id).first()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_app_settings),
) -> User:
    token = _access_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user_id = user_id_from_payload(verify_access_token(token, settings))
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_vendor(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.vendor:
        raise HTTPException(status_code=403, detail="Access denied. Vendor role required.")
    return current_user


def require_listing_vendor(current_user: User = Depends(get_current_user)) -> User:
    """Vendor with verified email and approved KYC."""
    if current_user.role != UserRole.vendor:
        raise HTTPException(status_code=403, detail="Only vendors can list hoardings")
    eligibility = booking_eligibility(current_user)
    if not eligibility.allowed:
        raise APIError(403, eligibility.message, reason=eligibility.reason.value)
    return current_user


def require_booking_eligible(current_user: User = Depends(get_current_user)) -> User:
    eligibility = booking_eligibility(current_user)
    if not eligibility.allowed:
        raise APIError(403, eligibility.message, reason=eligibility.reason.value)
    return current_user
