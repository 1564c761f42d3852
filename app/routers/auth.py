"""Auth: registration, email/phone verification, KYC, session cookies, Google sign-in."""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import get_db, utcnow
from app.dependencies import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    get_app_settings,
    get_current_user,
    get_notifier,
    get_oauth_client,
    get_optional_user,
    get_otp_manager,
    get_verification_workflow,
)
from app.exceptions import APIError, create_error_response
from app.models.otp import OTPPurpose
from app.models.user import AuthProvider, KYCStatus, User, UserRole
from app.schemas.auth import (
    KYCRequest,
    LoginRequest,
    RegisterRequest,
    ResendOTPRequest,
    UserResponse,
    VerifyEmailRequest,
    VerifyPhoneRequest,
)
from app.services.audit_log import CATEGORY_FAILED_ATTEMPT, create_log, request_context
from app.services.auth import (
    create_access_token,
    get_password_hash,
    refresh_token_matches,
    user_id_from_payload,
    verify_password,
    verify_refresh_token,
)
from app.services.google_oauth import GoogleOAuthClient, OAuthError
from app.services.notifications import Notifier
from app.services.otp import Channel, OTPCooldownError, OTPManager
from app.services.verification import (
    AccountState,
    EmailCodeVerified,
    ExternalIdentityVerified,
    InvalidTransition,
    KYCSubmitted,
    PhoneCodeVerified,
)
from app.services.workflow import SessionTokens, VerificationWorkflow, issue_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

COOLDOWN_MESSAGE = "Please wait before requesting another OTP. Try again in 1 minute."


def _cookie_options(settings: Settings) -> dict:
    return {"httponly": True, "secure": settings.is_production, "samesite": "lax", "path": "/"}


def set_access_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        ACCESS_TOKEN_COOKIE, token, max_age=settings.access_token_expire_minutes * 60, **_cookie_options(settings)
    )


def set_session_cookies(response: Response, tokens: SessionTokens, settings: Settings) -> None:
    set_access_cookie(response, tokens.access_token, settings)
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        **_cookie_options(settings),
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(name, **_cookie_options(settings))


def _send_email_code(otp: OTPManager, notifier: Notifier, settings: Settings, email: str) -> bool:
    """Issue a fresh email verification code. Delivery failure is logged; the code stays valid."""
    code = otp.issue(
        Channel.email(email),
        OTPPurpose.verification,
        timedelta(minutes=settings.email_otp_expire_minutes),
    )
    delivered = notifier.send_otp_email(email, code)
    if not delivered:
        logger.error("Failed to send OTP email to %s", email)
    return delivered


@router.post("/register")
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    otp: OTPManager = Depends(get_otp_manager),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
):
    existing = db.query(User).filter(User.email == data.email).first()
    if existing and existing.email_verified:
        raise HTTPException(status_code=400, detail="Email already registered and verified. Please login instead.")

    hashed = get_password_hash(data.password)
    if existing:
        # Unverified account: take the new details and send a fresh code
        existing.name = data.name
        existing.hashed_password = hashed
        existing.role = data.role
    else:
        db.add(User(
            name=data.name,
            email=data.email,
            hashed_password=hashed,
            role=data.role,
            auth_provider=AuthProvider.local,
            email_verified=False,
            is_phone_verified=False,
        ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already registered. Please login instead.")

    delivered = _send_email_code(otp, notifier, settings, data.email)
    return {
        "message": (
            "A new verification code has been sent to your email."
            if existing
            else "Registration successful! Please check your email to verify your account."
        ),
        "email": data.email,
        "verificationRequired": True,
        "otpDelivered": delivered,
    }


@router.post("/login")
def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    otp: OTPManager = Depends(get_otp_manager),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
):
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password(data.password, user.hashed_password):
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Failed login attempt",
            f"Failed login attempt for email {data.email}.",
            actor_user_id=user.id if user else None,
            actor_email=data.email,
            **request_context(request),
        )
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.email_verified:
        delivered = _send_email_code(otp, notifier, settings, user.email)
        raise APIError(
            403,
            "Email not verified. A verification code has been sent to your email.",
            requiresEmailVerification=True,
            email=user.email,
            otpDelivered=delivered,
        )

    set_session_cookies(response, issue_session(db, user, settings), settings)
    return {"message": "Login successful", "user": UserResponse.model_validate(user)}


@router.post("/verify-email")
def verify_email(
    data: VerifyEmailRequest,
    response: Response,
    db: Session = Depends(get_db),
    otp: OTPManager = Depends(get_otp_manager),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
    settings: Settings = Depends(get_app_settings),
):
    if not otp.verify(Channel.email(data.email), OTPPurpose.verification, data.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    user = db.query(User).filter(User.email == data.email).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        result = workflow.run(user, EmailCodeVerified(data.email))
    except InvalidTransition:
        raise HTTPException(status_code=400, detail="Email already verified")

    set_session_cookies(response, result.tokens, settings)
    return {
        "message": "Email verified successfully! You are now logged in.",
        "user": UserResponse.model_validate(user),
    }


@router.post("/resend-otp")
def resend_otp(
    data: ResendOTPRequest,
    db: Session = Depends(get_db),
    otp: OTPManager = Depends(get_otp_manager),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_app_settings),
):
    if data.email:
        user = db.query(User).filter(User.email == data.email).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        if user.email_verified:
            raise HTTPException(status_code=400, detail="Email already verified")
        channel = Channel.email(data.email)
        ttl = timedelta(minutes=settings.email_otp_expire_minutes)
    else:
        user = db.query(User).filter(User.phone == data.phone).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        if user.is_phone_verified:
            raise HTTPException(status_code=400, detail="Phone already verified")
        channel = Channel.phone(data.phone)
        ttl = timedelta(minutes=settings.phone_otp_expire_minutes)

    try:
        code = otp.resend(channel, data.purpose, ttl)
    except OTPCooldownError as e:
        raise APIError(429, COOLDOWN_MESSAGE, headers={"Retry-After": str(e.retry_after)}, retryAfter=e.retry_after)

    if data.email:
        if not notifier.send_otp_email(data.email, code):
            logger.error("Failed to send OTP email to %s", data.email)
            raise HTTPException(status_code=500, detail="Failed to send OTP email. Please try again.")
    elif not notifier.send_otp_sms(data.phone, code):
        logger.error("Failed to send OTP SMS to %s", data.phone)
        raise HTTPException(status_code=500, detail="Failed to send OTP SMS. Please try again.")

    return {"message": f"OTP sent successfully to {data.email or data.phone}"}


@router.post("/kyc")
def submit_kyc(
    data: KYCRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
):
    taken = db.query(User).filter(User.phone == data.phone, User.id != current_user.id).first()
    if taken:
        raise HTTPException(status_code=400, detail="Phone number already in use")

    # Compared before anything is written, so a changed number always needs a new code
    phone_already_verified = bool(current_user.is_phone_verified and current_user.phone == data.phone)
    try:
        result = workflow.run(current_user, KYCSubmitted(data.phone, data.details(), phone_already_verified))
    except InvalidTransition:
        raise HTTPException(status_code=403, detail="Please verify your email first")

    if result.transition.state == AccountState.kyc_pending_review:
        return {
            "message": "KYC submitted successfully.",
            "kycStatus": KYCStatus.pending.value,
            "phoneVerificationRequired": False,
        }
    return {
        "message": "KYC submitted. Please verify phone.",
        "kycStatus": KYCStatus(current_user.kyc_status).value,
        "phoneVerificationRequired": True,
        "otpDelivered": result.otp_delivered,
    }


@router.post("/verify-phone")
def verify_phone(
    data: VerifyPhoneRequest,
    current_user: User = Depends(get_current_user),
    otp: OTPManager = Depends(get_otp_manager),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
):
    if data.phone != current_user.phone:
        raise HTTPException(status_code=400, detail="Phone number does not match your KYC submission")
    if not otp.verify(Channel.phone(data.phone), OTPPurpose.verification, data.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    try:
        workflow.run(current_user, PhoneCodeVerified(data.phone))
    except InvalidTransition:
        raise HTTPException(status_code=400, detail="No phone verification pending. Submit KYC first.")
    return {
        "message": "Phone verified successfully. Account pending approval.",
        "user": UserResponse.model_validate(current_user),
    }


@router.post("/refresh")
def refresh(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    token = (request.cookies.get(REFRESH_TOKEN_COOKIE) or "").strip()
    if not token:
        raise HTTPException(status_code=401, detail="No refresh token")
    user_id = user_id_from_payload(verify_refresh_token(token, settings))
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not refresh_token_matches(user.refresh_token, token):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if user.refresh_token_expires_at and user.refresh_token_expires_at < utcnow():
        user.refresh_token = None
        user.refresh_token_expires_at = None
        db.commit()
        expired = JSONResponse(status_code=401, content=create_error_response("Refresh token expired"))
        clear_session_cookies(expired, settings)
        return expired

    set_access_cookie(response, create_access_token(user.id, user.role, settings), settings)
    return {"message": "Token refreshed successfully"}


@router.post("/logout")
def logout(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
    settings: Settings = Depends(get_app_settings),
):
    if current_user:
        current_user.refresh_token = None
        current_user.refresh_token_expires_at = None
        db.commit()
    clear_session_cookies(response, settings)
    return {"message": "Logout successful"}


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"user": UserResponse.model_validate(current_user)}


@router.get("/google")
def google_login(oauth: GoogleOAuthClient = Depends(get_oauth_client)):
    if not oauth.configured:
        raise HTTPException(status_code=500, detail="Google OAuth is not configured")
    return RedirectResponse(oauth.authorization_url(), status_code=302)


def link_google_account(db: Session, workflow: VerificationWorkflow, info: dict) -> User:
    """Find the account by email or Google id and attach the Google identity, or create a buyer.

    An unverified local registration is verified through the workflow, which consumes its
    pending email code and records the state change.
    """
    email = (info.get("email") or "").strip().lower()
    google_id = str(info["id"])
    user = db.query(User).filter(or_(User.email == email, User.google_id == google_id)).first()
    if user:
        if not user.google_id:
            user.google_id = google_id
        if not user.image and info.get("picture"):
            user.image = info["picture"]
        if user.auth_provider == AuthProvider.local:
            user.auth_provider = AuthProvider.google
    else:
        user = User(
            name=info.get("name") or email.split("@")[0],
            email=email,
            google_id=google_id,
            image=info.get("picture"),
            auth_provider=AuthProvider.google,
            email_verified=True,
            role=UserRole.buyer,
            kyc_status=KYCStatus.not_submitted,
        )
        db.add(user)
    db.commit()
    if not user.email_verified:
        workflow.run(user, ExternalIdentityVerified(user.email))
    db.refresh(user)
    return user


@router.get("/google/callback")
def google_callback(
    code: str | None = None,
    error: str | None = None,
    db: Session = Depends(get_db),
    oauth: GoogleOAuthClient = Depends(get_oauth_client),
    workflow: VerificationWorkflow = Depends(get_verification_workflow),
    settings: Settings = Depends(get_app_settings),
):
    base = settings.app_base_url.rstrip("/")
    failure = RedirectResponse(f"{base}/?auth=error", status_code=302)
    if error or not code or not oauth.configured:
        return failure
    try:
        info = oauth.fetch_user(code)
    except OAuthError as e:
        logger.error("Google OAuth callback error: %s", e)
        return failure

    user = link_google_account(db, workflow, info)
    response = RedirectResponse(f"{base}/?auth=success", status_code=302)
    set_session_cookies(response, issue_session(db, user, settings), settings)
    return response
