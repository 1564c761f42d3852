"""Verification workflow controller: runs a state-machine transition against the database."""
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from app.config import Settings
from app.models.otp import OTPPurpose
from app.models.user import User
from app.services.audit_log import CATEGORY_STATUS_CHANGE, create_log
from app.services.auth import create_access_token, create_refresh_token
from app.services.notifications import Notifier
from app.services.otp import Channel, OTPManager
from app.services.verification import (
    ConsumeCode,
    IssuePhoneCode,
    IssueSession,
    MarkEmailVerified,
    MarkPhoneVerified,
    ResetPhoneVerification,
    SendWelcome,
    SetKYCStatus,
    StoreKYCDetails,
    Transition,
    state_of,
    transition,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionTokens:
    access_token: str
    refresh_token: str


@dataclass
class WorkflowResult:
    transition: Transition
    tokens: SessionTokens | None = None
    otp_delivered: bool | None = None


def send_welcome_safely(notifier: Notifier, email: str, name: str | None) -> None:
    """Background task: a failed welcome email is logged and otherwise ignored."""
    try:
        if not notifier.send_welcome_email(email, name):
            logger.warning("Welcome email to %s was not delivered", email)
    except Exception:
        logger.exception("Failed to send welcome email to %s", email)


def issue_session(db: Session, user: User, settings: Settings) -> SessionTokens:
    """New access token plus a refresh token that replaces the one stored on the user."""
    access = create_access_token(user.id, user.role, settings)
    refresh, expires_at = create_refresh_token(user.id, settings)
    user.refresh_token = refresh
    user.refresh_token_expires_at = expires_at
    db.commit()
    return SessionTokens(access_token=access, refresh_token=refresh)


@dataclass
class VerificationWorkflow:
    db: Session
    otp: OTPManager
    notifier: Notifier
    settings: Settings
    background: BackgroundTasks | None = None
    request_meta: dict = field(default_factory=dict)

    def run(self, user: User, event) -> WorkflowResult:
        before = state_of(user)
        result = WorkflowResult(transition=transition(before, event))
        for effect in result.transition.effects:
            self._apply(user, effect, result)
        create_log(
            self.db,
            CATEGORY_STATUS_CHANGE,
            "Account state changed",
            f"Account {user.email} moved from {before.value} to {result.transition.state.value}.",
            actor_user_id=user.id,
            actor_email=user.email,
            meta={"event": type(event).__name__, "from": before, "to": result.transition.state},
            **self.request_meta,
        )
        self.db.commit()
        return result

    def _apply(self, user: User, effect, result: WorkflowResult) -> None:
        if isinstance(effect, MarkEmailVerified):
            user.email_verified = True
            self.db.commit()
        elif isinstance(effect, MarkPhoneVerified):
            user.is_phone_verified = True
        elif isinstance(effect, ResetPhoneVerification):
            user.is_phone_verified = False
        elif isinstance(effect, StoreKYCDetails):
            user.phone = effect.phone
            user.kyc_details = {**effect.details, "phone": effect.phone}
        elif isinstance(effect, SetKYCStatus):
            user.kyc_status = effect.status
        elif isinstance(effect, ConsumeCode):
            channel = Channel.email(effect.value) if effect.channel == "email" else Channel.phone(effect.value)
            self.otp.consume(channel, OTPPurpose.verification)
        elif isinstance(effect, SendWelcome):
            if self.background is not None:
                self.background.add_task(send_welcome_safely, self.notifier, user.email, user.name)
            else:
                send_welcome_safely(self.notifier, user.email, user.name)
        elif isinstance(effect, IssueSession):
            result.tokens = issue_session(self.db, user, self.settings)
        elif isinstance(effect, IssuePhoneCode):
            # KYC details are committed before the SMS goes out; a failed send is recoverable via resend
            self.db.commit()
            code = self.otp.issue(
                Channel.phone(effect.phone),
                OTPPurpose.verification,
                timedelta(minutes=self.settings.phone_otp_expire_minutes),
            )
            result.otp_delivered = self.notifier.send_otp_sms(effect.phone, code)
            if not result.otp_delivered:
                logger.error("Failed to send OTP SMS to %s", effect.phone)
        else:
            raise TypeError(f"Unknown effect: {effect!r}")
