"""Account verification state machine and booking-eligibility gate.

transition() is pure: it maps (state, event) to the next state plus the effects the
workflow controller must carry out. Nothing here touches the database.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union

from app.models.user import APPROVED_KYC_STATUSES, KYCStatus


class AccountState(str, enum.Enum):
    unverified = "unverified"
    email_verified = "email_verified"
    kyc_submitted_phone_unverified = "kyc_submitted_phone_unverified"
    kyc_pending_review = "kyc_pending_review"
    kyc_approved = "kyc_approved"
    kyc_rejected = "kyc_rejected"


# Events

@dataclass(frozen=True)
class EmailCodeVerified:
    email: str


@dataclass(frozen=True)
class ExternalIdentityVerified:
    """Email ownership proven by an identity provider (Google sign-in) instead of a code."""
    email: str


@dataclass(frozen=True)
class KYCSubmitted:
    phone: str
    details: dict = field(default_factory=dict, hash=False)
    phone_already_verified: bool = False


@dataclass(frozen=True)
class PhoneCodeVerified:
    phone: str


@dataclass(frozen=True)
class KYCReviewed:
    approved: bool


Event = Union[EmailCodeVerified, ExternalIdentityVerified, KYCSubmitted, PhoneCodeVerified, KYCReviewed]


# Effects

@dataclass(frozen=True)
class MarkEmailVerified:
    pass


@dataclass(frozen=True)
class MarkPhoneVerified:
    pass


@dataclass(frozen=True)
class ResetPhoneVerification:
    pass


@dataclass(frozen=True)
class ConsumeCode:
    channel: str  # "email" | "phone"
    value: str


@dataclass(frozen=True)
class SendWelcome:
    pass


@dataclass(frozen=True)
class IssueSession:
    pass


@dataclass(frozen=True)
class StoreKYCDetails:
    phone: str
    details: dict = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class IssuePhoneCode:
    phone: str


@dataclass(frozen=True)
class SetKYCStatus:
    status: KYCStatus


Effect = Union[
    MarkEmailVerified, MarkPhoneVerified, ResetPhoneVerification, ConsumeCode,
    SendWelcome, IssueSession, StoreKYCDetails, IssuePhoneCode, SetKYCStatus,
]


@dataclass(frozen=True)
class Transition:
    state: AccountState
    effects: tuple = ()

    def has(self, effect_type) -> bool:
        return any(isinstance(e, effect_type) for e in self.effects)


class InvalidTransition(Exception):
    def __init__(self, state: AccountState, event):
        super().__init__(f"{type(event).__name__} is not allowed in state {state.value}")
        self.state = state
        self.event = event


def state_of(user) -> AccountState:
    """Derive the workflow state from the flags stored on a User row."""
    if not user.email_verified:
        return AccountState.unverified
    status = KYCStatus(user.kyc_status)
    if status in APPROVED_KYC_STATUSES:
        return AccountState.kyc_approved
    if status == KYCStatus.rejected:
        return AccountState.kyc_rejected
    if status == KYCStatus.pending:
        return AccountState.kyc_pending_review
    if user.kyc_details:
        return AccountState.kyc_submitted_phone_unverified
    return AccountState.email_verified


def transition(state: AccountState, event: Event) -> Transition:
    if isinstance(event, EmailCodeVerified):
        if state != AccountState.unverified:
            raise InvalidTransition(state, event)
        return Transition(
            AccountState.email_verified,
            (MarkEmailVerified(), ConsumeCode("email", event.email), SendWelcome(), IssueSession()),
        )

    if isinstance(event, ExternalIdentityVerified):
        if state != AccountState.unverified:
            raise InvalidTransition(state, event)
        # the caller issues the session itself
        return Transition(
            AccountState.email_verified,
            (MarkEmailVerified(), ConsumeCode("email", event.email), SendWelcome()),
        )

    if isinstance(event, KYCSubmitted):
        if state == AccountState.unverified:
            raise InvalidTransition(state, event)
        if event.phone_already_verified:
            # Same number as the one already verified: no second OTP round
            return Transition(
                AccountState.kyc_pending_review,
                (StoreKYCDetails(event.phone, event.details), SetKYCStatus(KYCStatus.pending)),
            )
        return Transition(
            AccountState.kyc_submitted_phone_unverified,
            (
                StoreKYCDetails(event.phone, event.details),
                ResetPhoneVerification(),
                SetKYCStatus(KYCStatus.not_submitted),
                IssuePhoneCode(event.phone),
            ),
        )

    if isinstance(event, PhoneCodeVerified):
        if state != AccountState.kyc_submitted_phone_unverified:
            raise InvalidTransition(state, event)
        return Transition(
            AccountState.kyc_pending_review,
            (MarkPhoneVerified(), SetKYCStatus(KYCStatus.pending), ConsumeCode("phone", event.phone)),
        )

    if isinstance(event, KYCReviewed):
        if state != AccountState.kyc_pending_review:
            raise InvalidTransition(state, event)
        if event.approved:
            return Transition(AccountState.kyc_approved, (SetKYCStatus(KYCStatus.approved),))
        return Transition(AccountState.kyc_rejected, (SetKYCStatus(KYCStatus.rejected),))

    raise TypeError(f"Unknown event: {event!r}")


class EligibilityReason(str, enum.Enum):
    eligible = "eligible"
    email_unverified = "email_unverified"
    kyc_not_submitted = "kyc_not_submitted"
    kyc_pending = "kyc_pending"
    kyc_rejected = "kyc_rejected"


_REASON_MESSAGES = {
    EligibilityReason.eligible: "",
    EligibilityReason.email_unverified: "Please verify your email first",
    EligibilityReason.kyc_not_submitted: "Please complete KYC verification from your profile",
    EligibilityReason.kyc_pending: "Your KYC is under review. Please wait for admin approval",
    EligibilityReason.kyc_rejected: "Your KYC was rejected. Please update from your profile",
}


@dataclass(frozen=True)
class Eligibility:
    reason: EligibilityReason

    @property
    def allowed(self) -> bool:
        return self.reason == EligibilityReason.eligible

    @property
    def message(self) -> str:
        return _REASON_MESSAGES[self.reason]


def booking_eligibility(user) -> Eligibility:
    """Email verified and KYC approved (either approved spelling) is the only way through."""
    if not user.email_verified:
        return Eligibility(EligibilityReason.email_unverified)
    status = KYCStatus(user.kyc_status)
    if status in APPROVED_KYC_STATUSES:
        return Eligibility(EligibilityReason.eligible)
    if status == KYCStatus.pending:
        return Eligibility(EligibilityReason.kyc_pending)
    if status == KYCStatus.rejected:
        return Eligibility(EligibilityReason.kyc_rejected)
    return Eligibility(EligibilityReason.kyc_not_submitted)
