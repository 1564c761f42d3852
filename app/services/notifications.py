"""Notification service: email (Mailgun/SendGrid) and SMS (Twilio) delivery.

Senders are picked once from configuration by build_notifier(). Every sender returns
True when the message was handed to the provider and never raises.
"""
import logging
import re
from datetime import datetime
from typing import Protocol

from app.config import Settings

logger = logging.getLogger(__name__)

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"


class EmailSender(Protocol):
    def send(self, to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
        ...


class SmsSender(Protocol):
    def send(self, to_phone: str, body: str) -> bool:
        ...


class MailgunEmailSender:
    def __init__(self, api_key: str, domain: str, from_email: str, from_name: str, base_url: str = MAILGUN_US_BASE):
        self.api_key = api_key
        self.domain = (domain or "").strip().lower()
        self.base_url = (base_url or MAILGUN_US_BASE).strip().rstrip("/")
        from_addr = (from_email or "").strip()
        from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
        if self.domain and from_domain != self.domain:
            from_addr = f"noreply@{self.domain}"
            logger.info("[Mailgun] Using from=%s (must match domain %s for delivery)", from_addr, self.domain)
        self.from_email = f"{from_name} <{from_addr}>"

    def send(self, to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
        import httpx

        data = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "text": text_content or "",
            "html": html_content or "",
        }
        try:
            with httpx.Client(timeout=10.0) as client:
                r = client.post(f"{self.base_url}/v3/{self.domain}/messages", auth=("api", self.api_key), data=data)
                if 200 <= r.status_code < 300:
                    logger.info("[Mailgun] API success: to=%s status=%s", to_email, r.status_code)
                    return True
                if r.status_code == 401 and self.base_url == MAILGUN_US_BASE:
                    logger.warning("[Mailgun] 401 with US endpoint. Retrying with EU endpoint...")
                    r2 = client.post(f"{MAILGUN_EU_BASE}/v3/{self.domain}/messages", auth=("api", self.api_key), data=data)
                    if 200 <= r2.status_code < 300:
                        logger.info("[Mailgun] API success (EU): to=%s", to_email)
                        return True
                    logger.error("[Mailgun] EU request failed: status=%s body=%s", r2.status_code, r2.text[:500])
                    return False
                logger.error("[Mailgun] API failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
                return False
        except Exception as e:
            logger.error("[Mailgun] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
            return False


class SendGridEmailSender:
    def __init__(self, api_key: str, from_email: str, from_name: str):
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    def send(self, to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
        try:
            from sendgrid import SendGridAPIClient
            from sendgrid.helpers.mail import Mail

            message = Mail(
                from_email=(self.from_email, self.from_name),
                to_emails=to_email,
                subject=subject,
                html_content=html_content,
                plain_text_content=text_content or "",
            )
            SendGridAPIClient(self.api_key).send(message)
            logger.info("[SendGrid] Sent: to=%s subject=%s", to_email, subject)
            return True
        except Exception as e:
            logger.error("[SendGrid] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
            return False


class LogEmailSender:
    """Writes messages to the log instead of sending them (development)."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver

    def send(self, to_email: str, subject: str, html_content: str, text_content: str | None = None) -> bool:
        logger.info("[Email:log] To: %s | Subject: %s | Body: %s", to_email, subject, text_content or html_content)
        if not self.deliver:
            logger.error("[Email:log] No email provider configured in production; message not delivered.")
        return self.deliver


class TwilioSmsSender:
    def __init__(self, account_sid: str, auth_token: str, from_phone: str):
        from twilio.rest import Client

        self.client = Client(account_sid, auth_token)
        self.from_phone = from_phone

    def send(self, to_phone: str, body: str) -> bool:
        try:
            message = self.client.messages.create(body=body, from_=self.from_phone, to=to_phone)
            logger.info("[Twilio] SMS sent to %s, SID: %s", to_phone, getattr(message, "sid", ""))
            return True
        except Exception as e:
            logger.error("[Twilio] Failed to send SMS to %s: %s: %s", to_phone, type(e).__name__, e)
            return False


class LogSmsSender:
    def __init__(self, deliver: bool = True):
        self.deliver = deliver

    def send(self, to_phone: str, body: str) -> bool:
        logger.info("[SMS:log] To: %s | Message: %s", to_phone, body)
        if not self.deliver:
            logger.error("[SMS:log] No SMS provider configured in production; message not delivered.")
        return self.deliver


def format_phone_number(phone: str, country_code: str = "91") -> str:
    """E.164: numbers already carrying '+' are kept, others get the default country code."""
    phone = (phone or "").strip()
    if phone.startswith("+"):
        return "+" + re.sub(r"\D", "", phone)
    return f"+{country_code}{re.sub(r'[^0-9]', '', phone)}"


class Notifier:
    """Renders HoardSpace messages and hands them to the configured senders."""

    def __init__(self, email: EmailSender, sms: SmsSender, sms_country_code: str = "91",
                 email_otp_minutes: int = 15, phone_otp_minutes: int = 10):
        self.email = email
        self.sms = sms
        self.sms_country_code = sms_country_code
        self.email_otp_minutes = email_otp_minutes
        self.phone_otp_minutes = phone_otp_minutes

    def send_otp_email(self, to_email: str, code: str) -> bool:
        year = datetime.now().year
        subject = "Verify Your Email - HoardSpace"
        text = (
            f"Your HoardSpace verification code is: {code}\n\n"
            f"This code is valid for {self.email_otp_minutes} minutes. Never share this code with anyone.\n\n"
            "If you didn't request this code, please ignore this email.\n\n"
            f"© {year} HoardSpace. All rights reserved."
        )
        html = f"""
    <h2>Verify Your Email Address</h2>
    <p>Thank you for registering with HoardSpace! Please use the verification code below to complete your registration:</p>
    <p style="font-size:2em;font-weight:bold;letter-spacing:0.3em;">{code}</p>
    <p><strong>Security Notice:</strong> This code is valid for <strong>{self.email_otp_minutes} minutes</strong>.
    Never share this code with anyone. HoardSpace will never ask for your verification code.</p>
    <p>If you didn't request this verification code, please ignore this email.</p>
    <p>© {year} HoardSpace. All rights reserved.</p>
    """
        return self.email.send(to_email, subject, html, text_content=text)

    def send_welcome_email(self, to_email: str, name: str | None = None) -> bool:
        name = (name or "").strip() or "there"
        subject = "Welcome to HoardSpace!"
        text = (
            f"Hi {name}! Your email has been successfully verified. Welcome to HoardSpace. "
            "Complete your profile to start booking or listing hoardings."
        )
        html = f"""
    <h2>Hi {name}!</h2>
    <p>Your email has been successfully verified. Welcome to HoardSpace - India's outdoor advertising platform!</p>
    <ul>
      <li>Browse premium hoarding locations</li>
      <li>List your advertising spaces and reach more clients</li>
      <li>Manage bookings and payments seamlessly</li>
    </ul>
    <p>Complete your profile to get started.</p>
    """
        return self.email.send(to_email, subject, html, text_content=text)

    def send_otp_sms(self, phone: str, code: str) -> bool:
        body = (
            f"Your HoardSpace verification code is: {code}. "
            f"Valid for {self.phone_otp_minutes} minutes. Do not share this code with anyone."
        )
        return self.sms.send(format_phone_number(phone, self.sms_country_code), body)


def _build_email_sender(settings: Settings) -> EmailSender:
    backend = (settings.email_backend or "auto").strip().lower()
    mailgun_ready = bool(settings.mailgun_api_key and settings.mailgun_domain)
    if backend == "mailgun" or (backend == "auto" and mailgun_ready):
        logger.info("[Email] Using Mailgun domain=%s", settings.mailgun_domain)
        return MailgunEmailSender(
            settings.mailgun_api_key,
            settings.mailgun_domain,
            settings.mailgun_from_email,
            settings.mailgun_from_name,
            base_url=settings.mailgun_base_url,
        )
    if backend == "sendgrid" or (backend == "auto" and settings.sendgrid_api_key):
        logger.info("[Email] Using SendGrid")
        return SendGridEmailSender(settings.sendgrid_api_key, settings.sendgrid_from_email, settings.sendgrid_from_name)
    if backend == "auto":
        logger.warning("[Email] No provider configured - emails are written to the log only")
    return LogEmailSender(deliver=not settings.is_production)


def _build_sms_sender(settings: Settings) -> SmsSender:
    backend = (settings.sms_backend or "auto").strip().lower()
    twilio_ready = bool(
        settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_from_phone_number
    )
    if backend == "twilio" or (backend == "auto" and twilio_ready):
        logger.info("[SMS] Using Twilio from=%s", settings.twilio_from_phone_number)
        return TwilioSmsSender(settings.twilio_account_sid, settings.twilio_auth_token, settings.twilio_from_phone_number)
    if backend == "auto":
        logger.warning("[SMS] Twilio not configured - SMS messages are written to the log only")
    return LogSmsSender(deliver=not settings.is_production)


def build_notifier(settings: Settings) -> Notifier:
    return Notifier(
        _build_email_sender(settings),
        _build_sms_sender(settings),
        sms_country_code=settings.sms_default_country_code,
        email_otp_minutes=settings.email_otp_expire_minutes,
        phone_otp_minutes=settings.phone_otp_expire_minutes,
    )
