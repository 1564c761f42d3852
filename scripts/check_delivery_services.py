"""
Report which email/SMS backends the app will use and optionally send a test message.
Usage: python scripts/check_delivery_services.py [--email you@example.com] [--sms 9876543210]
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import get_settings
from app.services.notifications import build_notifier, format_phone_number


def _flag(value: str) -> str:
    return "(set)" if value else "(missing)"


def main():
    args = sys.argv[1:]
    targets = {}
    while args:
        opt = args.pop(0)
        if opt not in ("--email", "--sms") or not args:
            print(__doc__.strip())
            sys.exit(1)
        targets[opt] = args.pop(0).strip()

    settings = get_settings()
    print(f"Environment: {settings.app_env}")
    print(f"EMAIL_BACKEND={settings.email_backend}")
    print(f"  Mailgun:  MAILGUN_API_KEY {_flag(settings.mailgun_api_key)}  MAILGUN_DOMAIN {settings.mailgun_domain or '(missing)'}")
    print(f"  SendGrid: SENDGRID_API_KEY {_flag(settings.sendgrid_api_key)}")
    print(f"SMS_BACKEND={settings.sms_backend}")
    print(f"  Twilio:   TWILIO_ACCOUNT_SID {_flag(settings.twilio_account_sid)}  TWILIO_AUTH_TOKEN {_flag(settings.twilio_auth_token)}"
          f"  TWILIO_FROM_PHONE_NUMBER {settings.twilio_from_phone_number or '(missing)'}")

    notifier = build_notifier(settings)
    print(f"Email sender: {type(notifier.email).__name__}")
    print(f"SMS sender:   {type(notifier.sms).__name__}")

    failed = False
    if "--email" in targets:
        ok = notifier.send_otp_email(targets["--email"], "123456")
        print(f"Test email to {targets['--email']}: {'sent' if ok else 'FAILED'}")
        failed = failed or not ok
    if "--sms" in targets:
        to = format_phone_number(targets["--sms"], settings.sms_default_country_code)
        ok = notifier.send_otp_sms(targets["--sms"], "123456")
        print(f"Test SMS to {to}: {'sent' if ok else 'FAILED'}")
        failed = failed or not ok
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
