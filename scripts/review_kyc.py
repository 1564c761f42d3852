"""
Approve or reject a pending KYC submission.
Usage: python scripts/review_kyc.py <email> approve|reject
       python scripts/review_kyc.py --pending
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.config import get_settings
from app.database import Database
from app.models.user import KYCStatus, User
from app.services.notifications import build_notifier
from app.services.otp import OTPManager
from app.services.verification import InvalidTransition, KYCReviewed
from app.services.workflow import VerificationWorkflow


def list_pending(db):
    users = db.query(User).filter(User.kyc_status == KYCStatus.pending).order_by(User.updated_at).all()
    if not users:
        print("No KYC submissions pending review.")
        return
    for u in users:
        details = u.kyc_details or {}
        print(f"{u.id:>6}  {u.email:<40} {u.role.value:<7} phone={u.phone} pan={details.get('pan')} company={details.get('companyName')}")


def main():
    args = sys.argv[1:]
    if not args or (args[0] != "--pending" and len(args) != 2) or (len(args) == 2 and args[1] not in ("approve", "reject")):
        print(__doc__.strip())
        sys.exit(1)

    settings = get_settings()
    database = Database(settings.database_url)
    db = database.SessionLocal()
    try:
        if args[0] == "--pending":
            list_pending(db)
            return

        email, decision = args[0].strip().lower(), args[1]
        user = db.query(User).filter(User.email == email).first()
        if not user:
            print(f"No account found with email: {email}")
            sys.exit(1)

        workflow = VerificationWorkflow(
            db=db,
            otp=OTPManager(db),
            notifier=build_notifier(settings),
            settings=settings,
            request_meta={"user_agent": "scripts/review_kyc.py"},
        )
        try:
            result = workflow.run(user, KYCReviewed(approved=decision == "approve"))
        except InvalidTransition:
            print(f"KYC for {email} is not pending review (status: {KYCStatus(user.kyc_status).value}).")
            sys.exit(1)
        print(f"{email}: KYC {KYCStatus(user.kyc_status).value} ({result.transition.state.value})")
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
