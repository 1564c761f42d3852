import os

# Settings are read once at import time; point everything at in-memory / log-only backends first
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTP_CLEANUP_ENABLED"] = "false"
os.environ["EMAIL_BACKEND"] = "log"
os.environ["SMS_BACKEND"] = "log"
os.environ["JWT_SECRET_KEY"] = "test-access-secret"
os.environ["REFRESH_SECRET_KEY"] = "test-refresh-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"

import re
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.database import Database, utcnow
from app.main import create_app
from app.models.hoarding import Hoarding, HoardingStatus, HoardingType, LightingType
from app.models.user import KYCStatus, User, UserRole
from app.services.auth import get_password_hash
from app.services.geocoding import GeocodingError
from app.services.google_oauth import OAuthError
from app.services.notifications import Notifier
from app.services.payments import PaymentGatewayError
from app.services.storage import StorageError

PASSWORD = "secret1"
_CODE_RE = re.compile(r"\b(\d{6})\b")


class FakeClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 3, 1, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingEmailSender:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, html_content, text_content=None):
        self.sent.append({"to": to_email, "subject": subject, "text": text_content or html_content})
        return not self.fail

    def last_code(self, to_email=None):
        for msg in reversed(self.sent):
            if to_email and msg["to"] != to_email:
                continue
            m = _CODE_RE.search(msg["text"])
            if m:
                return m.group(1)
        return None


class RecordingSmsSender:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to_phone, body):
        self.sent.append({"to": to_phone, "body": body})
        return not self.fail

    def last_code(self):
        for msg in reversed(self.sent):
            m = _CODE_RE.search(msg["body"])
            if m:
                return m.group(1)
        return None


class FakePaymentGateway:
    configured = True

    def __init__(self):
        self.orders = []
        self.fail = False

    def create_order(self, amount_paise, currency, receipt):
        if self.fail:
            raise PaymentGatewayError("gateway down")
        order = {"id": f"order_test_{len(self.orders) + 1}", "amount": amount_paise, "currency": currency, "receipt": receipt}
        self.orders.append(order)
        return order


class FakeGeocoder:
    def __init__(self, configured=True):
        self.configured = configured
        self.result = {"address": "Andheri East, Mumbai, Maharashtra 400069, India", "lat": 19.11, "lng": 72.87,
                       "city": "Mumbai", "state": "Maharashtra", "area": "Andheri East", "zipCode": "400069"}
        self.error = None
        self.calls = []

    def from_pincode(self, pincode):
        self.calls.append(("pincode", pincode))
        if self.error:
            raise self.error
        return self.result

    def from_coordinates(self, lat, lng):
        self.calls.append(("coordinates", lat, lng))
        if self.error:
            raise self.error
        return {**self.result, "lat": lat, "lng": lng}


class FakeStorage:
    configured = True

    def __init__(self):
        self.uploads = []
        self.fail = False

    def upload(self, data, filename, content_type=None):
        if self.fail:
            raise StorageError("cloudinary down")
        self.uploads.append((filename, data, content_type))
        return {"url": f"https://res.cloudinary.com/demo/image/upload/{filename}", "public_id": f"hoardspace/{filename}"}


class FakeOAuth:
    configured = True

    def __init__(self):
        self.userinfo = {"id": "google-123", "email": "gina@example.com", "name": "Gina", "picture": "https://lh3.example.com/p.jpg"}
        self.fail = False

    def authorization_url(self):
        return "https://accounts.google.com/o/oauth2/v2/auth?client_id=test"

    def fetch_user(self, code):
        if self.fail:
            raise OAuthError("bad code")
        return self.userinfo


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def sms_sender():
    return RecordingSmsSender()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def oauth():
    return FakeOAuth()


@pytest.fixture
def app(clock, email_sender, sms_sender, gateway, geocoder, storage, oauth):
    application = create_app(get_settings())
    application.state.clock = clock
    application.state.notifier = Notifier(email_sender, sms_sender)
    application.state.payments = gateway
    application.state.geocoder = geocoder
    application.state.storage = storage
    application.state.oauth = oauth
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session(client, app):
    """Session on the app's database (tables exist once the client has started)."""
    db = app.state.db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def database():
    d = Database("sqlite://")
    d.create_all()
    yield d
    d.dispose()


@pytest.fixture
def db(database):
    s = database.SessionLocal()
    try:
        yield s
    finally:
        s.close()


def create_user(db, email="buyer@example.com", role=UserRole.buyer, email_verified=True,
                kyc_status=KYCStatus.not_submitted, phone=None, is_phone_verified=False, name="Test User"):
    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        email_verified=email_verified,
        kyc_status=kyc_status,
        phone=phone,
        is_phone_verified=is_phone_verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login(client, email, password=PASSWORD):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r


def make_hoarding(db, owner, name="Listing", city="Mumbai", status=HoardingStatus.approved, age_minutes=0,
                  price_per_month=30000, minimum_booking_amount=0):
    hoarding = Hoarding(
        name=name,
        address="Western Express Highway",
        city=city,
        area="Andheri",
        state="Maharashtra",
        width=30,
        height=15,
        hoarding_type=HoardingType.billboard,
        lighting_type=LightingType.lit,
        price_per_month=price_per_month,
        minimum_booking_amount=minimum_booking_amount,
        images=[],
        owner_id=owner.id,
        status=status,
        created_at=utcnow() - timedelta(minutes=age_minutes),
    )
    db.add(hoarding)
    db.commit()
    db.refresh(hoarding)
    return hoarding
