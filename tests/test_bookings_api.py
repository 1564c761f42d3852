import pytest
from conftest import create_user, login, make_hoarding

from app.models.audit_log import AuditLog
from app.models.booking import Booking, BookingStatus
from app.models.user import KYCStatus, UserRole
from app.services.payments import payment_signature

SECRET = "rzp_test_secret"
PERIOD = {"startDate": "2026-04-01", "endDate": "2026-04-11"}


@pytest.fixture
def hoarding(session):
    vendor = create_user(session, email="vendor@example.com", role=UserRole.vendor, kyc_status=KYCStatus.approved)
    return make_hoarding(session, vendor, price_per_month=30000)


@pytest.fixture
def buyer(client, session):
    user = create_user(session, email="buyer@example.com", kyc_status=KYCStatus.approved)
    login(client, "buyer@example.com")
    return user


def _checkout(client, hoarding, **extra):
    return client.post("/bookings/checkout", json={"hoardingId": hoarding.id, **PERIOD, **extra})


def _verify(client, order_id, payment_id="pay_001", signature=None):
    return client.post("/bookings/verify", json={
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or payment_signature(order_id, payment_id, SECRET),
    })


def test_checkout_prorates_and_opens_order(client, session, gateway, hoarding, buyer):
    r = _checkout(client, hoarding)
    assert r.status_code == 200
    body = r.json()
    assert body["orderId"] == "order_test_1"
    assert body["amount"] == 1000000
    assert body["currency"] == "INR"
    assert body["totalAmount"] == 10000
    assert body["days"] == 10
    assert body["keyId"] == "rzp_test_key"

    assert gateway.orders[0]["amount"] == 1000000
    assert gateway.orders[0]["receipt"].startswith("receipt_")

    session.expire_all()
    booking = session.get(Booking, body["bookingId"])
    assert booking.status == BookingStatus.pending
    assert booking.total_amount == 10000
    assert booking.user_id == buyer.id
    assert booking.order_id == "order_test_1"
    assert session.query(AuditLog).filter(AuditLog.category == "payment").count() == 1


def test_client_amount_is_ignored(client, gateway, hoarding, buyer):
    r = _checkout(client, hoarding, amount=1)
    assert r.status_code == 200
    assert r.json()["totalAmount"] == 10000
    assert gateway.orders[0]["amount"] == 1000000


def test_checkout_below_minimum(client, session, gateway, buyer):
    vendor = create_user(session, email="vendor@example.com", role=UserRole.vendor, kyc_status=KYCStatus.approved)
    hoarding = make_hoarding(session, vendor, price_per_month=30000, minimum_booking_amount=15000)
    r = _checkout(client, hoarding)
    assert r.status_code == 400
    assert r.json()["error"] == (
        "Booking amount 10000 is below the minimum booking amount of 15000 for this hoarding"
    )
    assert gateway.orders == []
    assert session.query(Booking).count() == 0


def test_checkout_requires_approved_kyc(client, session, gateway, hoarding):
    create_user(session, email="pending@example.com", kyc_status=KYCStatus.pending)
    login(client, "pending@example.com")
    r = _checkout(client, hoarding)
    assert r.status_code == 403
    assert r.json()["reason"] == "kyc_pending"
    assert gateway.orders == []


def test_checkout_accepts_legacy_verified_status(client, session, hoarding):
    create_user(session, email="legacy@example.com", kyc_status=KYCStatus.verified)
    login(client, "legacy@example.com")
    assert _checkout(client, hoarding).status_code == 200


def test_checkout_requires_login(client, hoarding):
    assert _checkout(client, hoarding).status_code == 401


def test_checkout_rejects_reversed_period(client, hoarding, buyer):
    r = client.post("/bookings/checkout", json={
        "hoardingId": hoarding.id, "startDate": "2026-04-11", "endDate": "2026-04-01",
    })
    assert r.status_code == 400
    assert r.json()["error"] == "End date must be after start date"


def test_checkout_unknown_hoarding(client, buyer):
    r = client.post("/bookings/checkout", json={"hoardingId": 9999, **PERIOD})
    assert r.status_code == 404
    assert r.json()["error"] == "Hoarding not found"


def test_gateway_failure_creates_no_booking(client, session, gateway, hoarding, buyer):
    gateway.fail = True
    r = _checkout(client, hoarding)
    assert r.status_code == 500
    assert r.json() == {"error": "Payment initiation failed"}
    assert session.query(Booking).count() == 0


def test_verify_confirms_booking(client, session, hoarding, buyer):
    booking_id = _checkout(client, hoarding).json()["bookingId"]
    r = _verify(client, "order_test_1", "pay_001")
    assert r.status_code == 200
    assert r.json() == {"success": True, "bookingId": booking_id}

    session.expire_all()
    booking = session.get(Booking, booking_id)
    assert booking.status == BookingStatus.confirmed
    assert booking.payment_id == "pay_001"


def test_verify_rechecks_eligibility_after_kyc_resubmission(client, session, hoarding):
    create_user(session, email="buyer@example.com", kyc_status=KYCStatus.approved,
                phone="9123456780", is_phone_verified=True)
    login(client, "buyer@example.com")
    booking_id = _checkout(client, hoarding).json()["bookingId"]

    r = client.post("/auth/kyc", json={
        "phone": "9876543210",
        "pan": "ABCDE1234F",
        "aadhaar": "123412341234",
        "address": "12 MG Road, Pune",
    })
    assert r.status_code == 200
    assert r.json()["kycStatus"] == "not_submitted"

    r = _verify(client, "order_test_1", "pay_001")
    assert r.status_code == 403
    assert r.json() == {
        "error": "Please complete KYC verification from your profile",
        "reason": "kyc_not_submitted",
    }

    session.expire_all()
    booking = session.get(Booking, booking_id)
    assert booking.status == BookingStatus.pending
    assert booking.payment_id is None
    assert session.query(AuditLog).filter(AuditLog.category == "failed_attempt").count() == 1


def test_verify_rejects_bad_signature(client, session, hoarding, buyer):
    booking_id = _checkout(client, hoarding).json()["bookingId"]
    forged = payment_signature("order_test_1", "pay_001", "not-the-secret")
    r = _verify(client, "order_test_1", "pay_001", signature=forged)
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid signature"}

    session.expire_all()
    assert session.get(Booking, booking_id).status == BookingStatus.pending
    assert session.query(AuditLog).filter(AuditLog.category == "failed_attempt").count() == 1


def test_verify_unknown_order(client):
    r = _verify(client, "order_missing")
    assert r.status_code == 404
    assert r.json() == {"error": "Booking not found"}


def test_verify_without_secret(client, app):
    app.state.settings = app.state.settings.model_copy(update={"razorpay_key_secret": ""})
    r = _verify(client, "order_test_1")
    assert r.status_code == 500
    assert r.json() == {"error": "Verification failed"}
