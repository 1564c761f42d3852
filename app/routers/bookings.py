"""Bookings: Razorpay checkout and signature-verified confirmation."""
import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import Settings
from app.database import get_db
from app.dependencies import get_app_settings, get_payment_gateway, require_booking_eligible
from app.exceptions import APIError
from app.models.booking import Booking, BookingStatus
from app.models.hoarding import Hoarding
from app.models.user import User
from app.schemas.booking import CheckoutRequest, CheckoutResponse, VerifyPaymentRequest, VerifyPaymentResponse
from app.services.audit_log import CATEGORY_FAILED_ATTEMPT, CATEGORY_PAYMENT, create_log, request_context
from app.services.payments import PaymentGatewayError, RazorpayClient, signature_matches
from app.services.pricing import booking_days, prorated_amount, to_paise
from app.services.verification import booking_eligibility

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(
    data: CheckoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_booking_eligible),
    gateway: RazorpayClient = Depends(get_payment_gateway),
    settings: Settings = Depends(get_app_settings),
):
    hoarding = db.query(Hoarding).filter(Hoarding.id == data.hoarding_id).first()
    if not hoarding:
        raise HTTPException(status_code=404, detail="Hoarding not found")

    days = booking_days(data.start_date, data.end_date)
    total = prorated_amount(hoarding.price_per_month, days)
    minimum = hoarding.minimum_booking_amount or 0
    if total < minimum:
        raise HTTPException(
            status_code=400,
            detail=f"Booking amount {total} is below the minimum booking amount of {minimum:g} for this hoarding",
        )
    if data.amount is not None and data.amount != total:
        logger.info("Checkout for hoarding %s: client amount %s replaced by %s", hoarding.id, data.amount, total)

    amount_paise = to_paise(total)
    try:
        order = gateway.create_order(amount_paise, settings.booking_currency, f"receipt_{int(time.time() * 1000)}")
    except PaymentGatewayError as e:
        logger.error("Payment Init Error: %s", e)
        raise HTTPException(status_code=500, detail="Payment initiation failed")

    booking = Booking(
        hoarding_id=hoarding.id,
        user_id=current_user.id,
        start_date=data.start_date,
        end_date=data.end_date,
        total_amount=total,
        status=BookingStatus.pending,
        order_id=order["id"],
    )
    db.add(booking)
    db.flush()
    create_log(
        db,
        CATEGORY_PAYMENT,
        "Checkout started",
        f"Order {order['id']} opened for hoarding {hoarding.id} ({days} days, {total} {settings.booking_currency}).",
        actor_user_id=current_user.id,
        actor_email=current_user.email,
        meta={"order_id": order["id"], "booking_id": booking.id, "amount_paise": amount_paise},
        **request_context(request),
    )
    db.commit()
    return CheckoutResponse(
        order_id=order["id"],
        booking_id=booking.id,
        amount=amount_paise,
        currency=settings.booking_currency,
        total_amount=total,
        days=days,
        key_id=settings.razorpay_key_id,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    data: VerifyPaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if not settings.razorpay_key_secret:
        logger.error("Payment verification attempted without RAZORPAY_KEY_SECRET")
        raise HTTPException(status_code=500, detail="Verification failed")

    if not signature_matches(
        data.razorpay_order_id, data.razorpay_payment_id, data.razorpay_signature, settings.razorpay_key_secret
    ):
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Invalid payment signature",
            f"Signature mismatch for order {data.razorpay_order_id}.",
            meta={"order_id": data.razorpay_order_id, "payment_id": data.razorpay_payment_id},
            **request_context(request),
        )
        db.commit()
        raise HTTPException(status_code=400, detail="Invalid signature")

    booking = db.query(Booking).filter(Booking.order_id == data.razorpay_order_id).first()
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    eligibility = booking_eligibility(booking.user)
    if not eligibility.allowed:
        logger.warning("Booking %s left pending: owner is %s", booking.id, eligibility.reason.value)
        create_log(
            db,
            CATEGORY_FAILED_ATTEMPT,
            "Booking confirmation refused",
            f"Booking {booking.id} left pending: {eligibility.message}",
            actor_user_id=booking.user_id,
            meta={"order_id": booking.order_id, "booking_id": booking.id, "reason": eligibility.reason.value},
            **request_context(request),
        )
        db.commit()
        raise APIError(403, eligibility.message, reason=eligibility.reason.value)

    booking.status = BookingStatus.confirmed
    booking.payment_id = data.razorpay_payment_id
    create_log(
        db,
        CATEGORY_PAYMENT,
        "Booking confirmed",
        f"Booking {booking.id} confirmed with payment {data.razorpay_payment_id}.",
        actor_user_id=booking.user_id,
        meta={"order_id": booking.order_id, "payment_id": booking.payment_id, "booking_id": booking.id},
        **request_context(request),
    )
    db.commit()
    return VerifyPaymentResponse(booking_id=booking.id)
