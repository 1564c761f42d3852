"""Checkout and payment confirmation schemas."""
from datetime import date

from pydantic import model_validator

from app.schemas.common import CamelModel


class CheckoutRequest(CamelModel):
    hoarding_id: int
    start_date: date
    end_date: date
    # Client-side estimate; the charged amount is always recomputed
    amount: float | None = None

    @model_validator(mode="after")
    def period_valid(self):
        if self.end_date <= self.start_date:
            raise ValueError("End date must be after start date")
        return self


class CheckoutResponse(CamelModel):
    order_id: str
    booking_id: int
    amount: int  # paise
    currency: str
    total_amount: float
    days: int
    key_id: str


class VerifyPaymentRequest(CamelModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class VerifyPaymentResponse(CamelModel):
    success: bool = True
    booking_id: int
