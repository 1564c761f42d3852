"""Booking price: monthly rate pro-rated over a 30-day month."""
import math
from datetime import date

DAYS_PER_MONTH = 30


class InvalidBookingPeriod(ValueError):
    pass


def booking_days(start: date, end: date) -> int:
    if end <= start:
        raise InvalidBookingPeriod("End date must be after start date")
    return (end - start).days


def prorated_amount(price_per_month: float, days: int) -> int:
    """ceil(price_per_month / 30 * days), in whole rupees."""
    return math.ceil(price_per_month / DAYS_PER_MONTH * days)


def booking_amount(price_per_month: float, start: date, end: date) -> int:
    return prorated_amount(price_per_month, booking_days(start, end))


def to_paise(amount: float) -> int:
    return int(round(amount * 100))
