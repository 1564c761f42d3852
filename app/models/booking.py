"""Bookings: a listing reserved for a date range, backed by a gateway order."""
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from app.database import Base, utcnow
import enum


class BookingStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    hoarding_id = Column(Integer, ForeignKey("hoardings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    total_amount = Column(Float, nullable=False)  # rupees; set once at checkout
    status = Column(SQLEnum(BookingStatus), nullable=False, default=BookingStatus.pending)

    order_id = Column(String(64), unique=True, nullable=False, index=True)
    payment_id = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    hoarding = relationship("Hoarding")
    user = relationship("User")
