"""Hoarding listings (advertising spaces offered by vendors)."""
from sqlalchemy import Column, Integer, String, Float, Text, ForeignKey, Enum as SQLEnum, DateTime, JSON
from sqlalchemy.orm import relationship
from app.database import Base, utcnow
import enum


class HoardingType(str, enum.Enum):
    billboard = "Billboard"
    unipole = "Unipole"
    gantry = "Gantry"
    bus_shelter = "Bus Shelter"
    kiosk = "Kiosk"
    other = "Other"


class LightingType(str, enum.Enum):
    lit = "Lit"
    non_lit = "Non-Lit"
    front_lit = "Front Lit"
    back_lit = "Back Lit"


class HoardingStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Hoarding(Base):
    __tablename__ = "hoardings"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    area = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    width = Column(Float, nullable=False)
    height = Column(Float, nullable=False)
    hoarding_type = Column(SQLEnum(HoardingType), nullable=False)
    lighting_type = Column(SQLEnum(LightingType), nullable=False, default=LightingType.non_lit)

    price_per_month = Column(Float, nullable=False)
    minimum_booking_amount = Column(Float, nullable=False, default=0)
    images = Column(JSON, nullable=False, default=list)

    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # No pre-publication review yet: listings are created approved
    status = Column(SQLEnum(HoardingStatus), nullable=False, default=HoardingStatus.approved)
    unique_reach = Column(Integer, nullable=True)  # daily reach, maintained by admins

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", backref="hoardings")
