"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.user import User
from app.models.otp import OneTimeCode
from app.models.hoarding import Hoarding
from app.models.booking import Booking
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "OneTimeCode",
    "Hoarding",
    "Booking",
    "AuditLog",
]
