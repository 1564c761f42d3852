"""Hoarding listings: public feed, vendor's own listings, creation."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload

from app.database import get_db
from app.dependencies import get_optional_user, require_listing_vendor, require_vendor
from app.models.hoarding import Hoarding, HoardingStatus
from app.models.user import User, UserRole
from app.schemas.hoarding import HoardingCreate, HoardingResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hoardings", tags=["hoardings"])


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _vendor_listings(db: Session, vendor: User) -> list[Hoarding]:
    return (
        db.query(Hoarding)
        .filter(Hoarding.owner_id == vendor.id)
        .order_by(Hoarding.created_at.desc(), Hoarding.id.desc())
        .all()
    )


def _require_authenticated(user: User | None) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


@router.get("")
def list_hoardings(
    city: str | None = None,
    view: str | None = None,
    db: Session = Depends(get_db),
    current_user: User | None = Depends(get_optional_user),
):
    if view == "vendor":
        vendor = require_vendor(_require_authenticated(current_user))
        return {"hoardings": [HoardingResponse.from_model(h, include_owner=False) for h in _vendor_listings(db, vendor)]}

    q = db.query(Hoarding).options(joinedload(Hoarding.owner))
    # Admins and vendors see every status in the public feed
    if not current_user or current_user.role not in (UserRole.admin, UserRole.vendor):
        q = q.filter(Hoarding.status == HoardingStatus.approved)
    if city and city.strip():
        q = q.filter(Hoarding.city.ilike(f"%{_escape_like(city.strip())}%", escape="\\"))
    hoardings = q.order_by(Hoarding.created_at.desc(), Hoarding.id.desc()).all()
    return {"hoardings": [HoardingResponse.from_model(h) for h in hoardings]}


@router.post("", status_code=201)
def create_hoarding(
    data: HoardingCreate,
    db: Session = Depends(get_db),
    vendor: User = Depends(require_listing_vendor),
):
    hoarding = Hoarding(
        name=data.name,
        description=data.description,
        address=data.address,
        city=data.city,
        area=data.area,
        state=data.state,
        zip_code=data.zip_code,
        latitude=data.latitude if data.latitude is not None and data.longitude is not None else None,
        longitude=data.longitude if data.latitude is not None and data.longitude is not None else None,
        width=data.width,
        height=data.height,
        hoarding_type=data.hoarding_type,
        lighting_type=data.lighting_type,
        price_per_month=data.price_per_month,
        minimum_booking_amount=data.minimum_booking_amount or 0,
        images=list(data.images),
        owner_id=vendor.id,
        status=HoardingStatus.approved,
    )
    db.add(hoarding)
    db.commit()
    db.refresh(hoarding)
    logger.info("Hoarding %s created by vendor %s", hoarding.id, vendor.id)
    return {"message": "Hoarding created successfully", "hoarding": HoardingResponse.from_model(hoarding)}


@router.get("/{hoarding_id}")
def get_hoarding(hoarding_id: int, db: Session = Depends(get_db)):
    hoarding = db.query(Hoarding).options(joinedload(Hoarding.owner)).filter(Hoarding.id == hoarding_id).first()
    if not hoarding:
        raise HTTPException(status_code=404, detail="Hoarding not found")
    return {"hoarding": HoardingResponse.from_model(hoarding)}
