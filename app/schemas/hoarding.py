"""Hoarding listing schemas."""
from datetime import datetime

from pydantic import Field, field_validator

from app.models.hoarding import Hoarding, HoardingStatus, HoardingType, LightingType
from app.schemas.common import CamelModel, is_http_url, require_min_length


class HoardingCreate(CamelModel):
    name: str
    description: str | None = None

    address: str
    city: str
    area: str
    state: str
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    width: float
    height: float
    hoarding_type: HoardingType = Field(alias="type")
    lighting_type: LightingType

    price_per_month: float
    minimum_booking_amount: float | None = 0
    images: list[str] = []

    @field_validator("name")
    @classmethod
    def name_valid(cls, v: str) -> str:
        return require_min_length(v, 3, "Name must be at least 3 characters")

    @field_validator("address")
    @classmethod
    def address_valid(cls, v: str) -> str:
        return require_min_length(v, 5, "Address must be at least 5 characters")

    @field_validator("city", "area", "state")
    @classmethod
    def place_valid(cls, v: str, info) -> str:
        return require_min_length(v, 2, f"{info.field_name.capitalize()} is required")

    @field_validator("width", "height")
    @classmethod
    def dimension_valid(cls, v: float, info) -> float:
        if v < 1:
            raise ValueError(f"{info.field_name.capitalize()} is required")
        return v

    @field_validator("price_per_month")
    @classmethod
    def price_valid(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Price must be positive")
        return v

    @field_validator("minimum_booking_amount")
    @classmethod
    def minimum_valid(cls, v: float | None) -> float:
        if v is None:
            return 0
        if v < 0:
            raise ValueError("Minimum booking amount must be positive")
        return v

    @field_validator("images")
    @classmethod
    def images_are_urls(cls, v: list[str]) -> list[str]:
        if any(not is_http_url(url) for url in v):
            raise ValueError("Images must be valid URLs")
        return v


class OwnerSummary(CamelModel):
    id: int
    name: str
    email: str
    image: str | None = None


class Coordinates(CamelModel):
    lat: float
    lng: float


class Location(CamelModel):
    address: str
    city: str
    area: str
    state: str
    zip_code: str | None = None
    coordinates: Coordinates | None = None


class Dimensions(CamelModel):
    width: float
    height: float


class HoardingResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    location: Location
    dimensions: Dimensions
    hoarding_type: HoardingType = Field(alias="type")
    lighting_type: LightingType
    price_per_month: float
    minimum_booking_amount: float = 0
    images: list[str] = []
    owner: OwnerSummary | None = None
    status: HoardingStatus
    unique_reach: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, h: Hoarding, include_owner: bool = True) -> "HoardingResponse":
        coordinates = None
        if h.latitude is not None and h.longitude is not None:
            coordinates = Coordinates(lat=h.latitude, lng=h.longitude)
        return cls(
            id=h.id,
            name=h.name,
            description=h.description,
            location=Location(
                address=h.address,
                city=h.city,
                area=h.area,
                state=h.state,
                zip_code=h.zip_code,
                coordinates=coordinates,
            ),
            dimensions=Dimensions(width=h.width, height=h.height),
            hoarding_type=h.hoarding_type,
            lighting_type=h.lighting_type,
            price_per_month=h.price_per_month,
            minimum_booking_amount=h.minimum_booking_amount or 0,
            images=list(h.images or []),
            owner=OwnerSummary.model_validate(h.owner) if include_owner and h.owner else None,
            status=h.status,
            unique_reach=h.unique_reach,
            created_at=h.created_at,
            updated_at=h.updated_at,
        )
