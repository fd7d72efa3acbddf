"""
Brokerage Pydantic schemas: property search, showings and agents.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from .base import CamelModel, SanitizedStr


PropertyType = Literal["residential", "commercial", "land", "investment"]
PHONE_PATTERN = r"^\+?1?[-.\s]?\(?[0-9]{3}\)?[-.\s]?[0-9]{3}[-.\s]?[0-9]{4}$"


class SquareFootageRange(CamelModel):
    min: Optional[int] = Field(None, ge=0)
    max: Optional[int] = Field(None, ge=0)


class PropertySearchCriteria(CamelModel):
    """Filters for a listing search."""
    location: Optional[SanitizedStr] = Field(None, max_length=200)
    property_type: Optional[Literal["residential", "commercial", "land", "investment", "all"]] = "residential"
    min_price: float = Field(0, ge=0)
    max_price: float = Field(10_000_000, ge=0)
    bedrooms: Optional[int] = Field(None, ge=0, le=20)
    bathrooms: Optional[float] = Field(None, ge=0, le=20)
    square_footage: Optional[SquareFootageRange] = None
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


class ClientInfo(CamelModel):
    """Contact details of a client requesting a showing."""
    client_name: SanitizedStr = Field(..., min_length=1, max_length=100)
    client_email: Optional[EmailStr] = None
    client_phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)


class ShowingRequest(ClientInfo):
    """Schema for scheduling a property showing."""
    preferred_date: datetime
    time_slot: Literal["morning", "afternoon", "evening"] = "afternoon"

    @field_validator("preferred_date")
    @classmethod
    def must_be_future(cls, value: datetime) -> datetime:
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        if value <= datetime.now(timezone.utc).replace(tzinfo=None):
            raise ValueError("Preferred date must be in the future")
        return value


class Coordinates(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class PropertyListing(CamelModel):
    """Flattened listing returned by searches."""
    property_id: str
    address: str
    property_type: str
    price: float
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_footage: Optional[int] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None
    listing_date: datetime
    status: str
    description: Optional[str] = None
    agent_id: Optional[str] = None
    images_count: Optional[int] = None
    coordinates: Coordinates


class PropertySearchResult(CamelModel):
    properties: List[PropertyListing]
    total_found: int
    search_criteria: PropertySearchCriteria
    timestamp: datetime


class ShowingDetails(CamelModel):
    showing_id: str
    property_id: str
    property_address: str
    client_name: str
    preferred_date: datetime
    time_slot: str
    status: str
    agent_id: Optional[str] = None
    created_at: datetime


class AgentProfile(CamelModel):
    agent_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    specialties: List[str] = Field(default_factory=list)
    years_experience: Optional[int] = None
    office_address: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
    active_listings: Optional[int] = None
    total_sales_ytd: Optional[float] = None
