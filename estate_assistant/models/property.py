"""
Brokerage database models: listings, agents and showing requests.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Float, Index
from sqlalchemy.orm import relationship

from ..database import Base, utcnow


class Agent(Base):
    """Licensed agent of the brokerage."""

    __tablename__ = "agents"

    agent_id = Column(String(36), primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    license_number = Column(String(50), nullable=True)

    # Comma-separated lists
    specialties = Column(String(500), nullable=True)
    languages = Column(String(200), nullable=True)

    years_experience = Column(Integer, default=0)
    office_address = Column(String(300), nullable=True)
    profile_image = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)

    # Statistics
    active_listings_count = Column(Integer, default=0)
    total_sales_ytd = Column(Float, default=0)

    status = Column(String(20), nullable=False, default="active")
    featured = Column(Boolean, nullable=False, default=False)

    # Relationships
    properties = relationship("Property", back_populates="agent")


class Property(Base):
    """Property listing."""

    __tablename__ = "properties"

    __table_args__ = (
        Index("ix_properties_status_listing_date", "status", "listing_date"),
    )

    property_id = Column(String(36), primary_key=True)

    # Location
    address = Column(String(300), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(20), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Listing details
    property_type = Column(String(20), nullable=False, default="residential")
    listing_price = Column(Float, nullable=False)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Float, nullable=True)
    square_footage = Column(Integer, nullable=True)
    lot_size = Column(Float, nullable=True)
    year_built = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    images_count = Column(Integer, default=0)

    # "active", "pending", "sold", "withdrawn"
    status = Column(String(20), nullable=False, default="active")
    listing_date = Column(DateTime, nullable=False, default=utcnow)
    sold_date = Column(DateTime, nullable=True)

    agent_id = Column(String(36), ForeignKey("agents.agent_id"), nullable=True)

    # Relationships
    agent = relationship("Agent", back_populates="properties")
    showings = relationship("PropertyShowing", back_populates="property")


class PropertyShowing(Base):
    """Client request to view a listing."""

    __tablename__ = "property_showings"

    showing_id = Column(String(36), primary_key=True)
    property_id = Column(String(36), ForeignKey("properties.property_id"), nullable=False)
    agent_id = Column(String(36), nullable=True)

    # Client
    client_name = Column(String(100), nullable=False)
    client_email = Column(String(200), nullable=True)
    client_phone = Column(String(50), nullable=True)

    preferred_date = Column(DateTime, nullable=False)
    time_slot = Column(String(20), nullable=False, default="afternoon")
    status = Column(String(20), nullable=False, default="requested")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    property = relationship("Property", back_populates="showings")
