"""
Property lookup: listing search, market statistics, showing requests and the
agent roster.
"""

import calendar
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

import structlog
from sqlalchemy import and_, func, insert, or_, select

from ..config import Settings
from ..database import Database, utcnow
from ..exceptions import NotFoundError
from ..models.property import Agent, Property, PropertyShowing
from ..schemas.property import (
    AgentProfile,
    ClientInfo,
    Coordinates,
    PropertyListing,
    PropertySearchCriteria,
    PropertySearchResult,
    ShowingDetails,
)
from ..utils.logger import performance_timer


logger = structlog.get_logger("estate_assistant.broker")

properties = Property.__table__
agents = Agent.__table__
showings = PropertyShowing.__table__

LISTED_STATUSES = ("active", "pending")
MARKET_WINDOW_MONTHS = 6

LISTING_COLUMNS = (
    properties.c.property_id,
    properties.c.address,
    properties.c.city,
    properties.c.state,
    properties.c.zip_code,
    properties.c.property_type,
    properties.c.listing_price,
    properties.c.bedrooms,
    properties.c.bathrooms,
    properties.c.square_footage,
    properties.c.lot_size,
    properties.c.year_built,
    properties.c.listing_date,
    properties.c.status,
    properties.c.description,
    properties.c.agent_id,
    properties.c.images_count,
    properties.c.latitude,
    properties.c.longitude,
)

AGENT_COLUMNS = (
    agents.c.agent_id,
    agents.c.first_name,
    agents.c.last_name,
    agents.c.email,
    agents.c.phone,
    agents.c.license_number,
    agents.c.specialties,
    agents.c.years_experience,
    agents.c.office_address,
    agents.c.profile_image,
    agents.c.bio,
    agents.c.languages,
    agents.c.active_listings_count,
    agents.c.total_sales_ytd,
)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same day-of-month `months` earlier, clamped to the end of shorter months."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _location_filter(location: str):
    pattern = f"%{_escape_like(location)}%"
    return or_(
        properties.c.city.like(pattern, escape="\\"),
        properties.c.state.like(pattern, escape="\\"),
        properties.c.zip_code.like(pattern, escape="\\"),
    )


def _split_list(value: Optional[str]) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()] if value else []


def _listing(row: Dict[str, Any]) -> PropertyListing:
    return PropertyListing(
        property_id=row["property_id"],
        address=f"{row['address']}, {row['city']}, {row['state']} {row['zip_code']}",
        property_type=row["property_type"],
        price=row["listing_price"],
        bedrooms=row["bedrooms"],
        bathrooms=row["bathrooms"],
        square_footage=row["square_footage"],
        lot_size=row["lot_size"],
        year_built=row["year_built"],
        listing_date=row["listing_date"],
        status=row["status"],
        description=row["description"],
        agent_id=row["agent_id"],
        images_count=row["images_count"],
        coordinates=Coordinates(latitude=row["latitude"], longitude=row["longitude"]),
    )


def _agent(row: Dict[str, Any]) -> AgentProfile:
    return AgentProfile(
        agent_id=row["agent_id"],
        name=f"{row['first_name']} {row['last_name']}",
        email=row["email"],
        phone=row["phone"],
        license_number=row["license_number"],
        specialties=_split_list(row["specialties"]),
        years_experience=row["years_experience"],
        office_address=row["office_address"],
        profile_image=row["profile_image"],
        bio=row["bio"],
        languages=_split_list(row["languages"]) or ["English"],
        active_listings=row["active_listings_count"],
        total_sales_ytd=row["total_sales_ytd"],
    )


class BrokerService:
    """Read-mostly access to listings and agents, plus showing requests."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.broker_license = settings.BROKER_LICENSE_NUMBER
        self.default_market_area = settings.DEFAULT_MARKET_AREA
        self.search_radius = settings.PROPERTY_SEARCH_RADIUS

    async def search_properties(self, criteria: PropertySearchCriteria) -> PropertySearchResult:
        conditions = [
            properties.c.status.in_(LISTED_STATUSES),
            properties.c.listing_price.between(criteria.min_price, criteria.max_price),
        ]
        if criteria.property_type and criteria.property_type != "all":
            conditions.append(properties.c.property_type == criteria.property_type)
        if criteria.location:
            conditions.append(_location_filter(criteria.location))
        if criteria.bedrooms:
            conditions.append(properties.c.bedrooms >= criteria.bedrooms)
        if criteria.bathrooms:
            conditions.append(properties.c.bathrooms >= criteria.bathrooms)
        if criteria.square_footage:
            if criteria.square_footage.min:
                conditions.append(properties.c.square_footage >= criteria.square_footage.min)
            if criteria.square_footage.max:
                conditions.append(properties.c.square_footage <= criteria.square_footage.max)

        statement = (
            select(*LISTING_COLUMNS)
            .where(and_(*conditions))
            .order_by(properties.c.listing_date.desc())
            .limit(criteria.limit)
            .offset(criteria.offset)
        )

        with performance_timer("broker-service", "BrokerService", step="property-search") as timer:
            result = await self.database.execute_query(statement, operation="property-search")
            timer["property_count"] = len(result.rows)

        listings = [_listing(row) for row in result.rows]
        return PropertySearchResult(
            properties=listings,
            total_found=len(listings),
            search_criteria=criteria,
            timestamp=utcnow(),
        )

    async def get_market_analysis(self, location: str, property_type: str = "residential") -> Dict[str, Any]:
        """
        Aggregate the listings of an area over the trailing six calendar months.

        Raises:
            NotFoundError: when no listing matches
        """
        now = utcnow()
        statement = select(
            properties.c.listing_price,
            properties.c.square_footage,
            properties.c.status,
            properties.c.listing_date,
            properties.c.sold_date,
        ).where(
            _location_filter(location),
            properties.c.property_type == property_type,
            properties.c.listing_date >= subtract_months(now, MARKET_WINDOW_MONTHS),
        )

        with performance_timer("broker-service", "BrokerService", step="market-analysis", location=location):
            result = await self.database.execute_query(statement, operation="market-analysis")

        rows = result.rows
        if not rows:
            raise NotFoundError("Market data", location)

        total = len(rows)
        prices = [row["listing_price"] for row in rows]
        footages = [row["square_footage"] for row in rows if row["square_footage"]]
        sold = sum(1 for row in rows if row["status"] == "sold")
        active = sum(1 for row in rows if row["status"] == "active")

        days_on_market = [
            ((row["sold_date"] if row["status"] == "sold" and row["sold_date"] else now) - row["listing_date"]).days
            for row in rows
        ]

        avg_price = sum(prices) / total
        avg_footage = sum(footages) / len(footages) if footages else 0

        return {
            "location": location,
            "propertyType": property_type,
            "totalListings": total,
            "priceStatistics": {
                "average": round(avg_price),
                "minimum": min(prices),
                "maximum": max(prices),
                "pricePerSquareFoot": round(avg_price / avg_footage) if avg_footage > 0 else None,
            },
            "marketActivity": {
                "averageDaysOnMarket": round(sum(days_on_market) / total),
                "soldProperties": sold,
                "activeListings": active,
                "absorptionRate": round(sold / total * 100) if total > 0 else 0,
            },
            "averageSquareFootage": round(avg_footage),
            "analysisDate": now.isoformat(),
            "dataRange": f"Last {MARKET_WINDOW_MONTHS} months",
        }

    async def schedule_showing(
        self,
        property_id: str,
        client_info: ClientInfo,
        preferred_date: datetime,
        time_slot: str = "afternoon"
    ) -> ShowingDetails:
        lookup = await self.database.execute_query(
            select(
                properties.c.property_id,
                properties.c.address,
                properties.c.city,
                properties.c.state,
                properties.c.agent_id,
            ).where(properties.c.property_id == property_id, properties.c.status.in_(LISTED_STATUSES)),
            operation="showing-property-lookup",
        )
        listing = lookup.first()
        if listing is None:
            raise NotFoundError("Property", property_id)

        showing = ShowingDetails(
            showing_id=str(uuid.uuid4()),
            property_id=property_id,
            property_address=f"{listing['address']}, {listing['city']}, {listing['state']}",
            client_name=client_info.client_name,
            preferred_date=preferred_date,
            time_slot=time_slot,
            status="requested",
            agent_id=listing["agent_id"],
            created_at=utcnow(),
        )

        await self.database.execute_query(
            insert(showings).values(
                showing_id=showing.showing_id,
                property_id=property_id,
                agent_id=showing.agent_id,
                client_name=client_info.client_name,
                client_email=client_info.client_email,
                client_phone=client_info.client_phone,
                preferred_date=preferred_date,
                time_slot=time_slot,
                status="requested",
                created_at=showing.created_at,
            ),
            operation="create-showing",
        )

        logger.info(
            "Property showing scheduled",
            showing_id=showing.showing_id,
            property_id=property_id,
            preferred_date=preferred_date.isoformat(),
        )
        return showing

    async def get_agent_info(self, agent_id: Optional[str] = None) -> Union[AgentProfile, List[AgentProfile]]:
        """One active agent by id, or the featured roster ranked by sales."""
        statement = select(*AGENT_COLUMNS).where(agents.c.status == "active")
        if agent_id:
            statement = statement.where(agents.c.agent_id == agent_id)
        else:
            statement = statement.where(agents.c.featured.is_(True)).order_by(agents.c.total_sales_ytd.desc())

        result = await self.database.execute_query(statement, operation="get-agents")

        if agent_id:
            row = result.first()
            if row is None:
                raise NotFoundError("Agent", agent_id)
            return _agent(row)
        return [_agent(row) for row in result.rows]

    async def get_service_stats(self) -> Dict[str, Any]:
        now = utcnow()
        statement = select(
            select(func.count()).select_from(properties)
            .where(properties.c.status == "active").scalar_subquery().label("active_listings"),
            select(func.count()).select_from(properties)
            .where(properties.c.status == "sold", properties.c.sold_date >= subtract_months(now, 1))
            .scalar_subquery().label("sold_last_month"),
            select(func.count()).select_from(showings)
            .where(showings.c.status == "requested", showings.c.created_at >= now - timedelta(days=7))
            .scalar_subquery().label("showings_this_week"),
            select(func.count()).select_from(agents)
            .where(agents.c.status == "active").scalar_subquery().label("active_agents"),
            select(func.avg(properties.c.listing_price))
            .where(properties.c.status == "active").scalar_subquery().label("avg_listing_price"),
        )
        stats = (await self.database.execute_query(statement, operation="broker-stats")).first()

        return {
            "activeListings": stats["active_listings"],
            "soldLastMonth": stats["sold_last_month"],
            "showingsThisWeek": stats["showings_this_week"],
            "activeAgents": stats["active_agents"],
            "averageListingPrice": round(stats["avg_listing_price"]) if stats["avg_listing_price"] is not None else 0,
            "brokerLicense": self.broker_license,
            "defaultMarketArea": self.default_market_area,
            "searchRadius": self.search_radius,
            "lastUpdated": now.isoformat(),
        }
