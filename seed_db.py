#!/usr/bin/env python3
"""
Database Seeding Script
Creates the schema and loads a small set of demo agents and listings.
Rows that already exist are left untouched.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import insert, select

from estate_assistant.config import get_settings
from estate_assistant.database import Database, utcnow
from estate_assistant.models import Agent, Property
from estate_assistant.utils.logger import configure_logging


AGENTS = [
    {
        "agent_id": "agent-001",
        "first_name": "Maria",
        "last_name": "Lopez",
        "email": "maria.lopez@example.com",
        "phone": "555-201-3344",
        "license_number": "RE-448120",
        "specialties": "residential,first-time buyers",
        "languages": "English,Spanish",
        "years_experience": 12,
        "office_address": "100 Main St, Springfield, IL 62701",
        "bio": "Helps families find their first home.",
        "active_listings_count": 2,
        "total_sales_ytd": 4_250_000,
        "status": "active",
        "featured": True,
    },
    {
        "agent_id": "agent-002",
        "first_name": "James",
        "last_name": "Carter",
        "email": "james.carter@example.com",
        "phone": "555-201-7781",
        "license_number": "RE-551902",
        "specialties": "commercial,investment",
        "languages": "English",
        "years_experience": 20,
        "office_address": "100 Main St, Springfield, IL 62701",
        "bio": "Commercial and multi-family investment specialist.",
        "active_listings_count": 1,
        "total_sales_ytd": 9_800_000,
        "status": "active",
        "featured": True,
    },
]

# (property_id, address, city, zip, type, price, beds, baths, sqft, days listed, status, agent)
LISTINGS = [
    ("prop-001", "12 Oak Lane", "Springfield", "62704", "residential", 325_000, 3, 2.0, 1850, 20, "active", "agent-001"),
    ("prop-002", "48 Maple Ave", "Springfield", "62702", "residential", 415_000, 4, 2.5, 2400, 45, "pending", "agent-001"),
    ("prop-003", "7 Birch Ct", "Springfield", "62711", "residential", 289_000, 2, 1.0, 1200, 90, "sold", "agent-001"),
    ("prop-004", "300 Commerce Dr", "Springfield", "62703", "commercial", 1_250_000, None, 2.0, 8000, 60, "active", "agent-002"),
    ("prop-005", "15 Elm St", "Chatham", "62629", "investment", 540_000, 6, 4.0, 3200, 30, "active", "agent-002"),
]


def listing_rows():
    now = utcnow()
    for (property_id, address, city, zip_code, property_type, price, beds, baths,
         sqft, days_listed, status, agent_id) in LISTINGS:
        listing_date = now - timedelta(days=days_listed)
        yield {
            "property_id": property_id,
            "address": address,
            "city": city,
            "state": "IL",
            "zip_code": zip_code,
            "property_type": property_type,
            "listing_price": price,
            "bedrooms": beds,
            "bathrooms": baths,
            "square_footage": sqft,
            "year_built": 1995,
            "description": f"{property_type.title()} listing at {address}",
            "images_count": 12,
            "status": status,
            "listing_date": listing_date,
            "sold_date": listing_date + timedelta(days=35) if status == "sold" else None,
            "agent_id": agent_id,
        }


async def insert_missing(database: Database, table, key: str, rows) -> int:
    existing = await database.execute_query(select(table.c[key]), operation=f"seed-existing-{table.name}")
    known = {row[key] for row in existing.rows}
    added = 0
    for row in rows:
        if row[key] in known:
            continue
        await database.execute_query(insert(table).values(**row), operation=f"seed-{table.name}")
        added += 1
    return added


async def seed():
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.JSON_LOGS)

    database = Database.from_settings(settings)
    try:
        await database.create_schema()
        agents_added = await insert_missing(database, Agent.__table__, "agent_id", AGENTS)
        listings_added = await insert_missing(database, Property.__table__, "property_id", listing_rows())
    finally:
        await database.close()

    print(f"Seeded {agents_added} agent(s) and {listings_added} listing(s)")


if __name__ == "__main__":
    asyncio.run(seed())
