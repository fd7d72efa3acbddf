"""
Property lookup routes: listing search, market analysis, showings and agents.
"""

from typing import Literal

from fastapi import APIRouter, Depends, Path, Query, Request, status

from ..dependencies import get_broker_service
from ..schemas.base import sanitize_string
from ..schemas.property import PropertySearchCriteria, ShowingRequest
from ..services.broker_service import BrokerService
from ..utils.middleware import get_request_id
from ..utils.rate_limit import rate_limit


router = APIRouter(tags=["Properties"], dependencies=[Depends(rate_limit("general"))])


@router.post("/api/properties/search")
async def search_properties(
    request: Request,
    criteria: PropertySearchCriteria,
    broker_service: BrokerService = Depends(get_broker_service)
):
    """Search active and pending listings."""
    result = await broker_service.search_properties(criteria)
    return {"success": True, **result.model_dump(mode="json", by_alias=True), "requestId": get_request_id(request)}


@router.get("/api/properties/market-analysis")
async def market_analysis(
    request: Request,
    location: str = Query(..., min_length=1, max_length=200),
    property_type: Literal["residential", "commercial", "land", "investment"] = Query(
        "residential", alias="propertyType"
    ),
    broker_service: BrokerService = Depends(get_broker_service)
):
    """Price and activity statistics for an area over the last six months."""
    analysis = await broker_service.get_market_analysis(sanitize_string(location), property_type)
    return {"success": True, "analysis": analysis, "requestId": get_request_id(request)}


@router.post("/api/properties/{property_id}/showings", status_code=status.HTTP_201_CREATED)
async def schedule_showing(
    request: Request,
    showing_request: ShowingRequest,
    property_id: str = Path(..., min_length=1, max_length=36),
    broker_service: BrokerService = Depends(get_broker_service)
):
    """Request a viewing of a listing."""
    showing = await broker_service.schedule_showing(
        property_id,
        showing_request,
        showing_request.preferred_date,
        showing_request.time_slot,
    )
    return {"success": True, "showing": showing, "requestId": get_request_id(request)}


@router.get("/api/agents")
async def list_agents(request: Request, broker_service: BrokerService = Depends(get_broker_service)):
    """Featured agents ranked by year-to-date sales."""
    agents = await broker_service.get_agent_info()
    return {"success": True, "agents": agents, "totalCount": len(agents), "requestId": get_request_id(request)}


@router.get("/api/agents/{agent_id}")
async def get_agent(
    request: Request,
    agent_id: str = Path(..., min_length=1, max_length=36),
    broker_service: BrokerService = Depends(get_broker_service)
):
    """Profile of one active agent."""
    agent = await broker_service.get_agent_info(agent_id)
    return {"success": True, "agent": agent, "requestId": get_request_id(request)}
