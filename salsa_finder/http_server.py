"""HTTP API for Salsa Finder."""

import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional, Union

import asyncpg
import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from salsa_finder.database.connections import DatabaseManager
from salsa_finder.database.repositories.event_repository import EventRepository
from salsa_finder.discovery.service import DiscoveryService
from salsa_finder.exceptions import InvalidVoteTypeError
from salsa_finder.models.candidate import parse_date
from salsa_finder.models.config import SalsaFinderConfig
from salsa_finder.models.event import Event
from salsa_finder.models.messages import (
    ExistenceVoteCounts,
    RunSummary,
    VenueVoteCounts,
    VoteRecord,
    VoteRequest,
)
from salsa_finder.voting import VoteService

logger = logging.getLogger(__name__)

CITY_RE = re.compile(r"^[a-zA-ZÀ-ÿ0-9\s'-]{1,100}$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ErrorResponse(BaseModel):
    """Error response format."""
    error: str = Field(..., description="Human readable error message")


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Open storage and HTTP clients for the lifetime of the app."""
    config = SalsaFinderConfig()
    db_manager = DatabaseManager(config)
    await db_manager.initialize()
    http_client = httpx.AsyncClient(max_redirects=config.max_redirects)

    app_instance.state.config = config
    app_instance.state.db_manager = db_manager
    app_instance.state.event_repository = EventRepository(db_manager)
    app_instance.state.vote_service = VoteService(db_manager)
    app_instance.state.discovery_service = DiscoveryService.from_config(config, db_manager, http_client)
    logger.info("Salsa Finder HTTP server started")

    yield

    logger.info("Salsa Finder HTTP server shutting down")
    await http_client.aclose()
    await db_manager.cleanup()


app = FastAPI(
    title="Salsa Finder API",
    description="Latin dance event discovery with crowd-sourced votes",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_event_repository(request: Request) -> EventRepository:
    return request.app.state.event_repository


def get_vote_service(request: Request) -> VoteService:
    return request.app.state.vote_service


def get_discovery_service(request: Request) -> DiscoveryService:
    return request.app.state.discovery_service


def validate_city(city: Optional[str]) -> str:
    if not city or not CITY_RE.match(city.strip()):
        raise HTTPException(status_code=400, detail="Invalid city name")
    return city.strip()


def validate_date(value: Optional[str]):
    """Parse an optional ``YYYY-MM-DD`` query parameter."""
    if not value:
        return None
    parsed = parse_date(value) if ISO_DATE_RE.match(value) else None
    if parsed is None:
        raise HTTPException(status_code=400, detail="Invalid date format, expected YYYY-MM-DD")
    return parsed


def _event_json(event: Event) -> dict:
    return event.model_dump(mode="json")


@app.get("/api/health")
async def health(db_manager: DatabaseManager = Depends(get_db_manager)):
    """Health check endpoint."""
    storage = await db_manager.health_check()
    return {
        "status": "ok" if storage.get("overall") == "healthy" else "degraded",
        "storage": storage,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/events")
async def list_events(event_repository: EventRepository = Depends(get_event_repository)):
    """All stored events ordered by date."""
    events = await event_repository.find_all(order_by="date ASC, id ASC")
    return [_event_json(event) for event in events]


@app.get("/api/events/search")
async def search_events(
    city: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    event_repository: EventRepository = Depends(get_event_repository),
):
    """Stored events for a city, optionally on one date."""
    city = validate_city(city)
    event_date = validate_date(date)
    events = await event_repository.search_by_city(city, event_date)
    return [_event_json(event) for event in events]


@app.get("/api/events/group/{event_id}")
async def event_group(event_id: int, event_repository: EventRepository = Depends(get_event_repository)):
    """Every dated instance of the series an event belongs to."""
    if event_id <= 0:
        raise HTTPException(status_code=400, detail="Valid event ID is required")
    series = await event_repository.find_series(event_id)
    if series is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return [_event_json(event) for event in series]


@app.get("/api/scrape-events", response_model=RunSummary)
async def scrape_events(
    city: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    styles: Optional[str] = Query(None, description="Comma separated dance styles"),
    discovery_service: DiscoveryService = Depends(get_discovery_service),
) -> RunSummary:
    """Run a discovery pass; stored results are read back via /api/events."""
    city = validate_city(city)
    event_date = validate_date(date)
    style_list = [style.strip() for style in (styles or "").split(",") if style.strip()]
    return await discovery_service.run_discovery(city, date=event_date, styles=style_list)


async def _cast(cast, vote: VoteRequest) -> Union[ExistenceVoteCounts, VenueVoteCounts]:
    try:
        return await cast(vote.event_id, vote.type, vote.user_id)
    except InvalidVoteTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except asyncpg.ForeignKeyViolationError:
        raise HTTPException(status_code=404, detail="Event not found")


@app.post("/api/votes", response_model=ExistenceVoteCounts, response_model_by_alias=True)
async def cast_vote(vote: VoteRequest, vote_service: VoteService = Depends(get_vote_service)):
    """Cast, retract or switch an exists/notexists vote."""
    return await _cast(vote_service.cast_existence_vote, vote)


@app.get("/api/votes", response_model=List[VoteRecord])
async def list_votes(event_id: int = Query(..., gt=0), vote_service: VoteService = Depends(get_vote_service)):
    return await vote_service.list_votes(event_id)


@app.post("/api/venue-votes", response_model=VenueVoteCounts, response_model_by_alias=True)
async def cast_venue_vote(vote: VoteRequest, vote_service: VoteService = Depends(get_vote_service)):
    """Cast, retract or switch an indoor/outdoor vote."""
    return await _cast(vote_service.cast_venue_vote, vote)


@app.get("/api/venue-votes", response_model=List[VoteRecord])
async def list_venue_votes(event_id: int = Query(..., gt=0), vote_service: VoteService = Depends(get_vote_service)):
    return await vote_service.list_venue_votes(event_id)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors as ``{"error": ...}``."""
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(error=str(exc.detail)).model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log unexpected failures and hide their details from clients."""
    logger.error(f"Error processing {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content=ErrorResponse(error="Internal server error").model_dump())
