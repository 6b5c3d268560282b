import logging
import random
import time
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictInt

from mnemos.application.clock import today, utc_now
from mnemos.application.queue_builder import plan_queue
from mnemos.application.scheduler import compute_next_review, estimate_intervals
from mnemos.application.stats import compute_retention, compute_stats
from mnemos.consts import VERSION
from mnemos.domain.errors import InvalidInput, MalformedState
from mnemos.domain.models import Card, SchedulingState, SessionSettings

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mnemos.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"mnemos server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("mnemos server shutting down...")


app = FastAPI(
    title="mnemos",
    description="Stateless SM-2 scheduling API. Cards and settings travel in each request.",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(MalformedState)
async def malformed_state_handler(request: Request, exc: MalformedState):
    return JSONResponse(status_code=422, content={"detail": str(exc), "card_id": exc.card_id})


def _state_from(record: dict[str, Any] | None, settings: SessionSettings) -> SchedulingState:
    if record is None:
        return SchedulingState.new(settings.starting_ease)
    return SchedulingState.from_record(record)


def _cards_from(
    records: list[dict[str, Any]], settings: SessionSettings | None = None
) -> list[Card]:
    starting_ease = (settings or SessionSettings()).starting_ease
    return [Card.from_record(record, starting_ease) for record in records]


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class QueueRequest(BaseModel):
    cards: list[dict[str, Any]]
    as_of: date | None = None
    settings: SessionSettings = Field(default_factory=SessionSettings)


class QueueResponse(BaseModel):
    queue: list[str]  # card ids in study order
    deferred_new: int
    deferred_reviews: int


@app.post("/queue", response_model=QueueResponse)
async def build_queue_endpoint(req: QueueRequest):
    cards = _cards_from(req.cards, req.settings)
    result = plan_queue(cards, req.as_of or today(), req.settings)
    return QueueResponse(
        queue=[c.id for c in result.queue],
        deferred_new=result.deferred_new,
        deferred_reviews=result.deferred_reviews,
    )


class ReviewRequest(BaseModel):
    # Omitted for a card that has never been reviewed
    scheduling: dict[str, Any] | None = None
    # Range is checked by the engine so out-of-range ratings map to 400
    quality: StrictInt
    settings: SessionSettings = Field(default_factory=SessionSettings)
    now: datetime | None = None
    fuzz: bool = True
    seed: int | None = None


@app.post("/review", response_model=SchedulingState)
async def review_endpoint(req: ReviewRequest):
    rng = random.Random(req.seed) if req.fuzz else None
    state = _state_from(req.scheduling, req.settings)
    return compute_next_review(state, req.quality, req.settings, req.now or utc_now(), rng)


class EstimateRequest(BaseModel):
    scheduling: dict[str, Any] | None = None
    settings: SessionSettings = Field(default_factory=SessionSettings)
    now: datetime | None = None


@app.post("/estimates")
async def estimates_endpoint(req: EstimateRequest) -> dict[str, str]:
    state = _state_from(req.scheduling, req.settings)
    estimates = estimate_intervals(state, req.settings, req.now or utc_now())
    return {q.name.lower(): label for q, label in estimates.items()}


class StatsRequest(BaseModel):
    cards: list[dict[str, Any]]
    as_of: date | None = None


@app.post("/stats")
async def stats_endpoint(req: StatsRequest):
    cards = _cards_from(req.cards)
    snapshot = compute_stats(cards, req.as_of or today())
    return {**snapshot.to_record(), "retention": compute_retention(cards)}
