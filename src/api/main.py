"""FastAPI backend for the incident assistant.

The chat service (direct router + fallback agent) is built once at startup and
shared across requests.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from uuid import uuid4

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from src.agent.agent import build_agent
from src.chat import ChatService
from src.config import get_settings
from src.incidents.cache import get_incident_cache
from src.incidents.models import IncidentRecord
from src.observability.metrics import (
    APP_INFO,
    COMPONENT_HEALTHY,
    REQUEST_DURATION,
    REQUESTS_IN_PROGRESS,
    REQUESTS_TOTAL,
)
from src.router.direct import DirectActionRouter

logger = logging.getLogger(__name__)

CHAT_ENDPOINT = "/api/chat"


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Request body for POST /api/chat."""

    message: str
    session_id: str | None = None


class ChatResponse(BaseModel):
    """Response body for POST /api/chat."""

    message: str
    session_id: str
    tools_used: list[str]
    next_actions: list[str] | None = None
    incidents: list[IncidentRecord] | None = None
    timestamp: datetime


class ClearSessionResponse(BaseModel):
    message: str


class ComponentHealth(BaseModel):
    """Health status of a single dependency."""

    name: str
    status: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Response body for GET /api/chat/health."""

    status: str
    model: str
    components: list[ComponentHealth]
    timestamp: datetime


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the chat service once at startup."""
    settings = get_settings()
    APP_INFO.info({"version": "0.1.0", "model": settings.active_model})

    logger.info("Building incident assistant...")
    try:
        agent = build_agent()
        app.state.chat = ChatService(DirectActionRouter(get_incident_cache()), agent)
        logger.info("Incident assistant ready; direct incident actions need no LLM")
    except Exception:
        logger.exception("Failed to build chat service at startup")
        raise

    yield
    logger.info("Shutting down incident assistant")


app = FastAPI(title="Incident Management Assistant", lifespan=lifespan)


def _chat_service(request: Request) -> ChatService:
    service: ChatService = request.app.state.chat
    return service


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post(CHAT_ENDPOINT, response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request) -> ChatResponse:
    """Send a message to the assistant. Incident requests are answered directly, the rest by the LLM."""
    if not body.message.strip():
        REQUESTS_TOTAL.labels(endpoint=CHAT_ENDPOINT, status="rejected").inc()
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    session_id = body.session_id or str(uuid4())
    logger.info("Chat request - Session: %s, Message: %s", session_id, body.message)

    REQUESTS_IN_PROGRESS.labels(endpoint=CHAT_ENDPOINT).inc()
    start = time.monotonic()
    try:
        reply = await _chat_service(request).handle(session_id, body.message)
    except Exception as exc:
        REQUESTS_TOTAL.labels(endpoint=CHAT_ENDPOINT, status="error").inc()
        REQUEST_DURATION.labels(endpoint=CHAT_ENDPOINT).observe(time.monotonic() - start)
        logger.exception("Chat handling failed")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    finally:
        REQUESTS_IN_PROGRESS.labels(endpoint=CHAT_ENDPOINT).dec()

    REQUEST_DURATION.labels(endpoint=CHAT_ENDPOINT).observe(time.monotonic() - start)
    REQUESTS_TOTAL.labels(endpoint=CHAT_ENDPOINT, status="success").inc()

    return ChatResponse(
        message=reply.message,
        session_id=session_id,
        tools_used=reply.tools_used,
        next_actions=reply.next_actions,
        incidents=reply.incidents,
        timestamp=datetime.now(UTC),
    )


@app.delete(f"{CHAT_ENDPOINT}/{{session_id}}", response_model=ClearSessionResponse)
async def clear_session(session_id: str, request: Request) -> ClearSessionResponse:
    """Discard the conversation history of a session."""
    _chat_service(request).clear_session(session_id)
    return ClearSessionResponse(message="Session cleared successfully")


@app.get(f"{CHAT_ENDPOINT}/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Check health of the assistant and its incident source."""
    settings = get_settings()
    components: list[ComponentHealth] = []

    # --- Incident source ---
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            resp = await client.get(f"{settings.incident_api_url}/posts", params={"_limit": "1"})
            if resp.status_code == 200:
                components.append(ComponentHealth(name="incident_api", status="healthy"))
            else:
                components.append(
                    ComponentHealth(name="incident_api", status="unhealthy", detail=f"HTTP {resp.status_code}")
                )
    except Exception as exc:
        components.append(ComponentHealth(name="incident_api", status="unhealthy", detail=str(exc)))

    # --- Incident cache ---
    snapshot = get_incident_cache().snapshot
    if snapshot.records:
        components.append(
            ComponentHealth(
                name="incident_cache",
                status="healthy",
                detail=f"{len(snapshot.records)} incidents fetched at {snapshot.fetched_at.isoformat()}",
            )
        )
    else:
        # Populated lazily on the first incident request
        components.append(ComponentHealth(name="incident_cache", status="healthy", detail="empty"))

    for comp in components:
        COMPONENT_HEALTHY.labels(component=comp.name).set(1.0 if comp.status == "healthy" else 0.0)

    healthy_count = sum(1 for c in components if c.status == "healthy")
    if healthy_count == len(components):
        overall = "healthy"
    elif healthy_count == 0:
        overall = "unhealthy"
    else:
        overall = "degraded"

    return HealthResponse(
        status=overall,
        model=settings.active_model,
        components=components,
        timestamp=datetime.now(UTC),
    )
