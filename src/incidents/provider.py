"""Read-only incident source: fetches JSONPlaceholder posts/users and maps them to incidents.

The source has no notion of incidents, so every derived field (creation date,
status, priority, category, severity) is synthesized from a RNG seeded with the
source id. The same post therefore maps to the same incident on every refresh,
relative to the fetch time.
"""

import logging
import random
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

from src.config import get_settings
from src.incidents.models import (
    CATEGORIES,
    UNASSIGNED,
    IncidentPriority,
    IncidentRecord,
    IncidentStatus,
    SourcePost,
    SourceUser,
)

logger = logging.getLogger(__name__)

# Lorem Ipsum fragment -> English incident description
_PHRASE_TRANSLATIONS: tuple[tuple[str, str], ...] = (
    ("lorem ipsum dolor sit amet", "System performance issue reported"),
    ("consectetur adipiscing elit", "Database connectivity problem detected"),
    ("sed do eiusmod tempor incididunt", "Service timeout encountered"),
    ("ut labore et dolore magna aliqua", "Memory usage spike observed"),
    ("ut enim ad minim veniam", "API response time degraded"),
    ("quis nostrud exercitation", "Authentication service down"),
    ("ullamco laboris nisi ut aliquip", "Network latency increased"),
    ("ex ea commodo consequat", "CPU usage at critical level"),
    ("duis aute irure dolor", "Cache invalidation failed"),
    ("in reprehenderit in voluptate", "Database connection timeout"),
    ("velit esse cillum dolore", "Load balancer misconfigured"),
    ("eu fugiat nulla pariatur", "Certificate expiration warning"),
    ("excepteur sint occaecat cupidatat", "Disk space running low"),
    ("non proident sunt in culpa", "Email service unavailable"),
    ("qui officia deserunt mollit anim", "Backup job failed"),
    ("id est laborum", "Configuration sync failed"),
)

_PRIORITIES: tuple[IncidentPriority, ...] = tuple(IncidentPriority)

RESOLVED_PERCENT = 40
MAX_AGE_DAYS = 30


def translate_to_english(text: str) -> str:
    """Map placeholder Latin text to a readable incident phrase.

    First matching phrase wins; otherwise a generic description is chosen by
    text length.
    """
    if not text:
        return "No description"

    lower = text.lower()
    for phrase, translation in _PHRASE_TRANSLATIONS:
        if phrase in lower:
            return translation

    if len(text) < 50:
        return "System incident reported - requires investigation"
    if len(text) < 100:
        return "Technical issue detected - needs urgent attention"
    return "Critical system problem identified - immediate action required"


def map_post_to_incident(post: SourcePost, users: list[SourceUser], now: datetime) -> IncidentRecord:
    """Map one source post to an incident. Deterministic for a given post id and ``now``."""
    post_id = post.get("id", 0)
    rng = random.Random(post_id)

    created_at = now - timedelta(days=rng.randrange(MAX_AGE_DAYS))
    is_resolved = rng.randrange(100) >= 100 - RESOLVED_PERCENT
    priority = rng.choice(_PRIORITIES)
    category = rng.choice(CATEGORIES)
    severity = str(rng.randint(1, 4))
    resolved_at = min(created_at + timedelta(days=rng.randint(1, 6)), now) if is_resolved else None

    author = next((u for u in users if u.get("id") == post.get("userId")), None)
    assigned_to = (author or {}).get("name") or UNASSIGNED

    return IncidentRecord(
        id=f"INC{post_id:08d}",
        title=translate_to_english(post.get("title", "")),
        description=translate_to_english(post.get("body", "")),
        status=IncidentStatus.RESOLVED if is_resolved else IncidentStatus.OPEN,
        priority=priority,
        severity=severity,
        category=category,
        assigned_to=assigned_to,
        created_at=created_at,
        resolved_at=resolved_at,
    )


async def _source_get(
    client: httpx.AsyncClient,
    path: str,
    params: dict[str, str] | None = None,
) -> list[dict[str, Any]]:
    """Make a GET request to the incident source and return its JSON list."""
    url = f"{get_settings().incident_api_url}{path}"
    response = await client.get(url, params=params, headers={"Accept": "application/json"})
    _ = response.raise_for_status()
    data = response.json()  # pyright: ignore[reportAny]
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON list from {path}, got {type(data).__name__}")
    return data  # pyright: ignore[reportUnknownVariableType]


async def fetch_incidents() -> list[IncidentRecord]:
    """Fetch source posts and authors and map them to incidents.

    Raises on a failing posts listing (the cache treats that as a failed
    refresh). A failing users listing only costs the assignee names.
    """
    settings = get_settings()

    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        posts: list[SourcePost] = await _source_get(  # type: ignore[assignment]
            client, "/posts", {"_limit": str(settings.incident_fetch_limit)}
        )
        if not posts:
            logger.warning("Incident source returned no posts")
            return []

        try:
            users: list[SourceUser] = await _source_get(client, "/users")  # type: ignore[assignment]
        except (httpx.HTTPError, ValueError):
            logger.warning("Failed to fetch incident authors; incidents will be unassigned", exc_info=True)
            users = []

    now = datetime.now(UTC)
    incidents = [map_post_to_incident(post, users, now) for post in posts]
    logger.info("Mapped %d incidents from %s", len(incidents), settings.incident_api_url)
    return incidents
