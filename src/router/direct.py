"""Direct intent router: answers incident requests without the LLM.

A message is matched against ``ROUTES`` in order and the first route whose
predicate holds handles it. The order is significant: several predicates
overlap ("critical" vs. "high priority incident", "show" in the details route
vs. "show open" in the listing route), so narrower routes sit above broader
ones. Unmatched messages return ``None`` and go to the conversational fallback.

Mutating intents (status update, resolve, assign, create) only acknowledge the
request because the incident source is read-only.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel

from src.incidents.cache import IncidentCache
from src.incidents.models import IncidentAnalytics, IncidentPriority, IncidentRecord, IncidentStatus
from src.router.extract import (
    extract_assignee,
    extract_bounded_count,
    extract_incident_id,
    extract_priority,
    extract_status,
    extract_title,
)

logger = logging.getLogger(__name__)

INCIDENT_TOOL = "Incidents"
DEFAULT_RESOLVED_COUNT = 10
MAX_NEXT_ACTIONS = 4
ERROR_NEXT_ACTIONS: tuple[str, ...] = ("Show open incidents",)


class Intent(StrEnum):
    LIST_OPEN = "ListOpen"
    LIST_CRITICAL = "ListCritical"
    LIST_HIGH_PRIORITY = "ListHighPriority"
    LIST_RESOLVED = "ListResolved"
    COUNT = "Count"
    DETAILS = "Details"
    UPDATE_STATUS = "UpdateStatus"
    RESOLVE = "Resolve"
    ASSIGN = "Assign"
    ANALYZE = "Analyze"
    CREATE = "Create"
    NO_MATCH = "NoMatch"


class DirectResponse(BaseModel):
    """A reply produced without the LLM."""

    intent: Intent
    text: str
    tool: str = INCIDENT_TOOL
    next_actions: list[str]
    incidents: list[IncidentRecord] | None = None


type RouteHandler = Callable[[IncidentCache, str], Awaitable[DirectResponse]]


@dataclass(frozen=True)
class IntentRoute:
    intent: Intent
    matches: Callable[[str], bool]  # receives the lower-cased, trimmed message
    handle: RouteHandler  # receives the original message
    error_text: str


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def _reply(
    intent: Intent,
    text: str,
    next_actions: list[str],
    incidents: list[IncidentRecord] | None = None,
) -> DirectResponse:
    return DirectResponse(intent=intent, text=text, next_actions=next_actions, incidents=incidents)


def format_incident_details(incident: IncidentRecord) -> str:
    resolved = (
        f"Resolved: {incident.resolved_at:%Y-%m-%d %H:%M}" if incident.resolved_at is not None else "Not yet resolved"
    )
    return (
        "Incident Details:\n"
        f"ID: {incident.id}\n"
        f"Title: {incident.title}\n"
        f"Description: {incident.description}\n"
        f"Status: {incident.status}\n"
        f"Priority: {incident.priority}\n"
        f"Severity: {incident.severity}\n"
        f"Category: {incident.category}\n"
        f"Assigned To: {incident.assigned_to}\n"
        f"Created: {incident.created_at:%Y-%m-%d %H:%M}\n"
        f"{resolved}"
    )


def format_analytics(analytics: IncidentAnalytics) -> str:
    return (
        "Incident Analytics:\n"
        f"Total Incidents: {analytics.total_incidents}\n"
        f"Open: {analytics.open_count}\n"
        f"Resolved: {analytics.resolved_count}\n"
        f"Critical Priority: {analytics.critical_count}\n"
        f"High Priority: {analytics.high_count}\n"
        f"Avg Resolution Time: {analytics.average_resolution_hours:.1f} hours\n"
        f"Top Category: {analytics.top_category} ({analytics.top_category_count} incidents)"
    )


def suggest_next_actions(incident: IncidentRecord) -> list[str]:
    """Follow-up suggestions for a single incident, derived from its status and priority."""
    actions: list[str] = []

    match incident.status:
        case IncidentStatus.OPEN:
            actions += ["Assign incident to team member", "Update status to In Progress"]
            if incident.priority == IncidentPriority.CRITICAL:
                actions.append("Escalate to management")
        case IncidentStatus.IN_PROGRESS:
            actions += ["Mark as On Hold", "Mark as Resolved", "Notify assignee"]
        case IncidentStatus.ON_HOLD:
            actions += ["Resume incident", "Change assignment"]
        case IncidentStatus.RESOLVED:
            actions += ["View resolution details", "Find similar resolved incidents"]

    if incident.priority in (IncidentPriority.CRITICAL, IncidentPriority.HIGH) and "Notify assignee" not in actions:
        actions.append("Notify assignee")
    actions.append("Find similar incidents")
    actions.append("Back to incident list")

    return actions[:MAX_NEXT_ACTIONS]


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _list_open(cache: IncidentCache, message: str) -> DirectResponse:
    priority = extract_priority(message)
    incidents = await cache.get_open()
    if priority != "all":
        incidents = [i for i in incidents if i.priority.value == priority]
    return _reply(
        Intent.LIST_OPEN,
        f"Found {len(incidents)} open incidents. Click on any to view details.",
        ["View critical incidents", "Show resolved incidents", "Analyze incidents"],
        incidents,
    )


async def _list_critical(cache: IncidentCache, message: str) -> DirectResponse:
    incidents = await cache.get_by_priority(IncidentPriority.CRITICAL)
    return _reply(
        Intent.LIST_CRITICAL,
        f"Found {len(incidents)} critical incidents. Click on any to view details.",
        ["Assign incident", "View high priority", "Analyze incidents"],
        incidents,
    )


async def _list_high_priority(cache: IncidentCache, message: str) -> DirectResponse:
    incidents = await cache.get_by_priority(IncidentPriority.HIGH)
    return _reply(
        Intent.LIST_HIGH_PRIORITY,
        f"Found {len(incidents)} high priority incidents. Click on any to view details.",
        ["View critical incidents", "Assign incident", "Update status"],
        incidents,
    )


async def _list_resolved(cache: IncidentCache, message: str) -> DirectResponse:
    count = extract_bounded_count(message, DEFAULT_RESOLVED_COUNT)
    incidents = (await cache.get_resolved())[:count]
    return _reply(
        Intent.LIST_RESOLVED,
        f"Found {len(incidents)} resolved incidents. Click on any to view details.",
        ["View open incidents", "Analyze incidents", "Get incident count"],
        incidents,
    )


async def _count(cache: IncidentCache, message: str) -> DirectResponse:
    analytics = await cache.analyze()
    text = (
        "Incident Summary:\n"
        f"Total incidents: {analytics.total_incidents}\n"
        f"Open: {analytics.open_count}\n"
        f"Resolved: {analytics.resolved_count}"
    )
    return _reply(Intent.COUNT, text, ["Show open incidents", "Show resolved incidents", "Analyze incidents"])


async def _details(cache: IncidentCache, message: str) -> DirectResponse:
    incident_id = extract_incident_id(message) or ""
    logger.info("Getting incident details for: %s", incident_id)
    incident = await cache.get_by_id(incident_id)
    if incident is None:
        return _reply(Intent.DETAILS, f"Incident '{incident_id}' not found.", list(ERROR_NEXT_ACTIONS))
    return _reply(Intent.DETAILS, format_incident_details(incident), suggest_next_actions(incident), [incident])


async def _update_status(cache: IncidentCache, message: str) -> DirectResponse:
    incident_id = extract_incident_id(message)
    new_status = extract_status(message)
    if not incident_id or new_status is None:
        return _reply(
            Intent.UPDATE_STATUS,
            "Please provide incident ID and new status (Open, In Progress, On Hold, or Resolved).",
            list(ERROR_NEXT_ACTIONS),
        )

    logger.info("Updating incident %s to status %s", incident_id, new_status)
    text = (
        f"Incident status update request sent for {incident_id} to {new_status}.\n"
        "(Status updates are read-only from external API)"
    )
    return _reply(Intent.UPDATE_STATUS, text, ["Get incident details", "View updated list", "Analyze incidents"])


async def _resolve(cache: IncidentCache, message: str) -> DirectResponse:
    incident_id = extract_incident_id(message)
    if not incident_id:
        return _reply(
            Intent.RESOLVE,
            "Please provide incident ID to resolve. Example: 'Resolve incident INC001234'",
            list(ERROR_NEXT_ACTIONS),
        )

    logger.info("Resolving incident: %s", incident_id)
    text = f"Incident {incident_id} resolve request sent.\n(Operations are read-only from external API)"
    return _reply(Intent.RESOLVE, text, ["View resolved incidents", "Show open incidents", "Analyze incidents"])


async def _assign(cache: IncidentCache, message: str) -> DirectResponse:
    incident_id = extract_incident_id(message)
    assignee = extract_assignee(message)
    if not incident_id or not assignee:
        return _reply(
            Intent.ASSIGN,
            "Please provide incident ID and assignee. Example: 'Assign incident INC001234 to John Doe'",
            list(ERROR_NEXT_ACTIONS),
        )

    logger.info("Assigning incident %s to %s", incident_id, assignee)
    text = (
        f"Incident {incident_id} assignment request to {assignee} sent.\n"
        "(Assignment operations are read-only from external API)"
    )
    return _reply(Intent.ASSIGN, text, ["Get incident details", "Update status", "View open incidents"])


async def _analyze(cache: IncidentCache, message: str) -> DirectResponse:
    analytics = await cache.analyze()
    return _reply(
        Intent.ANALYZE,
        format_analytics(analytics),
        ["View open incidents", "Show resolved incidents", "Create new incident"],
    )


async def _create(cache: IncidentCache, message: str) -> DirectResponse:
    title = extract_title(message)
    if not title:
        return _reply(
            Intent.CREATE,
            "Please provide incident title. Example: 'Create incident: Database connection timeout'",
            list(ERROR_NEXT_ACTIONS),
        )

    logger.info("Creating new incident: %s", title)
    text = (
        f"Incident creation request submitted: '{title}'\n"
        "(Incidents can only be viewed from external API in this agent)\n"
        "Use 'Show open incidents' to see all current incidents."
    )
    return _reply(Intent.CREATE, text, ["View open incidents", "Assign incident", "Analyze incidents"])


# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------


def _any(*phrases: str) -> Callable[[str], bool]:
    return lambda text: any(p in text for p in phrases)


ROUTES: tuple[IntentRoute, ...] = (
    IntentRoute(
        Intent.LIST_OPEN,
        _any("open incident", "show open", "list open", "get open"),
        _list_open,
        "Error fetching incidents from API. Please try again.",
    ),
    IntentRoute(
        Intent.LIST_CRITICAL,
        _any("critical incident", "critical", "urgent", "high priority incident"),
        _list_critical,
        "Error fetching critical incidents from API.",
    ),
    IntentRoute(
        Intent.LIST_HIGH_PRIORITY,
        lambda t: "high priority" in t and "incident" in t,
        _list_high_priority,
        "Error fetching high priority incidents from API.",
    ),
    IntentRoute(
        Intent.LIST_RESOLVED,
        _any("resolved incident", "closed incident", "completed incident"),
        _list_resolved,
        "Error fetching resolved incidents from API.",
    ),
    IntentRoute(
        Intent.COUNT,
        _any("total incident", "incident count", "how many incident", "incident summary"),
        _count,
        "Error fetching incident count from API.",
    ),
    IntentRoute(
        Intent.DETAILS,
        lambda t: "incident" in t and _any("detail", "info", "show")(t) and extract_incident_id(t) is not None,
        _details,
        "Error fetching incident details from API.",
    ),
    IntentRoute(
        Intent.UPDATE_STATUS,
        lambda t: _any("update", "change", "set")(t) and "incident" in t and "status" in t,
        _update_status,
        "Error updating incident status.",
    ),
    IntentRoute(
        Intent.RESOLVE,
        lambda t: _any("resolve", "close", "mark as resolved")(t) and "incident" in t,
        _resolve,
        "Error resolving incident.",
    ),
    IntentRoute(
        Intent.ASSIGN,
        lambda t: "assign" in t and "incident" in t,
        _assign,
        "Error assigning incident.",
    ),
    IntentRoute(
        Intent.ANALYZE,
        lambda t: _any("analyze", "analysis", "incident metrics", "incident trend")(t) and "incident" in t,
        _analyze,
        "Error analyzing incidents from API.",
    ),
    IntentRoute(
        Intent.CREATE,
        lambda t: _any("create", "add", "new")(t) and "incident" in t,
        _create,
        "Error creating incident.",
    ),
)


class DirectActionRouter:
    """Resolves a message to a direct response, or ``None`` when no intent matches."""

    def __init__(self, cache: IncidentCache, routes: tuple[IntentRoute, ...] = ROUTES) -> None:
        self._cache = cache
        self._routes = routes

    def match(self, message: str) -> IntentRoute | None:
        text = message.lower().strip()
        return next((r for r in self._routes if r.matches(text)), None)

    def classify(self, message: str) -> Intent:
        route = self.match(message)
        return route.intent if route else Intent.NO_MATCH

    async def resolve(self, session_id: str, message: str) -> DirectResponse | None:
        logger.info("Processing incident message for session %s: %s", session_id, message)

        route = self.match(message)
        if route is None:
            logger.info("No direct incident action match for: %s", message)
            return None

        try:
            return await route.handle(self._cache, message)
        except Exception:
            logger.exception("Direct action %s failed", route.intent)
            return _reply(route.intent, route.error_text, list(ERROR_NEXT_ACTIONS))
