"""LangChain tools for querying incidents from the shared incident cache."""

import logging

from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

from src.incidents.cache import get_incident_cache
from src.incidents.models import IncidentPriority, IncidentRecord
from src.router.direct import format_analytics, format_incident_details

logger = logging.getLogger(__name__)

_PRIORITY_ICONS: dict[IncidentPriority, str] = {
    IncidentPriority.CRITICAL: "[P1]",
    IncidentPriority.HIGH: "[P2]",
    IncidentPriority.MEDIUM: "[P3]",
    IncidentPriority.LOW: "[P4]",
}


# --- Input schemas ---


class ListOpenInput(BaseModel):
    """Input for listing open incidents."""

    priority: str = Field(
        default="all",
        description="Filter by priority: 'all', 'critical', 'high', 'medium' or 'low'.",
    )


class ListResolvedInput(BaseModel):
    """Input for listing recently resolved incidents."""

    count: int = Field(default=10, description="Number of recent incidents to show", ge=1, le=50)


class GetDetailsInput(BaseModel):
    """Input for fetching one incident."""

    incident_id: str = Field(..., description="The incident ID, e.g. 'INC00000012'")


class AnalyzeInput(BaseModel):
    """Input for incident analytics."""

    # No required fields; analyzes every cached incident
    pass


# --- Result formatting ---


def _format_incident_list(incidents: list[IncidentRecord], title: str) -> str:
    if not incidents:
        return f"{title}: No incidents found."

    lines: list[str] = [f"{title} ({len(incidents)}):\n"]
    for incident in incidents:
        icon = _PRIORITY_ICONS.get(incident.priority, "")
        lines.append(f"- {icon} [{incident.id}] {incident.title} ({incident.status})")
        lines.append(f"  Assigned: {incident.assigned_to}")
        lines.append(f"  Category: {incident.category}")
    return "\n".join(lines)


# --- Tools ---


@tool("incidents_list_open", args_schema=ListOpenInput)
async def incidents_list_open(priority: str = "all") -> str:
    """List open incidents, most urgent and oldest first, optionally filtered by priority."""
    logger.info("Listing open incidents (priority=%s)", priority)

    wanted = priority.lower()
    if wanted != "all" and wanted not in {p.value for p in IncidentPriority}:
        raise ToolException(f"Unknown priority '{priority}'. Use all, critical, high, medium or low.")

    incidents = await get_incident_cache().get_open()
    if wanted != "all":
        incidents = [i for i in incidents if i.priority.value == wanted]
        return _format_incident_list(incidents, f"Open {wanted} priority incidents")
    return _format_incident_list(incidents, "Open incidents")


incidents_list_open.handle_tool_error = True


@tool("incidents_list_resolved", args_schema=ListResolvedInput)
async def incidents_list_resolved(count: int = 10) -> str:
    """List the most recently resolved incidents."""
    logger.info("Listing %d resolved incidents", count)
    incidents = (await get_incident_cache().get_resolved())[:count]
    return _format_incident_list(incidents, "Recently resolved incidents")


incidents_list_resolved.handle_tool_error = True


@tool("incidents_get_details", args_schema=GetDetailsInput)
async def incidents_get_details(incident_id: str) -> str:
    """Get full details of a single incident by its ID."""
    logger.info("Getting details for incident %s", incident_id)
    incident = await get_incident_cache().get_by_id(incident_id.strip())
    if incident is None:
        raise ToolException(f"Incident '{incident_id}' not found.")
    return format_incident_details(incident)


incidents_get_details.handle_tool_error = True


@tool("incidents_analyze", args_schema=AnalyzeInput)
async def incidents_analyze() -> str:
    """Summarize incident metrics: counts by status and priority, resolution time, top category."""
    logger.info("Analyzing incidents")
    analytics = await get_incident_cache().analyze()
    if analytics.total_incidents == 0:
        return "No incidents to analyze."
    return format_analytics(analytics)


incidents_analyze.handle_tool_error = True
