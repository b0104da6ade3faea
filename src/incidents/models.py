"""Incident domain models and the raw source record shapes they are mapped from."""

from datetime import datetime
from enum import StrEnum
from typing import Self, TypedDict

from pydantic import BaseModel, model_validator


class IncidentStatus(StrEnum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    RESOLVED = "Resolved"


class IncidentPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[IncidentPriority, int] = {
    IncidentPriority.LOW: 0,
    IncidentPriority.MEDIUM: 1,
    IncidentPriority.HIGH: 2,
    IncidentPriority.CRITICAL: 3,
}

CATEGORIES: tuple[str, ...] = (
    "Network",
    "Database",
    "Application",
    "Server",
    "Security",
    "Performance",
    "Other",
)

UNASSIGNED = "Unassigned"


class IncidentRecord(BaseModel):
    """A single incident as served to the router, the tools and the API."""

    id: str
    title: str
    description: str
    status: IncidentStatus = IncidentStatus.OPEN
    priority: IncidentPriority = IncidentPriority.MEDIUM
    severity: str = "3"
    category: str = "Other"
    assigned_to: str = UNASSIGNED
    created_at: datetime
    resolved_at: datetime | None = None

    @model_validator(mode="after")
    def _check_resolution(self) -> Self:
        if (self.status == IncidentStatus.RESOLVED) != (self.resolved_at is not None):
            raise ValueError("resolved_at must be set if and only if status is Resolved")
        if self.resolved_at is not None and self.resolved_at < self.created_at:
            raise ValueError("resolved_at cannot be earlier than created_at")
        return self


class IncidentAnalytics(BaseModel):
    total_incidents: int = 0
    open_count: int = 0
    resolved_count: int = 0
    critical_count: int = 0
    high_count: int = 0
    average_resolution_hours: float = 0.0
    top_category: str = "N/A"
    top_category_count: int = 0


# --- Raw source records (JSONPlaceholder shapes) ---


class SourcePost(TypedDict, total=False):
    userId: int
    id: int
    title: str
    body: str


class SourceUser(TypedDict, total=False):
    id: int
    name: str
    email: str
    phone: str
