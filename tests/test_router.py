"""Unit tests for the direct intent router: route order, handlers, formatting and error boundary."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.incidents.cache import IncidentCache
from src.incidents.models import IncidentPriority, IncidentRecord, IncidentStatus
from src.router.direct import (
    ROUTES,
    DirectActionRouter,
    Intent,
    format_analytics,
    format_incident_details,
    suggest_next_actions,
)
from tests.factories import NOW, make_incident


def _static_cache(incidents: list[IncidentRecord]) -> IncidentCache:
    async def fetcher() -> list[IncidentRecord]:
        return incidents

    return IncidentCache(fetcher, ttl=timedelta(minutes=5), clock=lambda: NOW)


def _failing_cache() -> IncidentCache:
    cache = _static_cache([])
    cache.get_all = AsyncMock(side_effect=RuntimeError("boom"))  # type: ignore[method-assign]
    return cache


@pytest.fixture
def router(sample_incidents: list[IncidentRecord]) -> DirectActionRouter:
    return DirectActionRouter(_static_cache(sample_incidents))


class TestRouteTable:
    def test_route_order(self) -> None:
        assert [r.intent for r in ROUTES] == [
            Intent.LIST_OPEN,
            Intent.LIST_CRITICAL,
            Intent.LIST_HIGH_PRIORITY,
            Intent.LIST_RESOLVED,
            Intent.COUNT,
            Intent.DETAILS,
            Intent.UPDATE_STATUS,
            Intent.RESOLVE,
            Intent.ASSIGN,
            Intent.ANALYZE,
            Intent.CREATE,
        ]

    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Show open incidents", Intent.LIST_OPEN),
            ("list open", Intent.LIST_OPEN),
            ("Any urgent problems?", Intent.LIST_CRITICAL),
            ("show critical incidents", Intent.LIST_CRITICAL),
            # "high priority incident" is claimed by the critical route first
            ("show high priority incidents", Intent.LIST_CRITICAL),
            ("list incidents with high priority", Intent.LIST_HIGH_PRIORITY),
            ("show resolved incidents", Intent.LIST_RESOLVED),
            ("closed incidents please", Intent.LIST_RESOLVED),
            ("How many incidents are there?", Intent.COUNT),
            ("incident summary", Intent.COUNT),
            ("Show details for incident INC00000002", Intent.DETAILS),
            ("update incident INC00000001 status to in progress", Intent.UPDATE_STATUS),
            ("Resolve incident INC00000001", Intent.RESOLVE),
            ("Assign incident INC001234 to Jane Doe", Intent.ASSIGN),
            ("analyze incidents", Intent.ANALYZE),
            ("Create incident: Database connection timeout", Intent.CREATE),
            ("What's the weather in Paris?", Intent.NO_MATCH),
            ("hello there", Intent.NO_MATCH),
        ],
    )
    def test_classify(self, router: DirectActionRouter, message: str, expected: Intent) -> None:
        assert router.classify(message) == expected

    def test_details_needs_incident_id(self, router: DirectActionRouter) -> None:
        assert router.classify("show incident details") != Intent.DETAILS

    def test_classification_trims_and_lowercases(self, router: DirectActionRouter) -> None:
        assert router.classify("   SHOW OPEN INCIDENTS   ") == Intent.LIST_OPEN


class TestResolve:
    async def test_no_match_returns_none(self, router: DirectActionRouter) -> None:
        assert await router.resolve("s1", "What's the weather in Paris?") is None

    async def test_list_open(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "Show open incidents")

        assert response is not None
        assert response.intent == Intent.LIST_OPEN
        assert response.tool == "Incidents"
        assert response.text == "Found 4 open incidents. Click on any to view details."
        assert response.incidents is not None
        assert [i.id for i in response.incidents] == ["INC00000003", "INC00000002", "INC00000004", "INC00000001"]
        assert response.next_actions == ["View critical incidents", "Show resolved incidents", "Analyze incidents"]

    async def test_list_open_filters_priority(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "show open incidents with low priority")

        assert response is not None
        assert response.incidents is not None
        assert [i.id for i in response.incidents] == ["INC00000001"]

    async def test_list_critical(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "critical")

        assert response is not None
        assert response.text.startswith("Found 2 critical incidents")
        assert response.next_actions == ["Assign incident", "View high priority", "Analyze incidents"]

    async def test_list_high_priority(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "list incidents with high priority")

        assert response is not None
        assert response.text.startswith("Found 2 high priority incidents")

    async def test_list_resolved_respects_count(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "show 1 resolved incidents")

        assert response is not None
        assert response.incidents is not None
        assert [i.id for i in response.incidents] == ["INC00000006"]
        assert response.text == "Found 1 resolved incidents. Click on any to view details."

    async def test_list_resolved_huge_count_is_clamped(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "show " + "9" * 5000 + " resolved incidents")

        assert response is not None
        assert response.incidents is not None
        assert [i.id for i in response.incidents] == ["INC00000006", "INC00000005"]

    async def test_count(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "how many incidents are open?")

        assert response is not None
        assert response.intent == Intent.COUNT
        assert response.text == "Incident Summary:\nTotal incidents: 6\nOpen: 4\nResolved: 2"
        assert response.incidents is None

    async def test_details(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "show incident inc00000002 details")

        assert response is not None
        assert response.intent == Intent.DETAILS
        assert "ID: INC00000002" in response.text
        assert "Not yet resolved" in response.text
        assert response.incidents is not None
        assert len(response.incidents) == 1
        assert response.next_actions == [
            "Assign incident to team member",
            "Update status to In Progress",
            "Escalate to management",
            "Notify assignee",
        ]

    async def test_details_not_found(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "show incident INC99999999 details")

        assert response is not None
        assert response.text == "Incident 'INC99999999' not found."
        assert response.next_actions == ["Show open incidents"]

    async def test_update_status(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "update incident INC00000001 status to on hold")

        assert response is not None
        assert response.text.startswith("Incident status update request sent for INC00000001 to On Hold.")
        assert "read-only" in response.text

    async def test_update_status_asks_for_details(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "update incident status")

        assert response is not None
        assert response.text.startswith("Please provide incident ID and new status")
        assert response.next_actions == ["Show open incidents"]

    async def test_resolve_acknowledges_without_mutation(
        self, router: DirectActionRouter, sample_incidents: list[IncidentRecord]
    ) -> None:
        response = await router.resolve("s1", "Resolve incident INC00000001")

        assert response is not None
        assert response.text.startswith("Incident INC00000001 resolve request sent.")
        assert sample_incidents[0].status == IncidentStatus.OPEN

    async def test_resolve_without_id(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "close the incident")

        assert response is not None
        assert response.intent == Intent.RESOLVE
        assert response.text.startswith("Please provide incident ID to resolve.")

    async def test_assign(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "Assign incident INC001234 to Jane Doe")

        assert response is not None
        assert response.text.startswith("Incident INC001234 assignment request to Jane Doe sent.")
        assert response.next_actions == ["Get incident details", "Update status", "View open incidents"]

    async def test_assign_missing_assignee(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "assign incident INC001234")

        assert response is not None
        assert response.text.startswith("Please provide incident ID and assignee.")

    async def test_analyze(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "analyze incidents")

        assert response is not None
        assert response.text.startswith("Incident Analytics:\nTotal Incidents: 6")
        assert "Avg Resolution Time: 20.0 hours" in response.text
        assert "Top Category: Network (4 incidents)" in response.text

    async def test_create(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "Create incident: Database connection timeout")

        assert response is not None
        assert response.text.startswith("Incident creation request submitted: 'Database connection timeout'")

    async def test_create_without_title(self, router: DirectActionRouter) -> None:
        response = await router.resolve("s1", "add incident")

        assert response is not None
        assert response.text.startswith("Please provide incident title.")


class TestErrorBoundary:
    @pytest.mark.parametrize(
        ("message", "error_text"),
        [
            ("show open incidents", "Error fetching incidents from API. Please try again."),
            ("critical", "Error fetching critical incidents from API."),
            ("show resolved incidents", "Error fetching resolved incidents from API."),
            ("incident count", "Error fetching incident count from API."),
            ("show incident INC00000001 details", "Error fetching incident details from API."),
            ("analyze incidents", "Error analyzing incidents from API."),
        ],
    )
    async def test_handler_failure_becomes_error_reply(self, message: str, error_text: str) -> None:
        router = DirectActionRouter(_failing_cache())

        response = await router.resolve("s1", message)

        assert response is not None
        assert response.text == error_text
        assert response.next_actions == ["Show open incidents"]
        assert response.incidents is None

    async def test_empty_source_lists_nothing(self) -> None:
        router = DirectActionRouter(_static_cache([]))

        response = await router.resolve("s1", "show open incidents")

        assert response is not None
        assert response.text == "Found 0 open incidents. Click on any to view details."


class TestSuggestNextActions:
    def test_in_progress(self) -> None:
        incident = make_incident(1, priority=IncidentPriority.HIGH).model_copy(
            update={"status": IncidentStatus.IN_PROGRESS}
        )
        assert suggest_next_actions(incident) == [
            "Mark as On Hold",
            "Mark as Resolved",
            "Notify assignee",
            "Find similar incidents",
        ]

    def test_on_hold_low(self) -> None:
        incident = make_incident(1, priority=IncidentPriority.LOW).model_copy(update={"status": IncidentStatus.ON_HOLD})
        assert suggest_next_actions(incident) == [
            "Resume incident",
            "Change assignment",
            "Find similar incidents",
            "Back to incident list",
        ]

    def test_resolved_high(self) -> None:
        incident = make_incident(1, status=IncidentStatus.RESOLVED, priority=IncidentPriority.HIGH)
        assert suggest_next_actions(incident) == [
            "View resolution details",
            "Find similar resolved incidents",
            "Notify assignee",
            "Find similar incidents",
        ]

    def test_never_more_than_four(self) -> None:
        for status in IncidentStatus:
            for priority in IncidentPriority:
                incident = make_incident(1, status=status, priority=priority)
                assert len(suggest_next_actions(incident)) <= 4


class TestFormatting:
    def test_details_resolved(self) -> None:
        incident = make_incident(5, status=IncidentStatus.RESOLVED, age_days=2, resolved_after_hours=6)
        text = format_incident_details(incident)

        assert text.startswith("Incident Details:\nID: INC00000005")
        assert "Assigned To: Leanne Graham" in text
        assert "Resolved: 2025-06-13 18:00" in text

    def test_analytics(self, sample_incidents: list[IncidentRecord]) -> None:
        from src.incidents.cache import summarize

        text = format_analytics(summarize(sample_incidents))
        assert "Critical Priority: 2" in text
        assert "High Priority: 2" in text
