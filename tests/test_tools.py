"""Unit tests for the fallback agent's tools: incidents, calculator, clock and tasks."""

import re
from collections.abc import Generator
from datetime import timedelta
from unittest.mock import patch

import pytest
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import ToolException

from src.agent.tools.calculator import _format_number, calculate, math_calculate
from src.agent.tools.clock import time_day_of_week, time_days_between, time_now
from src.agent.tools.incidents import (
    incidents_analyze,
    incidents_get_details,
    incidents_list_open,
    incidents_list_resolved,
)
from src.agent.tools.tasks import TASK_STORE, tasks_complete, tasks_create, tasks_delete, tasks_list
from src.incidents.cache import IncidentCache
from src.incidents.models import IncidentRecord
from tests.factories import NOW

# ---------------------------------------------------------------------------
# Incident tools
# ---------------------------------------------------------------------------


@pytest.fixture
def patched_cache(sample_incidents: list[IncidentRecord]) -> Generator[IncidentCache]:
    async def fetcher() -> list[IncidentRecord]:
        return sample_incidents

    cache = IncidentCache(fetcher, ttl=timedelta(minutes=5), clock=lambda: NOW)
    with patch("src.agent.tools.incidents.get_incident_cache", return_value=cache):
        yield cache


@pytest.fixture
def empty_cache() -> Generator[IncidentCache]:
    async def fetcher() -> list[IncidentRecord]:
        return []

    cache = IncidentCache(fetcher, ttl=timedelta(minutes=5), clock=lambda: NOW)
    with patch("src.agent.tools.incidents.get_incident_cache", return_value=cache):
        yield cache


class TestIncidentTools:
    async def test_list_open(self, patched_cache: IncidentCache) -> None:
        result = await incidents_list_open.ainvoke({})

        assert result.startswith("Open incidents (4):")
        assert result.index("INC00000003") < result.index("INC00000001")
        assert "[P1] [INC00000003]" in result

    async def test_list_open_priority_filter(self, patched_cache: IncidentCache) -> None:
        result = await incidents_list_open.ainvoke({"priority": "High"})

        assert result.startswith("Open high priority incidents (1):")
        assert "INC00000004" in result

    async def test_list_open_unknown_priority(self, patched_cache: IncidentCache) -> None:
        with pytest.raises(ToolException, match="Unknown priority"):
            await incidents_list_open.coroutine(priority="urgent")  # type: ignore[misc]

    async def test_list_open_empty(self, empty_cache: IncidentCache) -> None:
        result = await incidents_list_open.ainvoke({})
        assert result == "Open incidents: No incidents found."

    async def test_list_resolved_count(self, patched_cache: IncidentCache) -> None:
        result = await incidents_list_resolved.ainvoke({"count": 1})

        assert result.startswith("Recently resolved incidents (1):")
        assert "INC00000006" in result
        assert "INC00000005" not in result

    async def test_get_details(self, patched_cache: IncidentCache) -> None:
        result = await incidents_get_details.ainvoke({"incident_id": " inc00000004 "})
        assert "ID: INC00000004" in result

    async def test_get_details_not_found(self, patched_cache: IncidentCache) -> None:
        with pytest.raises(ToolException, match="not found"):
            await incidents_get_details.coroutine(incident_id="INC00000099")  # type: ignore[misc]

    async def test_analyze(self, patched_cache: IncidentCache) -> None:
        result = await incidents_analyze.ainvoke({})
        assert "Total Incidents: 6" in result

    async def test_analyze_empty(self, empty_cache: IncidentCache) -> None:
        assert await incidents_analyze.ainvoke({}) == "No incidents to analyze."


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class TestCalculate:
    @pytest.mark.parametrize(
        ("operation", "a", "b", "expected"),
        [
            ("add", 2, 3, 5),
            ("subtract", 2, 3, -1),
            ("multiply", 4, 2.5, 10),
            ("divide", 9, 3, 3),
            ("percentage", 15, 200, 30),
            ("power", 2, 10, 1024),
            ("sqrt", 16, None, 4),
        ],
    )
    def test_operations(self, operation: str, a: float, b: float | None, expected: float) -> None:
        assert calculate(operation, a, b) == pytest.approx(expected)  # type: ignore[arg-type]

    def test_divide_by_zero(self) -> None:
        with pytest.raises(ToolException, match="divide by zero"):
            calculate("divide", 1, 0)

    def test_sqrt_negative(self) -> None:
        with pytest.raises(ToolException, match="negative"):
            calculate("sqrt", -4)

    def test_missing_second_operand(self) -> None:
        with pytest.raises(ToolException, match="needs two numbers"):
            calculate("add", 1)

    def test_power_overflow(self) -> None:
        with pytest.raises(ToolException, match="Cannot raise"):
            calculate("power", 10, 1000)

    def test_format_number(self) -> None:
        assert _format_number(5.0) == "5"
        assert _format_number(2.5) == "2.5"

    def test_tool_output(self) -> None:
        assert math_calculate.invoke({"operation": "add", "a": 2, "b": 3}) == "Result: 5"


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class TestClockTools:
    def test_time_now_utc(self) -> None:
        result = time_now.invoke({})
        assert re.fullmatch(r"Current time \(UTC\): \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", result)

    def test_time_now_timezone(self) -> None:
        assert time_now.invoke({"timezone": "Europe/London"}).startswith("Current time (Europe/London):")

    def test_time_now_unknown_timezone(self) -> None:
        with pytest.raises(ToolException, match="Unknown timezone"):
            time_now.func(timezone="Mars/Olympus")  # type: ignore[misc]

    def test_day_of_week(self) -> None:
        assert time_day_of_week.invoke({"date": "2025-06-16"}) == "2025-06-16 is a Monday."

    def test_day_of_week_invalid(self) -> None:
        with pytest.raises(ToolException, match="YYYY-MM-DD"):
            time_day_of_week.func(date="16/06/2025")  # type: ignore[misc]

    def test_days_between_is_absolute(self) -> None:
        result = time_days_between.invoke({"start_date": "2025-06-30", "end_date": "2025-06-01"})
        assert result == "There are 29 days between 2025-06-30 and 2025-06-01."


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def _config(session_id: str) -> RunnableConfig:
    return {"configurable": {"session_id": session_id}}


class TestTaskTools:
    def _create(self, session_id: str, description: str) -> str:
        result: str = tasks_create.invoke({"description": description}, config=_config(session_id))
        match = re.search(r"ID: (\w+)", result)
        assert match is not None
        return match.group(1)

    def test_create_and_list(self) -> None:
        self._create("tasks-a", "Renew certificate")

        result = tasks_list.invoke({}, config=_config("tasks-a"))

        assert result.startswith("Found 1 task(s):")
        assert "Renew certificate (medium)" in result

    def test_create_with_due_date(self) -> None:
        result = tasks_create.invoke(
            {"description": "Rotate keys", "due_date": "2025-07-01", "priority": "high"},
            config=_config("tasks-b"),
        )
        assert "(high, due 2025-07-01)" in result

    def test_invalid_due_date(self) -> None:
        with pytest.raises(ToolException, match="Invalid due date"):
            tasks_create.func(description="x", config=_config("tasks-c"), due_date="tomorrow")  # type: ignore[misc]

    def test_sessions_are_isolated(self) -> None:
        self._create("tasks-d", "Only for d")
        assert tasks_list.invoke({}, config=_config("tasks-e")) == "No tasks found."

    def test_complete_and_filter(self) -> None:
        task_id = self._create("tasks-f", "Check backups")
        self._create("tasks-f", "Review alerts")

        assert tasks_complete.invoke({"task_id": task_id}, config=_config("tasks-f")) == (
            f"Task '{task_id}' marked as completed."
        )
        completed = tasks_list.invoke({"filter": "completed"}, config=_config("tasks-f"))
        pending = tasks_list.invoke({"filter": "pending"}, config=_config("tasks-f"))

        assert "Check backups" in completed
        assert "Review alerts" not in completed
        assert "Review alerts" in pending

    def test_delete(self) -> None:
        task_id = self._create("tasks-g", "Temporary")

        assert tasks_delete.invoke({"task_id": task_id}, config=_config("tasks-g")) == f"Task '{task_id}' deleted."
        assert TASK_STORE.tasks("tasks-g") == []

    def test_unknown_task(self) -> None:
        with pytest.raises(ToolException, match="not found"):
            tasks_complete.func(task_id="nope", config=_config("tasks-h"))  # type: ignore[misc]

    def test_missing_session(self) -> None:
        with pytest.raises(ToolException, match="session"):
            tasks_list.func(config={})  # type: ignore[misc]
