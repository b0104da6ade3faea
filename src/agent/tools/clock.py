"""LangChain tools for the current time and simple date arithmetic."""

import logging
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TimeNowInput(BaseModel):
    timezone: str | None = Field(
        default=None,
        description="IANA timezone name such as 'Europe/London' or 'America/New_York'. Omit for UTC.",
    )


class DayOfWeekInput(BaseModel):
    date: str | None = Field(default=None, description="Date in YYYY-MM-DD format. Omit for today.")


class DaysBetweenInput(BaseModel):
    start_date: str = Field(..., description="Start date in YYYY-MM-DD format")
    end_date: str = Field(..., description="End date in YYYY-MM-DD format")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise ToolException(f"Invalid date '{value}'. Use the YYYY-MM-DD format.") from e


@tool("time_now", args_schema=TimeNowInput)
def time_now(timezone: str | None = None) -> str:
    """Get the current date and time in a timezone, or UTC if none is given."""
    if not timezone:
        return f"Current time (UTC): {datetime.now(UTC):%Y-%m-%d %H:%M:%S}"

    try:
        tz = ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ToolException(f"Unknown timezone '{timezone}'.") from e
    return f"Current time ({timezone}): {datetime.now(tz):%Y-%m-%d %H:%M:%S}"


time_now.handle_tool_error = True


@tool("time_day_of_week", args_schema=DayOfWeekInput)
def time_day_of_week(date: str | None = None) -> str:
    """Get the day of the week for today or a given date."""
    target = _parse_date(date) if date else datetime.now(UTC).date()
    return f"{target:%Y-%m-%d} is a {target:%A}."


time_day_of_week.handle_tool_error = True


@tool("time_days_between", args_schema=DaysBetweenInput)
def time_days_between(start_date: str, end_date: str) -> str:
    """Count the days between two dates."""
    start = _parse_date(start_date)
    end = _parse_date(end_date)
    days = abs((end - start).days)
    return f"There are {days} days between {start:%Y-%m-%d} and {end:%Y-%m-%d}."


time_days_between.handle_tool_error = True
