"""LangChain tool for current weather via the wttr.in API."""

import logging
from urllib.parse import quote

import httpx
from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

from src.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10


class WeatherInput(BaseModel):
    city: str = Field(..., description="City name, e.g. 'London' or 'San Francisco'")


@tool("weather_current", args_schema=WeatherInput)
async def weather_current(city: str) -> str:
    """Get the current weather for a city."""
    city = city.strip()
    if not city:
        raise ToolException("Please provide a city name.")

    logger.info("Fetching weather for %s", city)
    url = f"{get_settings().weather_api_url}/{quote(city)}"

    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params={"format": "3"})
            _ = response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise ToolException(f"Weather API error: HTTP {e.response.status_code} - {e.response.text[:200]}") from e
    except httpx.ConnectError as e:
        raise ToolException(f"Cannot connect to weather service at {get_settings().weather_api_url}: {e}") from e
    except httpx.TimeoutException as e:
        raise ToolException(f"Weather request timed out after {DEFAULT_TIMEOUT_SECONDS}s: {e}") from e
    except httpx.HTTPError as e:
        raise ToolException(f"Weather request failed: {e}") from e

    return response.text.strip() or f"No weather data for {city}."


weather_current.handle_tool_error = True
