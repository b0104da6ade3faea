"""LangChain tools for small public web APIs: random facts, jokes and country info."""

import logging
from typing import TypedDict
from urllib.parse import quote

import httpx
from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

from src.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10

COUNTRY_FIELDS = "name,capital,population,region,languages,currencies"


# --- Response types ---


class CountryName(TypedDict, total=False):
    common: str
    official: str


class Country(TypedDict, total=False):
    name: CountryName
    capital: list[str]
    population: int
    region: str
    languages: dict[str, str]
    currencies: dict[str, dict[str, str]]


# --- Input schemas ---


class CountryInput(BaseModel):
    country: str = Field(..., description="Country name, e.g. 'France' or 'New Zealand'")


# --- HTTP helpers ---


async def _get_json(
    service: str,
    url: str,
    params: dict[str, str] | None = None,
) -> object:
    """GET ``url`` and decode the JSON body, mapping transport failures to ToolException."""
    try:
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params=params, headers={"Accept": "application/json"})
            _ = response.raise_for_status()
            return response.json()  # pyright: ignore[reportAny]
    except httpx.HTTPStatusError as e:
        raise ToolException(f"{service} API error: HTTP {e.response.status_code} - {e.response.text[:200]}") from e
    except httpx.ConnectError as e:
        raise ToolException(f"Cannot connect to {service} service at {url}: {e}") from e
    except httpx.TimeoutException as e:
        raise ToolException(f"{service} request timed out after {DEFAULT_TIMEOUT_SECONDS}s: {e}") from e
    except httpx.HTTPError as e:
        raise ToolException(f"{service} request failed: {e}") from e
    except ValueError as e:
        raise ToolException(f"{service} returned invalid JSON: {e}") from e


def _format_country(data: Country) -> str:
    name = data.get("name", {}).get("common", "Unknown")
    capitals = data.get("capital") or []
    population = data.get("population")
    region = data.get("region") or "Unknown"

    lines = [
        f"Country: {name}",
        f"Capital: {capitals[0] if capitals else 'Unknown'}",
        f"Population: {population:,}" if population is not None else "Population: Unknown",
        f"Region: {region}",
    ]
    languages = data.get("languages")
    if languages:
        lines.append(f"Languages: {', '.join(languages.values())}")
    currencies = data.get("currencies")
    if currencies:
        lines.append(f"Currencies: {', '.join(c.get('name', code) for code, c in currencies.items())}")
    return "\n".join(lines)


# --- Tools ---


@tool("facts_random")
async def facts_random() -> str:
    """Get a random interesting fact."""
    logger.info("Fetching random fact")
    data = await _get_json(
        "Facts",
        f"{get_settings().facts_api_url}/api/v2/facts/random",
        params={"language": "en"},
    )
    text = data.get("text") if isinstance(data, dict) else None
    return str(text).strip() if text else "No fact available."


facts_random.handle_tool_error = True


@tool("jokes_random")
async def jokes_random() -> str:
    """Get a random joke."""
    logger.info("Fetching random joke")
    data = await _get_json("Jokes", f"{get_settings().jokes_api_url}/")
    joke = data.get("joke") if isinstance(data, dict) else None
    return str(joke).strip() if joke else "No joke available."


jokes_random.handle_tool_error = True


@tool("country_info", args_schema=CountryInput)
async def country_info(country: str) -> str:
    """Get the capital, population, region, languages and currencies of a country."""
    country = country.strip()
    if not country:
        raise ToolException("Please provide a country name.")

    logger.info("Fetching country info for %s", country)
    url = f"{get_settings().countries_api_url}/v3.1/name/{quote(country)}"
    try:
        data = await _get_json("Countries", url, params={"fields": COUNTRY_FIELDS})
    except ToolException as e:
        if isinstance(e.__cause__, httpx.HTTPStatusError) and e.__cause__.response.status_code == 404:
            return f"No country found matching '{country}'."
        raise

    if not isinstance(data, list) or not data:
        return f"No country found matching '{country}'."
    return _format_country(data[0])  # type: ignore[arg-type]


country_info.handle_tool_error = True
