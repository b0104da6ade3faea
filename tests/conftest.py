"""Shared pytest configuration and fixtures."""

from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest

from src.config import Settings, get_settings
from src.incidents.cache import get_incident_cache
from src.incidents.models import IncidentPriority, IncidentRecord, IncidentStatus
from tests.factories import make_incident


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="Run e2e tests that hit real services (requires network and a local Ollama)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="Need --run-e2e flag to run")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(autouse=True)
def _no_dotenv(request: pytest.FixtureRequest) -> Generator[None]:
    """Block .env loading so a developer's local .env never leaks into unit tests.

    Also resets the process-wide incident cache, whose lock binds to the event
    loop of the test that first used it.
    """
    if "e2e" in request.keywords:
        yield
        return

    get_settings.cache_clear()
    get_incident_cache.cache_clear()
    original = Settings.model_config.get("env_file")
    Settings.model_config["env_file"] = None

    try:
        yield
    finally:
        Settings.model_config["env_file"] = original
        get_settings.cache_clear()
        get_incident_cache.cache_clear()


@pytest.fixture
def mock_settings() -> Generator[Any]:
    """Provide fake settings so tests don't need a .env file.

    Patches get_settings at every import site so cached references are overridden.
    """
    fake_settings = type(
        "FakeSettings",
        (),
        {
            "llm_provider": "openai",
            "openai_api_key": "sk-proj-test-fake",
            "openai_model": "gpt-4o-mini",
            "openai_base_url": "",
            "anthropic_api_key": "",
            "anthropic_model": "claude-3-5-haiku-latest",
            "active_model": "gpt-4o-mini",
            # Incident source
            "incident_api_url": "http://incidents.test",
            "incident_fetch_limit": 5,
            "incident_cache_ttl_seconds": 300,
            "http_timeout_seconds": 5.0,
            # Conversation history
            "session_max_messages": 21,
            # Web tools
            "weather_api_url": "http://weather.test",
            "facts_api_url": "http://facts.test",
            "jokes_api_url": "http://jokes.test",
            "countries_api_url": "http://countries.test",
        },
    )()
    with (
        patch("src.config.get_settings", return_value=fake_settings),
        patch("src.agent.agent.get_settings", return_value=fake_settings),
        patch("src.agent.tools.weather.get_settings", return_value=fake_settings),
        patch("src.agent.tools.web.get_settings", return_value=fake_settings),
        patch("src.incidents.provider.get_settings", return_value=fake_settings),
        patch("src.incidents.cache.get_settings", return_value=fake_settings),
        patch("src.api.main.get_settings", return_value=fake_settings),
    ):
        yield fake_settings


@pytest.fixture
def sample_incidents() -> list[IncidentRecord]:
    return [
        make_incident(1, priority=IncidentPriority.LOW, age_days=3),
        make_incident(2, priority=IncidentPriority.CRITICAL, age_days=1, category="Database"),
        make_incident(3, priority=IncidentPriority.CRITICAL, age_days=5, category="Database"),
        make_incident(4, priority=IncidentPriority.HIGH, age_days=2),
        make_incident(
            5,
            status=IncidentStatus.RESOLVED,
            priority=IncidentPriority.HIGH,
            age_days=10,
            resolved_after_hours=10,
        ),
        make_incident(
            6,
            status=IncidentStatus.RESOLVED,
            priority=IncidentPriority.MEDIUM,
            age_days=4,
            resolved_after_hours=30,
        ),
    ]
