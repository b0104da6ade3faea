from functools import lru_cache
from typing import ClassVar, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # LLM backend for the conversational fallback. The default points the
    # OpenAI client at a local Ollama server (OpenAI-compatible API).
    llm_provider: Literal["openai", "anthropic"] = "openai"
    openai_api_key: str = "ollama"
    openai_model: str = "llama3.2"
    openai_base_url: str = "http://localhost:11434/v1"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-latest"

    # Read-only incident source (JSONPlaceholder-compatible /posts and /users)
    incident_api_url: str = "https://jsonplaceholder.typicode.com"
    incident_fetch_limit: int = Field(default=20, ge=1, le=100)
    incident_cache_ttl_seconds: int = Field(default=300, ge=0)
    http_timeout_seconds: float = 15.0

    # Conversation history budget per session: system turn + 20 messages
    session_max_messages: int = Field(default=21, ge=2)

    # Public web APIs for the fallback agent's tools; empty disables a tool
    weather_api_url: str = "https://wttr.in"
    facts_api_url: str = "https://uselessfacts.jsph.pl"
    jokes_api_url: str = "https://icanhazdadjoke.com"
    countries_api_url: str = "https://restcountries.com"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def active_model(self) -> str:
        return self.anthropic_model if self.llm_provider == "anthropic" else self.openai_model


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
