"""LLM factory: creates the chat model for the conversational fallback."""

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from pydantic import SecretStr

from src.config import Settings


def create_llm(
    settings: Settings,
    temperature: float = 0.0,
    model_override: str | None = None,
) -> BaseChatModel:
    """Create a chat model instance based on the configured provider.

    The OpenAI client doubles as the Ollama client: Ollama serves an
    OpenAI-compatible API under ``/v1``, so ``openai_base_url`` selects it.

    Args:
        settings: Application settings (provider, keys, model names).
        temperature: LLM temperature (0.0 for deterministic tool-calling).
        model_override: Use this model name instead of the configured one.

    Returns:
        A ChatAnthropic or ChatOpenAI instance.
    """
    model = model_override or settings.active_model

    if settings.llm_provider == "anthropic":
        return ChatAnthropic(  # pyright: ignore[reportCallIssue]
            model=model,
            temperature=temperature,
            max_tokens=2048,
            api_key=SecretStr(settings.anthropic_api_key),
        )

    return ChatOpenAI(
        model=model,
        temperature=temperature,
        api_key=SecretStr(settings.openai_api_key),
        base_url=settings.openai_base_url or None,
    )
