"""Conversational fallback: session histories plus a LangChain tool-calling agent.

The tool-calling runtime is injected behind ``ToolCallingRuntime`` so the
session and history handling can be exercised with a deterministic stub.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from langchain.agents import create_agent  # pyright: ignore[reportUnknownVariableType]
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from pydantic import BaseModel

from src.agent.llm import create_llm
from src.agent.session import SessionStore
from src.agent.tools.calculator import math_calculate
from src.agent.tools.clock import time_day_of_week, time_days_between, time_now
from src.agent.tools.incidents import (
    incidents_analyze,
    incidents_get_details,
    incidents_list_open,
    incidents_list_resolved,
)
from src.agent.tools.tasks import tasks_complete, tasks_create, tasks_delete, tasks_list
from src.agent.tools.weather import weather_current
from src.agent.tools.web import country_info, facts_random, jokes_random
from src.config import get_settings
from src.observability.callbacks import MetricsCallbackHandler
from src.observability.metrics import FALLBACK_TOTAL

logger = logging.getLogger(__name__)

# LangGraph has no public type stubs, so the compiled agent type is opaque to
# static analysers.
type AgentGraph = Any

_PROMPT_PATH = Path(__file__).parent / "system_prompt.md"
SYSTEM_PROMPT = _PROMPT_PATH.read_text()

NO_RESPONSE_TEXT = "I apologize, but I couldn't generate a response."
CONNECTION_ERROR_TEXT = (
    "I'm having trouble connecting to my AI backend. "
    "Please make sure Ollama is running locally (run 'ollama serve' in terminal)."
)


class AgentReply(BaseModel):
    text: str
    tools_used: list[str]


class ToolCallingRuntime(Protocol):
    async def ainvoke(
        self,
        messages: list[BaseMessage],
        tools: Sequence[BaseTool],
        session_id: str,
    ) -> list[BaseMessage]:
        """Run the model over ``messages`` with ``tools`` available.

        Returns the input messages followed by everything the run produced:
        AI messages (with any ``tool_calls``), tool results and the final reply.
        """
        ...


class LangChainRuntime:
    """Tool-calling runtime backed by ``langchain.agents.create_agent``."""

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm
        self._graphs: dict[tuple[str, ...], AgentGraph] = {}

    def _graph(self, tools: Sequence[BaseTool]) -> AgentGraph:
        key = tuple(t.name for t in tools)
        if key not in self._graphs:
            # No checkpointer: the session store owns conversation memory
            self._graphs[key] = create_agent(model=self._llm, tools=list(tools))
        return self._graphs[key]

    async def ainvoke(
        self,
        messages: list[BaseMessage],
        tools: Sequence[BaseTool],
        session_id: str,
    ) -> list[BaseMessage]:
        config: RunnableConfig = {
            "configurable": {"session_id": session_id},
            "callbacks": [MetricsCallbackHandler()],
        }
        result: dict[str, Any] = await self._graph(tools).ainvoke({"messages": messages}, config=config)
        return result.get("messages", [])


def _extract_tool_names(messages: Sequence[BaseMessage]) -> list[str]:
    """Tool names from AIMessage tool_calls, deduplicated in first-seen order."""
    tool_names: list[str] = []
    for msg in messages:
        if isinstance(msg, AIMessage):
            for tc in msg.tool_calls:
                name = tc.get("name")
                if name and name not in tool_names:
                    tool_names.append(name)
    return tool_names


def _final_reply(messages: Sequence[BaseMessage]) -> str:
    for msg in reversed(messages):
        if isinstance(msg, AIMessage) and isinstance(msg.content, str) and msg.content:
            return msg.content
    return NO_RESPONSE_TEXT


def _error_reply(exc: BaseException) -> str:
    if "connection" in str(exc).lower():
        return CONNECTION_ERROR_TEXT
    return f"I encountered an error: {exc}"


class ConversationalAgent:
    """Session-scoped chat over a tool-calling runtime. ``chat`` never raises."""

    def __init__(
        self,
        runtime: ToolCallingRuntime,
        tools: Sequence[BaseTool],
        store: SessionStore,
    ) -> None:
        self._runtime = runtime
        self._tools = list(tools)
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def tool_names(self) -> list[str]:
        return [t.name for t in self._tools]

    async def chat(self, session_id: str, message: str) -> AgentReply:
        history = self._store.get_or_create(session_id)
        history.append("user", message)
        context = history.messages()

        try:
            trace = await self._runtime.ainvoke(context, self._tools, session_id)
        except Exception as exc:
            logger.exception("Error processing chat message for session '%s'", session_id)
            FALLBACK_TOTAL.labels(status="error").inc()
            text = _error_reply(exc)
            history.append("assistant", text)
            return AgentReply(text=text, tools_used=[])

        produced = trace[len(context) :]
        tools_used = _extract_tool_names(produced)
        text = _final_reply(produced)

        if tools_used:
            history.append("tool", ", ".join(tools_used))
        history.append("assistant", text)

        FALLBACK_TOTAL.labels(status="success").inc()
        logger.info("Session '%s' answered by LLM (tools: %s)", session_id, tools_used or "none")
        return AgentReply(text=text, tools_used=tools_used)

    def clear_session(self, session_id: str) -> bool:
        return self._store.remove(session_id)


def _get_tools() -> list[BaseTool]:
    """Collect all agent tools, conditionally including optional integrations."""
    tools: list[BaseTool] = [
        incidents_list_open,
        incidents_list_resolved,
        incidents_get_details,
        incidents_analyze,
        time_now,
        time_day_of_week,
        time_days_between,
        math_calculate,
        tasks_create,
        tasks_list,
        tasks_complete,
        tasks_delete,
    ]

    settings = get_settings()
    optional: list[tuple[str, str, BaseTool]] = [
        ("weather_api_url", settings.weather_api_url, weather_current),
        ("facts_api_url", settings.facts_api_url, facts_random),
        ("jokes_api_url", settings.jokes_api_url, jokes_random),
        ("countries_api_url", settings.countries_api_url, country_info),
    ]
    for setting, url, optional_tool in optional:
        if url:
            tools.append(optional_tool)
        else:
            logger.info("%s tool disabled, %s not set", optional_tool.name, setting.upper())

    return tools


def build_agent(
    model_name: str | None = None,
    temperature: float = 0.0,
) -> ConversationalAgent:
    """Build the conversational fallback agent.

    Args:
        model_name: LLM model to use. Defaults to the configured provider's model.
        temperature: LLM temperature (0.0 for deterministic tool-calling).
    """
    settings = get_settings()

    llm = create_llm(settings, temperature=temperature, model_override=model_name)
    tools = _get_tools()
    logger.info(
        "Building agent with model=%s, %d tools: %s",
        model_name or settings.active_model,
        len(tools),
        [t.name for t in tools],
    )

    store = SessionStore(SYSTEM_PROMPT, max_messages=settings.session_max_messages)
    return ConversationalAgent(LangChainRuntime(llm), tools, store)
