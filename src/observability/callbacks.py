"""LangChain callback handler that records Prometheus metrics for the fallback agent.

The runtime creates a fresh ``MetricsCallbackHandler`` per invocation and
passes it via ``config["callbacks"]``. Metrics collection must never fail a
chat, so every callback swallows and logs its own errors.
"""

import logging
import time
from typing import Any
from uuid import UUID

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.outputs import LLMResult

from src.observability.metrics import LLM_CALLS_TOTAL, LLM_TOKEN_USAGE, TOOL_CALL_DURATION, TOOL_CALLS_TOTAL

logger = logging.getLogger(__name__)


def _token_usage(response: LLMResult) -> tuple[int, int]:
    """Prompt and completion token counts, from ``llm_output`` or per-message usage metadata."""
    usage: dict[str, int] = (response.llm_output or {}).get("token_usage") or {}
    if usage:
        return usage.get("prompt_tokens", 0), usage.get("completion_tokens", 0)

    prompt = completion = 0
    for generations in response.generations:
        for generation in generations:
            metadata = getattr(getattr(generation, "message", None), "usage_metadata", None)
            if metadata:
                prompt += metadata.get("input_tokens", 0)
                completion += metadata.get("output_tokens", 0)
    return prompt, completion


class MetricsCallbackHandler(BaseCallbackHandler):
    """Captures tool-call durations and LLM call/token counts for one agent run."""

    def __init__(self) -> None:
        super().__init__()
        # run_id → (start_time, tool_name)
        self._tool_runs: dict[UUID, tuple[float, str]] = {}

    def _finish_tool(self, run_id: UUID, status: str) -> None:
        entry = self._tool_runs.pop(run_id, None)
        if entry is None:
            return
        start_time, tool_name = entry
        TOOL_CALL_DURATION.labels(tool_name=tool_name).observe(time.monotonic() - start_time)
        TOOL_CALLS_TOTAL.labels(tool_name=tool_name, status=status).inc()

    def on_tool_start(
        self,
        serialized: dict[str, Any],
        input_str: str,
        *,
        run_id: UUID,
        parent_run_id: UUID | None = None,
        **kwargs: Any,
    ) -> None:
        try:
            tool_name: str = (serialized or {}).get("name") or kwargs.get("name") or "unknown"
            self._tool_runs[run_id] = (time.monotonic(), tool_name)
        except Exception:
            logger.debug("metrics: on_tool_start failed", exc_info=True)

    def on_tool_end(
        self,
        output: Any,
        *,
        run_id: UUID,
        parent_run_id: UUID | None = None,
        **kwargs: Any,
    ) -> None:
        try:
            self._finish_tool(run_id, "success")
        except Exception:
            logger.debug("metrics: on_tool_end failed", exc_info=True)

    def on_tool_error(
        self,
        error: BaseException,
        *,
        run_id: UUID,
        parent_run_id: UUID | None = None,
        **kwargs: Any,
    ) -> None:
        try:
            self._finish_tool(run_id, "error")
        except Exception:
            logger.debug("metrics: on_tool_error failed", exc_info=True)

    def on_llm_end(
        self,
        response: LLMResult,
        *,
        run_id: UUID,
        parent_run_id: UUID | None = None,
        **kwargs: Any,
    ) -> None:
        try:
            LLM_CALLS_TOTAL.labels(status="success").inc()
            prompt_tokens, completion_tokens = _token_usage(response)
            if prompt_tokens:
                LLM_TOKEN_USAGE.labels(type="prompt").inc(prompt_tokens)
            if completion_tokens:
                LLM_TOKEN_USAGE.labels(type="completion").inc(completion_tokens)
        except Exception:
            logger.debug("metrics: on_llm_end failed", exc_info=True)

    def on_llm_error(
        self,
        error: BaseException,
        *,
        run_id: UUID,
        parent_run_id: UUID | None = None,
        **kwargs: Any,
    ) -> None:
        try:
            LLM_CALLS_TOTAL.labels(status="error").inc()
        except Exception:
            logger.debug("metrics: on_llm_error failed", exc_info=True)
