"""LangChain tools for a per-session task list.

Tasks live in memory for the lifetime of the process. The session id reaches
each tool through the runnable config (``configurable.session_id``), which the
agent runtime sets for every invocation.
"""

import logging
import threading
from datetime import UTC, date, datetime
from typing import Literal, TypedDict
from uuid import uuid4

from langchain_core.runnables import RunnableConfig
from langchain_core.tools import ToolException, tool  # pyright: ignore[reportUnknownVariableType]
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TaskItem(TypedDict):
    id: str
    description: str
    priority: str
    due_date: str | None  # YYYY-MM-DD
    created_at: str  # ISO 8601
    completed: bool


class TaskStore:
    """Task lists keyed by session id."""

    def __init__(self) -> None:
        self._tasks: dict[str, list[TaskItem]] = {}
        self._lock = threading.Lock()

    def add(self, session_id: str, description: str, priority: str, due_date: str | None) -> TaskItem:
        task: TaskItem = {
            "id": uuid4().hex[:8],
            "description": description,
            "priority": priority,
            "due_date": due_date,
            "created_at": datetime.now(UTC).isoformat(),
            "completed": False,
        }
        with self._lock:
            self._tasks.setdefault(session_id, []).append(task)
        return task

    def tasks(self, session_id: str) -> list[TaskItem]:
        with self._lock:
            return [TaskItem(**t) for t in self._tasks.get(session_id, [])]

    def complete(self, session_id: str, task_id: str) -> TaskItem | None:
        with self._lock:
            for task in self._tasks.get(session_id, []):
                if task["id"] == task_id:
                    task["completed"] = True
                    return TaskItem(**task)
        return None

    def delete(self, session_id: str, task_id: str) -> bool:
        with self._lock:
            tasks = self._tasks.get(session_id, [])
            remaining = [t for t in tasks if t["id"] != task_id]
            self._tasks[session_id] = remaining
            return len(remaining) != len(tasks)


TASK_STORE = TaskStore()


def _session_id(config: RunnableConfig) -> str:
    session_id = config.get("configurable", {}).get("session_id")
    if not session_id:
        raise ToolException("Task tools need a session; none was provided.")
    return str(session_id)


def _format_task(task: TaskItem) -> str:
    mark = "x" if task["completed"] else " "
    due = f", due {task['due_date']}" if task["due_date"] else ""
    return f"- [{mark}] {task['id']}: {task['description']} ({task['priority']}{due})"


# --- Input schemas ---


class CreateTaskInput(BaseModel):
    description: str = Field(..., description="What needs to be done")
    due_date: str | None = Field(default=None, description="Optional due date in YYYY-MM-DD format")
    priority: Literal["low", "medium", "high"] = Field(default="medium", description="low, medium or high")


class ListTasksInput(BaseModel):
    filter: Literal["all", "pending", "completed"] = Field(
        default="all", description="Which tasks to show: all, pending or completed"
    )


class TaskIdInput(BaseModel):
    task_id: str = Field(..., description="The task ID returned when the task was created")


# --- Tools ---


@tool("tasks_create", args_schema=CreateTaskInput)
def tasks_create(
    description: str,
    config: RunnableConfig,
    due_date: str | None = None,
    priority: str = "medium",
) -> str:
    """Create a task or reminder for the current user."""
    session_id = _session_id(config)
    if due_date:
        try:
            due_date = date.fromisoformat(due_date.strip()).isoformat()
        except ValueError as e:
            raise ToolException(f"Invalid due date '{due_date}'. Use the YYYY-MM-DD format.") from e

    task = TASK_STORE.add(session_id, description.strip(), priority, due_date)
    logger.info("Created task %s for session '%s'", task["id"], session_id)
    return f"Task created. ID: {task['id']}\n{_format_task(task)}"


tasks_create.handle_tool_error = True


@tool("tasks_list", args_schema=ListTasksInput)
def tasks_list(config: RunnableConfig, filter: str = "all") -> str:
    """List the current user's tasks."""
    tasks = TASK_STORE.tasks(_session_id(config))
    if filter == "pending":
        tasks = [t for t in tasks if not t["completed"]]
    elif filter == "completed":
        tasks = [t for t in tasks if t["completed"]]

    if not tasks:
        return "No tasks found." if filter == "all" else f"No {filter} tasks found."
    return f"Found {len(tasks)} task(s):\n" + "\n".join(_format_task(t) for t in tasks)


tasks_list.handle_tool_error = True


@tool("tasks_complete", args_schema=TaskIdInput)
def tasks_complete(task_id: str, config: RunnableConfig) -> str:
    """Mark a task as completed."""
    task = TASK_STORE.complete(_session_id(config), task_id.strip())
    if task is None:
        raise ToolException(f"Task '{task_id}' not found.")
    return f"Task '{task_id}' marked as completed."


tasks_complete.handle_tool_error = True


@tool("tasks_delete", args_schema=TaskIdInput)
def tasks_delete(task_id: str, config: RunnableConfig) -> str:
    """Delete a task."""
    if not TASK_STORE.delete(_session_id(config), task_id.strip()):
        raise ToolException(f"Task '{task_id}' not found.")
    return f"Task '{task_id}' deleted."


tasks_delete.handle_tool_error = True
