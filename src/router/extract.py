"""Entity extraction from free-text chat messages.

Every extractor is pure and fail-soft: a message without the entity yields
``None`` (or the given default), never an exception.
"""

import re

from src.incidents.models import IncidentStatus

MAX_COUNT = 50

_INCIDENT_ID_RE = re.compile(r"INC\d+", re.IGNORECASE)
_ASSIGN_TO_RE = re.compile(r"(?:assign\s+)?to\s+([^,.\n]+?)(?:\s*$|,|\.)", re.IGNORECASE)
_AFTER_ID_RE = re.compile(r"INC\d+\s+(.+?)(?:\s*$|,|\.)", re.IGNORECASE)
_TITLE_RE = re.compile(
    r"(?:create|add|new)\s+incident[:\s]+(.+?)(?:\s+(?:priority|category|description)|$)",
    re.IGNORECASE,
)
_NUMBER_RE = re.compile(r"\d+")

# Checked in order: the first keyword found wins
_PRIORITY_KEYWORDS: tuple[str, ...] = ("critical", "high", "medium", "low")

# Multi-word phrases come before the bare "open" keyword
_STATUS_KEYWORDS: tuple[tuple[tuple[str, ...], IncidentStatus], ...] = (
    (("resolved", "close"), IncidentStatus.RESOLVED),
    (("in progress", "in-progress"), IncidentStatus.IN_PROGRESS),
    (("on hold", "on-hold"), IncidentStatus.ON_HOLD),
    (("open",), IncidentStatus.OPEN),
)


def extract_incident_id(text: str) -> str | None:
    """Return the first ``INC<digits>`` token, as written in the message."""
    match = _INCIDENT_ID_RE.search(text)
    return match.group(0) if match else None


def extract_priority(text: str) -> str:
    """Return the first priority keyword in the message, or ``"all"``."""
    lower = text.lower()
    return next((p for p in _PRIORITY_KEYWORDS if p in lower), "all")


def extract_status(text: str) -> IncidentStatus | None:
    """Return the incident status named in the message.

    Substring based: "reopen" yields Open, and a message mentioning both
    "resolved" and "open" yields Resolved.
    """
    lower = text.lower()
    for keywords, status in _STATUS_KEYWORDS:
        if any(k in lower for k in keywords):
            return status
    return None


def extract_assignee(text: str) -> str | None:
    """Return the assignee from a "to <name>" clause, else the text after an incident id."""
    match = _ASSIGN_TO_RE.search(text)
    if match:
        return match.group(1).strip()

    match = _AFTER_ID_RE.search(text)
    if match:
        after_id = match.group(1).strip()
        if "to" not in after_id.lower():
            return after_id

    return None


def extract_title(text: str) -> str | None:
    match = _TITLE_RE.search(text)
    if match:
        return match.group(1).strip()
    return None


def extract_bounded_count(text: str, default: int) -> int:
    """Return the first integer in the message clamped to [0, MAX_COUNT], else ``default``."""
    match = _NUMBER_RE.search(text)
    if match is None:
        return default
    # Clamp on the digit string: int() rejects very long digit runs
    digits = match.group(0).lstrip("0") or "0"
    if len(digits) > len(str(MAX_COUNT)):
        return MAX_COUNT
    return min(int(digits), MAX_COUNT)
