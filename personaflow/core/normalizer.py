# personaflow/core/normalizer.py
"""
Canonicalization of loosely formatted enumerated values.

Status and priority strings reach the core in several shapes: plain tags
(``"todo"``), serialized enum names (``"InProgress"``), JSON-quoted strings
(``'"Done"'``) and escaped variants (``'\\"review\\"'``). Every comparison,
filter and transition check works on the canonical tag produced here.
"""
import re
from typing import Any, NamedTuple, Optional, Sequence


class TagOption(NamedTuple):
    tag: str
    label: str
    color: str


TASK_STATUS_OPTIONS = (
    TagOption("backlog", "Backlog", "#6b7280"),
    TagOption("todo", "To Do", "#3b82f6"),
    TagOption("inprogress", "In Progress", "#f59e0b"),
    TagOption("review", "Review", "#8b5cf6"),
    TagOption("done", "Done", "#10b981"),
)

PRIORITY_OPTIONS = (
    TagOption("low", "Low", "#10b981"),
    TagOption("medium", "Medium", "#f59e0b"),
    TagOption("high", "High", "#f97316"),
    TagOption("critical", "Critical", "#ef4444"),
)

WORKSTREAM_STATUS_OPTIONS = (
    TagOption("planning", "Planning", "#6b7280"),
    TagOption("active", "Active", "#10b981"),
    TagOption("paused", "Paused", "#f59e0b"),
    TagOption("completed", "Completed", "#059669"),
    TagOption("cancelled", "Cancelled", "#dc2626"),
)

TASK_STATUSES = tuple(option.tag for option in TASK_STATUS_OPTIONS)
PRIORITIES = tuple(option.tag for option in PRIORITY_OPTIONS)
WORKSTREAM_STATUSES = tuple(option.tag for option in WORKSTREAM_STATUS_OPTIONS)

_QUOTES = ('"', "'")
_ESCAPED_QUOTE = re.compile(r"""\\["']""")
_WHITESPACE = re.compile(r"\s+")


def _strip_wrapping_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    return value


def _clean(value: str) -> str:
    cleaned = _strip_wrapping_quotes(value.strip())
    cleaned = _ESCAPED_QUOTE.sub("", cleaned)
    return _WHITESPACE.sub("", cleaned.lower())


def normalize(raw: Any, options: Sequence[TagOption]) -> str:
    """
    Map ``raw`` onto one of the tags in ``options``.

    Unknown or non-string values fall back to the first option, so this never
    raises. Normalizing an already canonical tag returns it unchanged.
    """
    default = options[0].tag
    if not isinstance(raw, str):
        return default

    cleaned = _clean(raw)
    for option in options:
        if option.tag == cleaned:
            return option.tag
    return default


def normalize_task_status(raw: Any) -> str:
    return normalize(raw, TASK_STATUS_OPTIONS)


def normalize_priority(raw: Any) -> str:
    return normalize(raw, PRIORITY_OPTIONS)


def normalize_workstream_status(raw: Any) -> str:
    return normalize(raw, WORKSTREAM_STATUS_OPTIONS)


def option_for(raw: Any, options: Sequence[TagOption]) -> TagOption:
    """Display label and color for a raw value, after normalization."""
    tag = normalize(raw, options)
    return next(option for option in options if option.tag == tag)


def tag_rank(raw: Any, options: Sequence[TagOption]) -> int:
    """Position of the normalized value in workflow order."""
    tag = normalize(raw, options)
    return [option.tag for option in options].index(tag)


def is_known_tag(raw: Optional[str], options: Sequence[TagOption]) -> bool:
    """True when ``raw`` normalizes to a tag by match rather than by fallback."""
    if not isinstance(raw, str):
        return False
    cleaned = _clean(raw)
    return any(option.tag == cleaned for option in options)
