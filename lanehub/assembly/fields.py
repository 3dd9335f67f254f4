"""
Tolerant field lookup.

Stored field names drift over time ("Workflow" becomes
"Premade AI Workflow (Initiator link to WF Table)"). Callers pass every known
physical name for a logical field and take the first one that holds a value.

Usage:
    workflow_ids = resolve(initiator.fields, [
        "Workflow",
        "Premade AI Workflow (Initiator link to WF Table)",
        "Workflow Record Id",
    ])

Matching is exact key equality. No case folding, no substring matching.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any


def resolve(fields: Mapping[str, Any] | None, aliases: Sequence[str] | None) -> Any:
    """
    Return the value of the first alias present in ``fields`` with a non-None value.

    Args:
        fields: Record field mapping (physical name -> value)
        aliases: Candidate physical names, in priority order

    Returns:
        The matched value, or None when nothing matches or inputs are invalid
    """
    if not fields or not isinstance(aliases, (list, tuple)):
        return None

    for name in aliases:
        value = fields.get(name)
        if value is not None:
            return value

    return None


def first_link(value: Any) -> str | None:
    """
    Extract a single record id from a link field.

    Link fields hold a list of record ids; only the first is followed.
    A bare string id is returned as-is.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str) and value:
        return value
    return None


def link_ids(value: Any) -> list[str]:
    """All record ids from a link field, in stored order."""
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str) and v]
    return []


def is_linked(value: Any) -> bool:
    """True for a non-empty string, list or mapping."""
    return isinstance(value, (str, list, tuple, dict)) and len(value) > 0
