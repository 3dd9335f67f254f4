"""
Progress Event Catalog.

Event types the execution engine can report, and the payload each one
carries. Payload fields are flat in the JSON body, next to `type`,
`correlation_id` and `timestamp`:

    data: {"type": "lane_finish", "correlation_id": "rec123",
           "timestamp": "...", "lane": "A1.1", "output_preview": "...",
           "eval": {"score": 8}, "message": "Completed lane A1.1"}

Events are ephemeral: they exist only while being written to subscribers.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

OUTPUT_PREVIEW_LENGTH = 200
HEARTBEAT = ": heartbeat\n\n"
CONNECTED_MESSAGE = "Connected to event stream"

ENVELOPE_KEYS = ("type", "correlation_id", "timestamp")


class EventType(str, Enum):
    CONNECTED = "connected"
    LANE_START = "lane_start"
    LANE_FINISH = "lane_finish"
    LANE_ERROR = "lane_error"
    PUBLISH = "publish"
    DONE = "done"
    PROGRESS = "progress"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True, kw_only=True, slots=True)
class ProgressEvent:
    """One progress report for a correlation id."""

    type: EventType
    correlation_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": self.type.value,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp,
        }
        for key, value in self.payload.items():
            if key not in ENVELOPE_KEYS:
                body[key] = value
        return body

    def encode(self) -> str:
        """Serialize as a single SSE data frame."""
        return f"data: {json.dumps(self.to_dict(), default=str)}\n\n"


# =============================================================================
# Payload builders
# =============================================================================


def _connected(data: Mapping[str, Any]) -> dict[str, Any]:
    return {"message": data.get("message") or CONNECTED_MESSAGE}


def _lane_start(data: Mapping[str, Any]) -> dict[str, Any]:
    lane = data.get("lane")
    return {
        "lane": lane,
        "prompt": data.get("prompt"),
        "message": f"Starting lane {lane}",
    }


def _lane_finish(data: Mapping[str, Any]) -> dict[str, Any]:
    lane = data.get("lane")
    output = data.get("output")
    eval_score = data.get("eval_score")
    return {
        "lane": lane,
        "output_preview": str(output)[:OUTPUT_PREVIEW_LENGTH] if output else "",
        "eval": {"score": eval_score} if eval_score is not None else None,
        "message": f"Completed lane {lane}",
    }


def _lane_error(data: Mapping[str, Any]) -> dict[str, Any]:
    lane = data.get("lane")
    error = data.get("error")
    if isinstance(error, Mapping):
        error = error.get("message")
    return {
        "lane": lane,
        "error": str(error) if error else "Unknown error",
        "message": f"Error in lane {lane}",
    }


def _publish(data: Mapping[str, Any]) -> dict[str, Any]:
    content_type = data.get("content_type")
    return {
        "content_type": content_type,
        "output_id": data.get("output_id"),
        "message": f"Published to {content_type}",
    }


def _done(data: Mapping[str, Any]) -> dict[str, Any]:
    summary = data.get("summary")
    return {
        "summary": summary if summary is not None else {},
        "message": "Workflow complete",
    }


def _progress(data: Mapping[str, Any]) -> dict[str, Any]:
    extra = data.get("data") or {}
    payload: dict[str, Any] = {"message": data.get("message") or "Progress update"}
    if isinstance(extra, Mapping):
        payload.update(extra)
    return payload


PAYLOAD_BUILDERS: dict[EventType, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
    EventType.CONNECTED: _connected,
    EventType.LANE_START: _lane_start,
    EventType.LANE_FINISH: _lane_finish,
    EventType.LANE_ERROR: _lane_error,
    EventType.PUBLISH: _publish,
    EventType.DONE: _done,
    EventType.PROGRESS: _progress,
}


def build_payload(event_type: EventType, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Shape raw engine data into the payload for the given event type."""
    return PAYLOAD_BUILDERS[event_type](data or {})


def build_event(
    correlation_id: str,
    event_type: EventType,
    data: Mapping[str, Any] | None = None,
) -> ProgressEvent:
    return ProgressEvent(
        type=event_type,
        correlation_id=correlation_id,
        payload=build_payload(event_type, data),
    )
