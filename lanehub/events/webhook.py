"""
Lane Webhook Routing.

The execution engine reports progress by POSTing a flat JSON body to
`/api/events/{correlation_id}/lane`:

    {"event_type": "lane_finish", "lane": "A1.1", "output": "...", "eval_score": 8}

This module validates that body and hands it to the EventBus. The engine
always gets an acknowledgement; an event it cannot route is logged and
acknowledged with forwarded=False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict

from lanehub.events.bus import EventBus
from lanehub.events.catalog import EventType
from lanehub.events.errors import UnknownEventType

logger = logging.getLogger(__name__)

# `connected` is generated by the registry, never by the engine
WEBHOOK_EVENT_TYPES = frozenset(EventType) - {EventType.CONNECTED}


class LaneWebhookPayload(BaseModel):
    """
    Body of a lane progress webhook. Unknown keys are kept.

    Only event_type is typed; everything else is forwarded as the engine
    sent it and shaped by the payload builders.
    """

    model_config = ConfigDict(extra="allow")

    event_type: str | None = None
    lane: Any = None
    prompt: Any = None
    output: Any = None
    eval_score: Any = None
    error: Any = None
    content_type: Any = None
    output_id: Any = None
    summary: Any = None
    message: Any = None
    data: Any = None


@dataclass(frozen=True, slots=True)
class WebhookAck:
    forwarded: bool
    event_type: str | None
    delivered: int = 0

    @property
    def message(self) -> str:
        if self.forwarded:
            return "Event emitted"
        return f"Event type {self.event_type!r} ignored"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "forwarded": self.forwarded,
            "delivered": self.delivered,
        }


def parse_event_type(raw: str | None) -> EventType:
    """
    Raises:
        UnknownEventType: If raw is missing or not accepted from the engine
    """
    try:
        event_type = EventType(raw)
    except ValueError as e:
        raise UnknownEventType(raw) from e
    if event_type not in WEBHOOK_EVENT_TYPES:
        raise UnknownEventType(raw)
    return event_type


def dispatch_lane_event(
    bus: EventBus,
    correlation_id: str,
    payload: LaneWebhookPayload,
) -> WebhookAck:
    """Route one webhook body to the bus."""
    logger.info(f"[webhook] Received {payload.event_type} for {correlation_id}, lane {payload.lane}")

    try:
        event_type = parse_event_type(payload.event_type)
    except UnknownEventType as e:
        logger.warning(f"[webhook] {e}, not forwarded")
        return WebhookAck(forwarded=False, event_type=payload.event_type)

    data = payload.model_dump(exclude={"event_type"})
    delivered = bus.emit(correlation_id, event_type, data)
    return WebhookAck(forwarded=True, event_type=event_type.value, delivered=delivered)
