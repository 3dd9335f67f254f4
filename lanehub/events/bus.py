"""
Event Bus.

Fans progress events out to every live subscriber of a correlation id.

Delivery is at-most-once and live-only: an event emitted while nobody is
subscribed is dropped, and a subscriber that connects later does not see
it. A subscriber whose write fails misses that event; the others still get
it.

Usage:
    bus = EventBus(registry)
    bus.emit("rec123", "lane_finish", {"lane": "A1.1", "output": text, "eval_score": 8})
    bus.lane_start("rec123", "A1.1", prompt="Outline")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lanehub.events.catalog import EventType, build_event
from lanehub.events.errors import DeliveryFailure, UnknownEventType
from lanehub.events.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self, registry: ConnectionRegistry):
        self._registry = registry

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def emit(
        self,
        correlation_id: str,
        event_type: EventType | str,
        payload: Mapping[str, Any] | None = None,
    ) -> int:
        """
        Broadcast one event to the current subscribers.

        Args:
            correlation_id: Target correlation id
            event_type: One of EventType (or its string value)
            payload: Raw event data, shaped per event type

        Returns:
            Number of subscribers the frame was written to. Never raises for
            unknown types, missing subscribers or failing subscribers.
        """
        try:
            resolved = EventType(event_type)
        except ValueError:
            logger.warning(f"[event_bus] {UnknownEventType(event_type)}, dropped for {correlation_id}")
            return 0

        sinks = self._registry.subscribers(correlation_id)
        if not sinks:
            logger.info(f"[event_bus] No subscribers for {correlation_id}, dropped {resolved.value}")
            return 0

        event = build_event(correlation_id, resolved, payload)
        frame = event.encode()

        delivered = 0
        for sink in sinks:
            try:
                sink.send(event, frame)
            except Exception as e:
                logger.error(f"[event_bus] {DeliveryFailure(correlation_id, sink, e)}")
                continue
            delivered += 1

        logger.info(
            f"[event_bus] Sent {resolved.value} to {delivered}/{len(sinks)} "
            f"subscriber(s) for {correlation_id}"
        )
        return delivered

    # =========================================================================
    # Typed helpers
    # =========================================================================

    def lane_start(self, correlation_id: str, lane: str, prompt: str | None = None) -> int:
        return self.emit(correlation_id, EventType.LANE_START, {"lane": lane, "prompt": prompt})

    def lane_finish(
        self,
        correlation_id: str,
        lane: str,
        output: str | None = None,
        eval_score: float | None = None,
    ) -> int:
        return self.emit(
            correlation_id,
            EventType.LANE_FINISH,
            {"lane": lane, "output": output, "eval_score": eval_score},
        )

    def lane_error(self, correlation_id: str, lane: str, error: Any = None) -> int:
        return self.emit(correlation_id, EventType.LANE_ERROR, {"lane": lane, "error": error})

    def publish(self, correlation_id: str, content_type: str, output_id: str | None = None) -> int:
        return self.emit(
            correlation_id,
            EventType.PUBLISH,
            {"content_type": content_type, "output_id": output_id},
        )

    def done(self, correlation_id: str, summary: Mapping[str, Any] | None = None) -> int:
        return self.emit(correlation_id, EventType.DONE, {"summary": summary})

    def progress(
        self,
        correlation_id: str,
        message: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> int:
        return self.emit(correlation_id, EventType.PROGRESS, {"message": message, "data": data})
