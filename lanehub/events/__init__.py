"""
lanehub Progress Events.

Live fan-out of lane progress to SSE subscribers.

    engine --POST--> webhook.dispatch_lane_event --> EventBus.emit
                                                        |
                              ConnectionRegistry.subscribers(correlation_id)
                                                        |
                                       QueueSink.send --> QueueSink.stream --> client
"""

from lanehub.events.bus import EventBus
from lanehub.events.catalog import (
    HEARTBEAT,
    OUTPUT_PREVIEW_LENGTH,
    EventType,
    ProgressEvent,
    build_event,
    build_payload,
)
from lanehub.events.errors import (
    DeliveryFailure,
    EventError,
    SinkClosedError,
    UnknownEventType,
)
from lanehub.events.registry import ConnectionRegistry, EventSink, QueueSink
from lanehub.events.webhook import (
    LaneWebhookPayload,
    WebhookAck,
    dispatch_lane_event,
    parse_event_type,
)

__all__ = [
    # Catalog
    "EventType",
    "ProgressEvent",
    "build_event",
    "build_payload",
    "HEARTBEAT",
    "OUTPUT_PREVIEW_LENGTH",
    # Subscriptions
    "EventSink",
    "QueueSink",
    "ConnectionRegistry",
    # Fan-out
    "EventBus",
    # Webhook
    "LaneWebhookPayload",
    "WebhookAck",
    "dispatch_lane_event",
    "parse_event_type",
    # Errors
    "EventError",
    "UnknownEventType",
    "DeliveryFailure",
    "SinkClosedError",
]
