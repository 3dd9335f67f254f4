"""
Event fan-out errors.

None of these reach HTTP callers: the bus and the webhook router log them
and carry on.
"""

from __future__ import annotations


class EventError(Exception):
    """Base class for event errors."""


class UnknownEventType(EventError):
    """The event type is not part of the catalog."""

    def __init__(self, event_type: object):
        super().__init__(f"Unknown event type: {event_type!r}")
        self.event_type = event_type


class DeliveryFailure(EventError):
    """Writing a frame to one subscriber failed. Other subscribers are unaffected."""

    def __init__(self, correlation_id: str, sink: object, cause: Exception):
        super().__init__(f"Delivery to {sink!r} for {correlation_id} failed: {cause}")
        self.correlation_id = correlation_id
        self.sink = sink
        self.cause = cause


class SinkClosedError(EventError):
    """A frame was written to a sink whose subscriber is gone."""
