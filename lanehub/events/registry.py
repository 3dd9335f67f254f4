"""
Event Sinks and Connection Registry.

A sink is the write side of one live subscriber (an open SSE response).
The registry maps a correlation id to the sinks currently subscribed to it.

Lifecycle:
    sink = QueueSink()
    registry.register("rec123", sink)   # sink receives a `connected` frame
    async for frame in sink.stream():   # response body
        ...
    # stream exit closes the sink, which unregisters it

Everything here runs on the event loop thread. send() never awaits, so a
broadcast to a snapshot of sinks cannot interleave with another broadcast
for the same correlation id.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Callable
from typing import Protocol, runtime_checkable

from lanehub.events.catalog import HEARTBEAT, EventType, ProgressEvent, build_event
from lanehub.events.errors import DeliveryFailure, SinkClosedError

logger = logging.getLogger(__name__)

_sink_ids = itertools.count(1)


@runtime_checkable
class EventSink(Protocol):
    """Write side of one subscriber."""

    @property
    def closed(self) -> bool:
        ...

    def send(self, event: ProgressEvent, message: str) -> None:
        """Write an encoded frame. Must not block; raise on failure."""
        ...

    def on_close(self, callback: Callable[[], None]) -> None:
        """Run callback once when the subscriber goes away."""
        ...


class QueueSink:
    """
    EventSink backed by an asyncio.Queue, drained by stream().

    Args:
        max_pending: Bound on undelivered frames (0 = unbounded). A send to a
            full sink raises asyncio.QueueFull.
        name: Label for logs
    """

    def __init__(self, *, max_pending: int = 0, name: str | None = None):
        self._queue: asyncio.Queue[tuple[EventType, str] | None] = asyncio.Queue(maxsize=max_pending)
        self._closed = False
        self._callbacks: list[Callable[[], None]] = []
        self.name = name or f"sink-{next(_sink_ids)}"

    def __repr__(self) -> str:
        return f"QueueSink({self.name!r}, closed={self._closed})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def send(self, event: ProgressEvent, message: str) -> None:
        if self._closed:
            raise SinkClosedError(f"{self.name} is closed")
        self._queue.put_nowait((event.type, message))

    def on_close(self, callback: Callable[[], None]) -> None:
        if self._closed:
            callback()
            return
        self._callbacks.append(callback)

    def close(self) -> None:
        """Close the sink and fire close callbacks. Idempotent."""
        if self._closed:
            return
        self._closed = True

        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            # Reader has frames to drain and re-checks `closed` after each
            pass

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"[registry] Close callback failed for {self.name}: {e}", exc_info=True)

    async def stream(self, heartbeat_interval: float = 30.0) -> AsyncIterator[str]:
        """
        Yield SSE frames until the stream is done or the sink is closed.

        Emits a heartbeat comment when nothing arrives for heartbeat_interval
        seconds. Ends after the `done` frame has been yielded. Always closes
        the sink on exit.
        """
        try:
            while not self._closed:
                try:
                    item = await asyncio.wait_for(self._queue.get(), timeout=heartbeat_interval)
                except asyncio.TimeoutError:
                    yield HEARTBEAT
                    continue

                if item is None:
                    break

                event_type, frame = item
                yield frame
                if event_type is EventType.DONE:
                    break
        finally:
            self.close()


class ConnectionRegistry:
    """
    Live subscriptions, keyed by correlation id.

    Invariants:
        - Never holds a closed sink: closed sinks are refused at register
          time and removed by their close callback
        - No empty lists: the key is dropped with its last subscriber

    Example:
        registry = ConnectionRegistry()
        sink = QueueSink()
        registry.register("rec123", sink)
        registry.subscriber_count("rec123")  # 1
        sink.close()
        registry.subscriber_count("rec123")  # 0
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[EventSink]] = {}

    def __len__(self) -> int:
        return sum(len(sinks) for sinks in self._subscriptions.values())

    def register(self, correlation_id: str, sink: EventSink) -> bool:
        """
        Subscribe a sink and greet it with a `connected` event.

        Returns:
            False if the sink was already closed, True otherwise
        """
        if sink.closed:
            logger.warning(f"[registry] Refusing closed sink {sink!r} for {correlation_id}")
            return False

        sinks = self._subscriptions.setdefault(correlation_id, [])
        sinks.append(sink)
        sink.on_close(lambda: self.unregister(correlation_id, sink))
        logger.info(f"[registry] Client connected for {correlation_id} ({len(sinks)} total)")

        event = build_event(correlation_id, EventType.CONNECTED)
        try:
            sink.send(event, event.encode())
        except Exception as e:
            logger.error(f"[registry] {DeliveryFailure(correlation_id, sink, e)}")

        return True

    def unregister(self, correlation_id: str, sink: EventSink) -> bool:
        """
        Remove a subscription. Idempotent.

        Returns:
            True if the sink was removed, False if it was not registered
        """
        sinks = self._subscriptions.get(correlation_id)
        if not sinks or sink not in sinks:
            return False

        sinks.remove(sink)
        if not sinks:
            del self._subscriptions[correlation_id]

        logger.info(f"[registry] Client disconnected for {correlation_id} ({len(sinks)} remaining)")
        return True

    def subscribers(self, correlation_id: str) -> tuple[EventSink, ...]:
        """Snapshot of the current subscribers."""
        return tuple(self._subscriptions.get(correlation_id, ()))

    def subscriber_count(self, correlation_id: str) -> int:
        return len(self._subscriptions.get(correlation_id, ()))

    @property
    def correlation_ids(self) -> list[str]:
        return list(self._subscriptions.keys())
