"""
Tests for progress event fan-out.

Tests cover:
- Payload shapes per event type
- Connection registry lifecycle
- EventBus broadcast, drops and delivery failures
- QueueSink streaming (heartbeats, done, close)
"""

import asyncio
import json

import pytest

from lanehub.events import (
    HEARTBEAT,
    ConnectionRegistry,
    EventBus,
    EventSink,
    EventType,
    ProgressEvent,
    QueueSink,
    SinkClosedError,
    build_event,
    build_payload,
)


def decode(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):-2])


def drain(sink: QueueSink) -> list[dict]:
    """Decode every frame currently queued on a sink."""
    frames = []
    while sink.pending:
        item = sink._queue.get_nowait()
        if item is None:
            break
        frames.append(decode(item[1]))
    return frames


class FailingSink:
    """EventSink whose writes always fail."""

    closed = False

    def __init__(self):
        self.attempts = 0

    def send(self, event, message):
        self.attempts += 1
        raise ConnectionResetError("peer went away")

    def on_close(self, callback):
        pass


# =============================================================================
# Catalog
# =============================================================================


class TestPayloads:
    """Tests for build_payload()."""

    def test_lane_start(self):
        assert build_payload(EventType.LANE_START, {"lane": "A1.1", "prompt": "Outline"}) == {
            "lane": "A1.1",
            "prompt": "Outline",
            "message": "Starting lane A1.1",
        }

    def test_lane_finish_truncates_output(self):
        payload = build_payload(EventType.LANE_FINISH, {"lane": "A1.1", "output": "x" * 500, "eval_score": 8})
        assert payload["output_preview"] == "x" * 200
        assert payload["eval"] == {"score": 8}
        assert payload["message"] == "Completed lane A1.1"

    def test_lane_finish_without_output_or_score(self):
        payload = build_payload(EventType.LANE_FINISH, {"lane": "B2.1"})
        assert payload["output_preview"] == ""
        assert payload["eval"] is None

    def test_lane_error_message_from_dict(self):
        payload = build_payload(EventType.LANE_ERROR, {"lane": "A1.1", "error": {"message": "LLM timeout"}})
        assert payload["error"] == "LLM timeout"
        assert payload["message"] == "Error in lane A1.1"

    def test_lane_error_default(self):
        assert build_payload(EventType.LANE_ERROR, {"lane": "A1.1"})["error"] == "Unknown error"

    def test_publish(self):
        payload = build_payload(EventType.PUBLISH, {"content_type": "Articles", "output_id": "recOUT"})
        assert payload == {"content_type": "Articles", "output_id": "recOUT", "message": "Published to Articles"}

    def test_done_default_summary(self):
        assert build_payload(EventType.DONE) == {"summary": {}, "message": "Workflow complete"}

    def test_progress_merges_data(self):
        payload = build_payload(EventType.PROGRESS, {"message": "Halfway", "data": {"percent": 50}})
        assert payload == {"message": "Halfway", "percent": 50}
        assert build_payload(EventType.PROGRESS)["message"] == "Progress update"

    def test_event_envelope_cannot_be_overridden(self):
        event = ProgressEvent(
            type=EventType.PROGRESS,
            correlation_id="rec123",
            payload={"type": "spoofed", "correlation_id": "other", "message": "hi"},
        )
        body = decode(event.encode())
        assert body["type"] == "progress"
        assert body["correlation_id"] == "rec123"
        assert body["message"] == "hi"

    def test_envelope_keys_come_first(self):
        body = decode(build_event("rec123", EventType.DONE).encode())
        assert list(body)[:3] == ["type", "correlation_id", "timestamp"]


# =============================================================================
# Registry
# =============================================================================


class TestConnectionRegistry:
    """Tests for ConnectionRegistry."""

    def test_queue_sink_is_event_sink(self):
        assert isinstance(QueueSink(), EventSink)

    @pytest.mark.asyncio
    async def test_register_sends_connected_to_new_sink_only(self, registry):
        first, second = QueueSink(), QueueSink()
        registry.register("rec123", first)
        drain(first)

        registry.register("rec123", second)

        assert first.pending == 0
        frames = drain(second)
        assert [f["type"] for f in frames] == ["connected"]
        assert frames[0]["message"] == "Connected to event stream"
        assert registry.subscriber_count("rec123") == 2

    @pytest.mark.asyncio
    async def test_closed_sink_refused(self, registry):
        sink = QueueSink()
        sink.close()
        assert registry.register("rec123", sink) is False
        assert registry.subscriber_count("rec123") == 0

    @pytest.mark.asyncio
    async def test_close_unregisters(self, registry):
        sink = QueueSink()
        registry.register("rec123", sink)

        sink.close()

        assert registry.subscriber_count("rec123") == 0
        assert "rec123" not in registry.correlation_ids
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_unregister_is_idempotent(self, registry):
        sink = QueueSink()
        registry.register("rec123", sink)

        assert registry.unregister("rec123", sink) is True
        assert registry.unregister("rec123", sink) is False
        assert registry.unregister("recOTHER", sink) is False

    @pytest.mark.asyncio
    async def test_subscribers_is_snapshot(self, registry):
        sink = QueueSink()
        registry.register("rec123", sink)
        snapshot = registry.subscribers("rec123")

        registry.unregister("rec123", sink)

        assert snapshot == (sink,)
        assert registry.subscribers("rec123") == ()

    @pytest.mark.asyncio
    async def test_one_disconnect_leaves_others(self, registry):
        first, second = QueueSink(), QueueSink()
        registry.register("rec123", first)
        registry.register("rec123", second)

        first.close()

        assert registry.subscribers("rec123") == (second,)
        assert not second.closed


# =============================================================================
# EventBus
# =============================================================================


class TestEventBus:
    """Tests for EventBus.emit()."""

    @pytest.mark.asyncio
    async def test_lane_finish_delivered(self, registry, bus):
        sink = QueueSink()
        registry.register("rec123", sink)
        drain(sink)

        delivered = bus.emit("rec123", "lane_finish", {"lane": "A1.1", "output": "hello world", "eval_score": 8})

        assert delivered == 1
        [body] = drain(sink)
        assert body["type"] == "lane_finish"
        assert body["correlation_id"] == "rec123"
        assert body["lane"] == "A1.1"
        assert body["output_preview"] == "hello world"
        assert body["eval"] == {"score": 8}

    def test_no_subscribers_returns_zero(self, bus):
        assert bus.emit("recNOBODY", EventType.DONE) == 0

    def test_unknown_type_dropped(self, registry, bus):
        assert bus.emit("rec123", "lane_paused", {"lane": "A1.1"}) == 0

    @pytest.mark.asyncio
    async def test_unknown_type_not_written(self, registry, bus):
        sink = QueueSink()
        registry.register("rec123", sink)
        drain(sink)

        assert bus.emit("rec123", "lane_paused") == 0
        assert sink.pending == 0

    @pytest.mark.asyncio
    async def test_late_subscriber_gets_no_replay(self, registry, bus):
        bus.emit("rec123", "lane_start", {"lane": "A1.1"})

        sink = QueueSink()
        registry.register("rec123", sink)

        assert [f["type"] for f in drain(sink)] == ["connected"]

    @pytest.mark.asyncio
    async def test_fan_out_to_all_subscribers(self, registry, bus):
        sinks = [QueueSink() for _ in range(3)]
        for sink in sinks:
            registry.register("rec123", sink)
            drain(sink)

        assert bus.emit("rec123", "publish", {"content_type": "Articles", "output_id": "recOUT"}) == 3
        for sink in sinks:
            assert [f["output_id"] for f in drain(sink)] == ["recOUT"]

    @pytest.mark.asyncio
    async def test_other_correlation_ids_unaffected(self, registry, bus):
        mine, theirs = QueueSink(), QueueSink()
        registry.register("rec123", mine)
        registry.register("rec456", theirs)
        drain(mine)
        drain(theirs)

        bus.lane_start("rec123", "A1.1", prompt="Outline")

        assert len(drain(mine)) == 1
        assert theirs.pending == 0

    @pytest.mark.asyncio
    async def test_failing_sink_isolated(self, registry, bus):
        healthy = QueueSink()
        broken = FailingSink()
        registry.register("rec123", broken)
        registry.register("rec123", healthy)
        drain(healthy)

        delivered = bus.done("rec123", {"lanes": 1})

        assert delivered == 1
        assert broken.attempts == 2  # connected + done
        assert [f["type"] for f in drain(healthy)] == ["done"]
        # failing sinks stay registered until their own close signal fires
        assert registry.subscriber_count("rec123") == 2

    @pytest.mark.asyncio
    async def test_full_sink_is_delivery_failure(self, registry, bus):
        sink = QueueSink(max_pending=1)
        registry.register("rec123", sink)  # connected fills the queue

        assert bus.progress("rec123", "Working") == 0
        assert sink.pending == 1

    @pytest.mark.asyncio
    async def test_order_preserved(self, registry, bus):
        sink = QueueSink()
        registry.register("rec123", sink)
        drain(sink)

        bus.lane_start("rec123", "A1.1")
        bus.lane_finish("rec123", "A1.1", output="text")
        bus.lane_error("rec123", "A2.1", error="boom")
        bus.done("rec123")

        assert [f["type"] for f in drain(sink)] == ["lane_start", "lane_finish", "lane_error", "done"]


# =============================================================================
# QueueSink
# =============================================================================


class TestQueueSink:
    """Tests for QueueSink streaming."""

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self):
        sink = QueueSink()
        sink.close()
        with pytest.raises(SinkClosedError):
            sink.send(build_event("rec123", EventType.DONE), "data: {}\n\n")

    @pytest.mark.asyncio
    async def test_stream_ends_after_done(self, registry, bus):
        sink = QueueSink()
        registry.register("rec123", sink)
        bus.lane_start("rec123", "A1.1")
        bus.done("rec123")
        bus.progress("rec123", "after done")

        frames = [frame async for frame in sink.stream(heartbeat_interval=1.0)]

        assert [decode(f)["type"] for f in frames] == ["connected", "lane_start", "done"]
        assert sink.closed
        assert registry.subscriber_count("rec123") == 0

    @pytest.mark.asyncio
    async def test_heartbeat_when_idle(self):
        sink = QueueSink()
        stream = sink.stream(heartbeat_interval=0.01)

        assert await stream.__anext__() == HEARTBEAT
        assert await stream.__anext__() == HEARTBEAT

        await stream.aclose()
        assert sink.closed

    @pytest.mark.asyncio
    async def test_close_ends_waiting_stream(self, registry):
        sink = QueueSink()
        registry.register("rec123", sink)

        async def consume():
            return [frame async for frame in sink.stream(heartbeat_interval=5.0)]

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        sink.close()
        frames = await asyncio.wait_for(task, timeout=1.0)

        assert [decode(f)["type"] for f in frames] == ["connected"]
        assert registry.subscriber_count("rec123") == 0

    @pytest.mark.asyncio
    async def test_cancelled_stream_closes_sink(self, registry):
        sink = QueueSink()
        registry.register("rec123", sink)

        async def consume():
            async for _ in sink.stream(heartbeat_interval=5.0):
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sink.closed
        assert registry.subscriber_count("rec123") == 0

    @pytest.mark.asyncio
    async def test_on_close_after_close_runs_immediately(self):
        sink = QueueSink()
        sink.close()
        calls = []
        sink.on_close(lambda: calls.append(1))
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        sink = QueueSink()
        calls = []
        sink.on_close(lambda: calls.append(1))
        sink.close()
        sink.close()
        assert calls == [1]
