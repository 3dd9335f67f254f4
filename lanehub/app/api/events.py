"""
Event Stream API.

    GET  /api/events/{correlation_id}        SSE stream of lane progress
    POST /api/events/{correlation_id}/lane   engine progress webhook

On stateless deployments (streaming_enabled=false) the stream endpoint
answers 501, pointing at the external polling endpoint when one is
configured, and the webhook acknowledges events without emitting them.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError as PydanticValidationError

from lanehub.app.dependencies import Services, get_services
from lanehub.events import LaneWebhookPayload, QueueSink, WebhookAck, dispatch_lane_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.get("/{correlation_id}")
async def stream_events(
    correlation_id: str,
    services: Services = Depends(get_services),
) -> Any:
    """Subscribe to progress events for one correlation id."""
    settings = services.settings
    if not settings.streaming_enabled:
        content: dict[str, Any] = {
            "ok": False,
            "message": "Event streaming is disabled on this deployment. Use polling instead.",
        }
        if settings.polling_fallback_path:
            content["fallback"] = settings.polling_fallback_path.format(correlation_id=correlation_id)
        return JSONResponse(status_code=501, content=content)

    logger.info(f"[events] Client connecting for {correlation_id}")
    sink = QueueSink(name=f"sse-{correlation_id}")

    async def event_stream() -> AsyncIterator[str]:
        # Registered only once the body starts, so an early disconnect leaves nothing behind
        services.registry.register(correlation_id, sink)
        try:
            async for frame in sink.stream(heartbeat_interval=settings.heartbeat_interval):
                yield frame
        finally:
            sink.close()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/{correlation_id}/lane")
async def lane_webhook(
    correlation_id: str,
    body: dict[str, Any] = Body(default_factory=dict),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Receive a lane progress report from the execution engine."""
    event_type = body.get("event_type")

    if not services.settings.streaming_enabled:
        logger.info(f"[events] Streaming disabled, not emitting {event_type} for {correlation_id}")
        return {
            "success": True,
            "message": "Event received (streaming disabled). Use polling tracker.",
            "forwarded": False,
            "delivered": 0,
        }

    try:
        payload = LaneWebhookPayload.model_validate(body)
    except PydanticValidationError as e:
        logger.warning(f"[events] Invalid lane webhook body for {correlation_id}: {e.error_count()} error(s)")
        return WebhookAck(forwarded=False, event_type=event_type if isinstance(event_type, str) else None).to_dict()

    return dispatch_lane_event(services.bus, correlation_id, payload).to_dict()
