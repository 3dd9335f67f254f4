"""
Context API.

    GET /api/context/assemble?recordId=...&laneId=...
    GET /api/context/preview?workflowId=...&entityId=...&contentTypeId=...
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from lanehub.app.dependencies import Services, get_services
from lanehub.assembly import AssemblyFailed
from lanehub.integrations import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/context", tags=["context"])


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


@router.get("/assemble")
async def assemble_context(
    record_id: str | None = Query(None, alias="recordId"),
    lane_id: str | None = Query(None, alias="laneId"),
    services: Services = Depends(get_services),
) -> Any:
    """Assemble the UnifiedContext for a primary record."""
    if not record_id:
        return _error(400, "recordId query parameter is required")

    try:
        context = await services.assembler.assemble(record_id, lane_id=lane_id)
    except AssemblyFailed as e:
        status_code = 404 if isinstance(e.cause, NotFoundError) else 500
        return _error(status_code, str(e), error_type="assembly_failed")

    return {"success": True, "data": context.to_dict()}


@router.get("/preview")
async def preview_context(
    workflow_id: str | None = Query(None, alias="workflowId"),
    entity_id: str | None = Query(None, alias="entityId"),
    content_type_id: str | None = Query(None, alias="contentTypeId"),
    goal: str | None = None,
    audience: str | None = None,
    brief: str | None = None,
    services: Services = Depends(get_services),
) -> Any:
    """Preview what a new request would assemble."""
    if not (workflow_id and entity_id and content_type_id):
        return _error(400, "workflowId, entityId, and contentTypeId query parameters are required")

    preview = await services.assembler.preview(
        workflow_id,
        entity_id,
        content_type_id,
        goal=goal,
        audience=audience,
        brief=brief,
    )
    return {"success": True, "data": preview}
