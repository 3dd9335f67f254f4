"""
UnifiedContext (v0.4).

The single structured document handed to the lane execution engine. Every
section is always present; inputs that could not be found are replaced by
the defaults documented on each model, never omitted.

Section order in the serialized document:
    meta, routing, app_context, entity_context, audience_context, research,
    tools, content_type, lane_plan, prior_steps, rules, user_input
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lanehub.assembly.lanes import LaneActivation

CONTEXT_SCHEMA = "unified-context"
CONTEXT_VERSION = "0.4"
DEFAULT_SCHEMA_VERSION = "1.0.0"
DEFAULT_AUDIENCE_PRIORITY = 5
UNKNOWN_NAME = "Unknown"


def idempotency_key(correlation_id: str, lane_id: str | None = None) -> str:
    """
    Key the engine uses to deduplicate lane executions.

    Pure: the same inputs always produce the same key. Correlation ids are
    store record ids ("rec..."), which never contain ":", so the key splits
    back into (correlation_id, lane_id) on the first colon.
    """
    return f"{correlation_id}:{lane_id}" if lane_id else correlation_id


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =============================================================================
# Sections
# =============================================================================


class ContextMeta(_Section):
    schema_name: str = Field(CONTEXT_SCHEMA, alias="schema")
    version: str = CONTEXT_VERSION
    correlation_id: str
    workflow_id: str | None = None
    content_type_id: str | None = None
    idempotency_key: str
    timestamp: str = Field(default_factory=_utc_timestamp)


class RoutingCallbacks(_Section):
    sse_channel: str


class Routing(_Section):
    """Where the engine should send the work and report progress."""

    provider: str
    model: str
    webhook: str | None = None
    callbacks: RoutingCallbacks


class AppContext(_Section):
    app_id: str | None = None
    name: str = UNKNOWN_NAME
    capabilities: list[Any] = Field(default_factory=list)
    docs: list[Any] = Field(default_factory=list)
    kb_xml_bundle: str = ""


class EntityContext(_Section):
    entity_id: str | None = None
    name: str = UNKNOWN_NAME
    kb_xml: str = ""
    tags: list[Any] = Field(default_factory=list)


class AudienceContext(_Section):
    kb_xml: str = ""
    personas: list[Any] = Field(default_factory=list)
    priority: Any = DEFAULT_AUDIENCE_PRIORITY


class ResearchContext(_Section):
    cache_refs: list[Any] = Field(default_factory=list)
    xml_kb: str = ""
    reports: list[Any] = Field(default_factory=list)


class ToolContext(_Section):
    name: str = UNKNOWN_NAME
    cred: str
    endpoint: str = ""


class OutputContract(_Section):
    destination_table: str
    fields: Any = Field(default_factory=list)
    validators: list[Any] = Field(default_factory=list)


class ContentTypeContract(_Section):
    id: str | None = None
    name: str = UNKNOWN_NAME
    schema_version: str = DEFAULT_SCHEMA_VERSION
    output_contract: OutputContract


class UserInput(_Section):
    goal: Any = None
    audience: Any = None
    brief: Any = None
    tags: list[Any] = Field(default_factory=list)


# =============================================================================
# Document
# =============================================================================


class UnifiedContext(_Section):
    """
    Assembled context for one correlation id.

    Immutable once built. Use to_dict() for the JSON document; it uses the
    wire names (meta.schema) rather than the Python attribute names.
    """

    meta: ContextMeta
    routing: Routing
    app_context: AppContext
    entity_context: EntityContext
    audience_context: AudienceContext
    research: ResearchContext = Field(default_factory=ResearchContext)
    tools: list[ToolContext] = Field(default_factory=list)
    content_type: ContentTypeContract
    lane_plan: list[LaneActivation] = Field(default_factory=list)
    prior_steps: list[dict[str, Any]] = Field(default_factory=list)
    rules: list[Any] = Field(default_factory=list)
    user_input: UserInput = Field(default_factory=UserInput)

    @property
    def correlation_id(self) -> str:
        return self.meta.correlation_id

    @property
    def active_lanes(self) -> list[str]:
        return [entry.lane for entry in self.lane_plan if entry.enabled]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
