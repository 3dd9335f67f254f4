"""
Context Assembler.

Builds the UnifiedContext for a primary (initiator) record by following its
links into the workflow, entity, content-type and tool tables.

Flow:
    1. Fetch the primary record (fatal on failure -> AssemblyFailed)
    2. Resolve link ids through the alias catalog
    3. Fetch linked records concurrently; each failure degrades one section
    4. Plan active lanes
    5. Compose sections, applying defaults where inputs are missing

Usage:
    assembler = ContextAssembler(store, tables=settings.tables)
    context = await assembler.assemble("rec123", lane_id="A1.1")
    document = context.to_dict()

The assembler never writes and never caches; every call reads fresh.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from lanehub.assembly.aliases import AliasCatalog
from lanehub.assembly.context import (
    DEFAULT_AUDIENCE_PRIORITY,
    DEFAULT_SCHEMA_VERSION,
    UNKNOWN_NAME,
    AppContext,
    AudienceContext,
    ContentTypeContract,
    ContextMeta,
    EntityContext,
    OutputContract,
    ResearchContext,
    Routing,
    RoutingCallbacks,
    ToolContext,
    UnifiedContext,
    UserInput,
    idempotency_key,
)
from lanehub.assembly.errors import AssemblyFailed, LinkedFetchError, MalformedPayload
from lanehub.assembly.fields import first_link, link_ids, resolve
from lanehub.assembly.json_fields import decode_json_field, decode_json_list
from lanehub.assembly.lanes import LanePlanner
from lanehub.config.schemas import TableIds
from lanehub.integrations.base import IntegrationError, RecordStore
from lanehub.integrations.schemas import SourceRecord

if TYPE_CHECKING:
    from lanehub.config.schemas import AppSettings

logger = logging.getLogger(__name__)

KB_XML_TEMPLATE = """<kb xmlns:brand="urn:brand" xmlns:marketing="urn:marketing">
  {brand}
  {marketing}
</kb>"""

KB_PREVIEW_LENGTH = 500
CHARS_PER_TOKEN = 4


@dataclass(frozen=True, kw_only=True, slots=True)
class AssemblyDefaults:
    """Fallback values for routing and the content-type contract."""

    provider: str = "openai"
    model: str = "gpt-4"
    webhook_url: str | None = None
    event_stream_path: str = "/api/events/{correlation_id}"
    destination_table: str = "Articles"

    @classmethod
    def from_settings(cls, settings: AppSettings) -> AssemblyDefaults:
        return cls(
            provider=settings.default_provider,
            model=settings.default_model,
            webhook_url=settings.engine_webhook_url,
            event_stream_path=settings.event_stream_path,
            destination_table=settings.default_destination_table,
        )


# =============================================================================
# Linked fetch results
# =============================================================================


class FetchStatus(str, Enum):
    OK = "ok"
    ABSENT = "absent"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class LinkedFetch:
    """Outcome of fetching one linked record."""

    link: str
    record_id: str | None
    status: FetchStatus
    record: SourceRecord | None = None
    error: LinkedFetchError | None = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


# =============================================================================
# Assembler
# =============================================================================


class ContextAssembler:
    """
    Assembles UnifiedContext documents from the record store.

    Only the primary fetch is fatal. A linked record that is missing or
    fails to load leaves its section at the documented defaults.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        tables: TableIds | None = None,
        catalog: AliasCatalog | None = None,
        planner: LanePlanner | None = None,
        defaults: AssemblyDefaults | None = None,
    ):
        self._store = store
        self._tables = tables or TableIds()
        self._catalog = catalog or AliasCatalog.default()
        self._planner = planner or LanePlanner(self._catalog)
        self._defaults = defaults or AssemblyDefaults()

    @property
    def catalog(self) -> AliasCatalog:
        return self._catalog

    async def assemble(self, correlation_id: str, lane_id: str | None = None) -> UnifiedContext:
        """
        Build the UnifiedContext for a primary record.

        Args:
            correlation_id: Primary record id
            lane_id: Optional sub-lane, folded into the idempotency key

        Raises:
            AssemblyFailed: If the primary record cannot be fetched
        """
        logger.info(f"[context_assembly] Starting assembly for {correlation_id}")

        try:
            primary = await self._store.find(self._tables.initiator, correlation_id)
        except IntegrationError as e:
            logger.error(f"[context_assembly] Primary fetch failed for {correlation_id}: {e}")
            raise AssemblyFailed(correlation_id, e) from e

        workflow_id = first_link(self._get(primary, "workflow_link"))
        entity_id = first_link(self._get(primary, "entity_link"))
        content_type_id = first_link(self._get(primary, "content_type_link"))
        tool_ids = link_ids(self._get(primary, "tools_link"))

        workflow_fetch, entity_fetch, content_type_fetch, *tool_fetches = await asyncio.gather(
            asyncio.create_task(
                self._fetch_linked("workflow", self._tables.workflows, workflow_id),
                name=f"fetch_workflow_{correlation_id}",
            ),
            asyncio.create_task(
                self._fetch_linked("entity", self._tables.entities, entity_id),
                name=f"fetch_entity_{correlation_id}",
            ),
            asyncio.create_task(
                self._fetch_linked("content_type", self._tables.content_types, content_type_id),
                name=f"fetch_content_type_{correlation_id}",
            ),
            *(
                asyncio.create_task(
                    self._fetch_linked("tool", self._tables.tools, tool_id),
                    name=f"fetch_tool_{tool_id}",
                )
                for tool_id in tool_ids
            ),
        )

        workflow = workflow_fetch.record
        entity = entity_fetch.record
        content_type = content_type_fetch.record
        tools = [fetch.record for fetch in tool_fetches if fetch.ok]

        logger.info(
            f"[context_assembly] {correlation_id}: "
            f"workflow={workflow_fetch.status.value}, entity={entity_fetch.status.value}, "
            f"content_type={content_type_fetch.status.value}, "
            f"tools={len(tools)}/{len(tool_ids)}"
        )

        validators = self._decode_list(content_type, "content_type.validators")

        context = UnifiedContext(
            meta=ContextMeta(
                correlation_id=correlation_id,
                workflow_id=workflow.id if workflow else None,
                content_type_id=content_type.id if content_type else None,
                idempotency_key=idempotency_key(correlation_id, lane_id),
            ),
            routing=self._build_routing(correlation_id, primary, workflow),
            app_context=self._build_app_context(primary, entity),
            entity_context=self._build_entity_context(primary, entity),
            audience_context=self._build_audience_context(primary),
            research=ResearchContext(),
            tools=[self._build_tool(tool) for tool in tools],
            content_type=self._build_content_type(content_type, validators),
            lane_plan=self._planner.activations(primary, workflow),
            prior_steps=[],
            rules=self._build_rules(workflow, validators),
            user_input=self._build_user_input(primary),
        )

        logger.info(
            f"[context_assembly] Assembly complete for {correlation_id}: "
            f"{len(context.lane_plan)} active lanes"
        )
        return context

    async def preview(
        self,
        workflow_id: str,
        entity_id: str,
        content_type_id: str,
        *,
        goal: str | None = None,
        audience: str | None = None,
        brief: str | None = None,
    ) -> dict[str, Any]:
        """
        Summarize what a new request would assemble, without a primary record.

        Each of the three fetches is non-fatal; a missing record is reported
        as None in its slot.
        """
        workflow_fetch, entity_fetch, content_type_fetch = await asyncio.gather(
            self._fetch_linked("workflow", self._tables.workflows, workflow_id),
            self._fetch_linked("entity", self._tables.entities, entity_id),
            self._fetch_linked("content_type", self._tables.content_types, content_type_id),
        )
        workflow = workflow_fetch.record
        entity = entity_fetch.record
        content_type = content_type_fetch.record

        brand_kb = _text(self._get(entity, "brand_kb"), "")
        audience_kb = _text(self._get(entity, "audience_kb"), "")
        user_input = {"goal": goal or "", "audience": audience or "", "brief": brief or ""}

        total_chars = len(brand_kb) + len(audience_kb) + sum(len(v) for v in user_input.values())

        return {
            "workflow": {
                "name": self._get(workflow, "record_name"),
                "description": self._get(workflow, "description"),
            } if workflow else None,
            "entity": {
                "name": self._get(entity, "record_name"),
                "brand_kb_preview": _truncate(brand_kb, KB_PREVIEW_LENGTH),
                "audience_kb_preview": _truncate(audience_kb, KB_PREVIEW_LENGTH),
            } if entity else None,
            "content_type": {
                "name": self._get(content_type, "record_name"),
                "destination_table": self._get(content_type, "content_type.destination"),
            } if content_type else None,
            "user_input": user_input,
            "estimated_tokens": round(total_chars / CHARS_PER_TOKEN),
        }

    # =========================================================================
    # Fetching
    # =========================================================================

    async def _fetch_linked(self, link: str, table: str, record_id: str | None) -> LinkedFetch:
        if not record_id:
            return LinkedFetch(link=link, record_id=None, status=FetchStatus.ABSENT)

        try:
            record = await self._store.find(table, record_id)
        except IntegrationError as e:
            error = LinkedFetchError(link, record_id, e)
            logger.warning(f"[context_assembly] {error}")
            return LinkedFetch(link=link, record_id=record_id, status=FetchStatus.FAILED, error=error)

        return LinkedFetch(link=link, record_id=record_id, status=FetchStatus.OK, record=record)

    # =========================================================================
    # Field access
    # =========================================================================

    def _get(self, record: SourceRecord | None, key: str) -> Any:
        if record is None:
            return None
        return resolve(record.fields, self._catalog.aliases(key))

    def _decode(self, record: SourceRecord | None, key: str) -> Any:
        try:
            return decode_json_field(self._get(record, key), key)
        except MalformedPayload as e:
            logger.warning(f"[context_assembly] {record.id}: {e}, treating as absent")
            return None

    def _decode_list(self, record: SourceRecord | None, key: str) -> list[Any] | None:
        try:
            return decode_json_list(self._get(record, key), key)
        except MalformedPayload as e:
            logger.warning(f"[context_assembly] {record.id}: {e}, treating as absent")
            return None

    # =========================================================================
    # Section builders
    # =========================================================================

    def _build_routing(
        self,
        correlation_id: str,
        primary: SourceRecord,
        workflow: SourceRecord | None,
    ) -> Routing:
        return Routing(
            provider=_text(self._get(workflow, "workflow.provider"), self._defaults.provider),
            model=_text(self._get(workflow, "workflow.model"), self._defaults.model),
            webhook=_text(self._get(primary, "webhook_url"), self._defaults.webhook_url),
            callbacks=RoutingCallbacks(
                sse_channel=self._defaults.event_stream_path.format(correlation_id=correlation_id),
            ),
        )

    def _build_app_context(self, primary: SourceRecord, entity: SourceRecord | None) -> AppContext:
        kb_bundle = _text(self._get(primary, "brand_kb"), "")
        if entity is None:
            return AppContext(kb_xml_bundle=kb_bundle)

        return AppContext(
            app_id=_text(self._get(entity, "entity.app_id"), entity.id),
            name=_text(self._get(entity, "record_name"), UNKNOWN_NAME),
            capabilities=_as_list(self._decode(entity, "entity.capabilities")),
            docs=_as_list(self._decode(entity, "entity.links")),
            kb_xml_bundle=kb_bundle,
        )

    def _build_entity_context(self, primary: SourceRecord, entity: SourceRecord | None) -> EntityContext:
        kb_xml = KB_XML_TEMPLATE.format(
            brand=_text(self._get(primary, "brand_kb"), ""),
            marketing=_text(self._get(primary, "marketing_kb"), ""),
        )
        if entity is None:
            return EntityContext(kb_xml=kb_xml)

        return EntityContext(
            entity_id=entity.id,
            name=_text(self._get(entity, "record_name"), UNKNOWN_NAME),
            kb_xml=kb_xml,
            tags=_as_list(self._get(entity, "tags")),
        )

    def _build_audience_context(self, primary: SourceRecord) -> AudienceContext:
        priority = self._get(primary, "audience_priority")
        return AudienceContext(
            kb_xml=_text(self._get(primary, "audience_kb"), ""),
            personas=_as_list(self._get(primary, "personas")),
            priority=DEFAULT_AUDIENCE_PRIORITY if priority is None else priority,
        )

    def _build_tool(self, tool: SourceRecord) -> ToolContext:
        name = _text(self._get(tool, "record_name"), UNKNOWN_NAME)
        return ToolContext(
            name=name,
            cred=f"kb:cred-ref:{credential_slug(name)}_v1",
            endpoint=_text(self._get(tool, "tool.endpoint"), ""),
        )

    def _build_content_type(
        self,
        content_type: SourceRecord | None,
        validators: list[Any] | None,
    ) -> ContentTypeContract:
        if content_type is None:
            return ContentTypeContract(
                output_contract=OutputContract(destination_table=self._defaults.destination_table),
            )

        return ContentTypeContract(
            id=content_type.id,
            name=_text(self._get(content_type, "record_name"), UNKNOWN_NAME),
            schema_version=_text(
                self._get(content_type, "content_type.schema_version"), DEFAULT_SCHEMA_VERSION
            ),
            output_contract=OutputContract(
                destination_table=_text(
                    self._get(content_type, "content_type.destination"),
                    self._defaults.destination_table,
                ),
                fields=self._decode(content_type, "content_type.fields_schema") or [],
                validators=validators or [],
            ),
        )

    def _build_rules(self, workflow: SourceRecord | None, validators: list[Any] | None) -> list[Any]:
        """Content-type validators first, then the workflow's own rules."""
        rules: list[Any] = []

        for validator in validators or []:
            if not isinstance(validator, dict):
                logger.warning(f"[context_assembly] Skipping non-object validator: {validator!r}")
                continue
            rules.append({
                "type": "validator",
                "name": validator.get("name"),
                "value": validator.get("value"),
            })

        workflow_rules = self._decode_list(workflow, "workflow.rules")
        if workflow_rules:
            rules.extend(workflow_rules)

        return rules

    def _build_user_input(self, primary: SourceRecord) -> UserInput:
        return UserInput(
            goal=self._get(primary, "goal"),
            audience=self._get(primary, "audience"),
            brief=self._get(primary, "brief"),
            tags=_as_list(self._get(primary, "tags")),
        )


# =============================================================================
# Helpers
# =============================================================================


def credential_slug(name: str) -> str:
    """Lowercase, whitespace runs collapsed to underscores."""
    return "_".join(name.lower().split())


def _text(value: Any, default: Any) -> Any:
    if isinstance(value, str) and value:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def _as_list(value: Any) -> list[Any]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
