"""
Dependency Injection for lanehub.

Settings come from LANEHUB_* environment variables. Services (record store,
connection registry, event bus, context assembler) are built once per
application and stored on `app.state.services`; route handlers reach them
through get_services().
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request

from lanehub.assembly import AliasCatalog, AssemblyDefaults, ContextAssembler, LanePlanner
from lanehub.config.schemas import AppSettings, TableIds
from lanehub.events import ConnectionRegistry, EventBus
from lanehub.integrations import AirtableClient, AirtableConfig, MemoryRecordStore, RecordStore

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    defaults = TableIds()
    return AppSettings(
        # Service
        service_name=os.getenv("LANEHUB_SERVICE_NAME", "lanehub"),
        environment=os.getenv("LANEHUB_ENVIRONMENT", "development"),
        debug=_env_flag("LANEHUB_DEBUG", "false"),
        log_level=os.getenv("LANEHUB_LOG_LEVEL", "INFO"),
        # Record store
        airtable_api_key=os.getenv("LANEHUB_AIRTABLE_API_KEY", ""),
        airtable_base_id=os.getenv("LANEHUB_AIRTABLE_BASE_ID", ""),
        airtable_base_url=os.getenv("LANEHUB_AIRTABLE_BASE_URL", "https://api.airtable.com"),
        store_timeout=float(os.getenv("LANEHUB_STORE_TIMEOUT", "30")),
        log_store_traffic=_env_flag("LANEHUB_LOG_STORE_TRAFFIC", "false"),
        tables=TableIds(
            initiator=os.getenv("LANEHUB_TABLE_INITIATOR", defaults.initiator),
            workflows=os.getenv("LANEHUB_TABLE_WORKFLOWS", defaults.workflows),
            entities=os.getenv("LANEHUB_TABLE_ENTITIES", defaults.entities),
            content_types=os.getenv("LANEHUB_TABLE_CONTENT_TYPES", defaults.content_types),
            tools=os.getenv("LANEHUB_TABLE_TOOLS", defaults.tools),
        ),
        # Execution engine routing
        engine_webhook_url=os.getenv("LANEHUB_ENGINE_WEBHOOK_URL") or None,
        default_provider=os.getenv("LANEHUB_DEFAULT_PROVIDER", "openai"),
        default_model=os.getenv("LANEHUB_DEFAULT_MODEL", "gpt-4"),
        default_destination_table=os.getenv("LANEHUB_DEFAULT_DESTINATION_TABLE", "Articles"),
        # Event streaming
        event_stream_path=os.getenv("LANEHUB_EVENT_STREAM_PATH", "/api/events/{correlation_id}"),
        heartbeat_interval=float(os.getenv("LANEHUB_HEARTBEAT_INTERVAL", "30")),
        streaming_enabled=_env_flag("LANEHUB_STREAMING_ENABLED", "true"),
        polling_fallback_path=os.getenv("LANEHUB_POLLING_FALLBACK_PATH") or None,
        # Alias catalog
        alias_catalog_path=os.getenv("LANEHUB_ALIAS_CATALOG_PATH") or None,
    )


@dataclass
class Services:
    """Application-scoped collaborators."""

    settings: AppSettings
    store: RecordStore
    registry: ConnectionRegistry
    bus: EventBus
    assembler: ContextAssembler

    async def aclose(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            await close()


def build_store(settings: AppSettings) -> RecordStore:
    """Airtable when credentials are configured, otherwise an empty in-memory store."""
    if not settings.has_airtable:
        logger.warning(
            "[dependencies] No Airtable credentials configured, "
            "using empty in-memory record store"
        )
        return MemoryRecordStore()

    return AirtableClient(
        AirtableConfig(
            api_key=settings.airtable_api_key.get_secret_value(),
            base_id=settings.airtable_base_id,
            base_url=settings.airtable_base_url,
            timeout=settings.store_timeout,
            log_requests=settings.log_store_traffic,
            log_responses=settings.log_store_traffic,
        )
    )


def build_services(settings: AppSettings, store: RecordStore | None = None) -> Services:
    """
    Wire the application services.

    Args:
        settings: Application settings
        store: Record store override (tests, local fixtures)
    """
    if settings.alias_catalog_path:
        catalog = AliasCatalog.from_file(settings.alias_catalog_path)
    else:
        catalog = AliasCatalog.default()

    store = store if store is not None else build_store(settings)
    registry = ConnectionRegistry()

    services = Services(
        settings=settings,
        store=store,
        registry=registry,
        bus=EventBus(registry),
        assembler=ContextAssembler(
            store,
            tables=settings.tables,
            catalog=catalog,
            planner=LanePlanner(catalog),
            defaults=AssemblyDefaults.from_settings(settings),
        ),
    )
    logger.info(f"[dependencies] Services ready (store={store.name})")
    return services


def get_services(request: Request) -> Services:
    return request.app.state.services
