"""
Configuration Schemas for lanehub.

Pydantic models for application settings.

Security:
    The store API key uses SecretStr to prevent accidental logging
    of credentials. Access the value with `.get_secret_value()`.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, SecretStr


class TableIds(BaseModel):
    """Physical table ids in the record store."""

    initiator: str = Field("tblBCiyCEEFJCJ1nO", description="Primary (initiator) records")
    workflows: str = Field("tblwCDWd0pm7f3OK2", description="Workflow records")
    entities: str = Field("tbl9q3pHR5qtALyzm", description="Entity records")
    content_types: str = Field("tbl1ywo3FVRw8skix", description="Content-type records")
    tools: str = Field("tblO5ZEgmxJVI3FIR", description="Tool records")


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access.

    Security:
        The Airtable key uses SecretStr to prevent accidental logging.
        Access secret values with: settings.airtable_api_key.get_secret_value()
    """

    # Service identity
    service_name: str = "lanehub"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Record store
    airtable_api_key: SecretStr = Field(default=SecretStr(""), description="Airtable access token")
    airtable_base_id: str = Field(default="", description="Airtable base holding the initiator table")
    airtable_base_url: str = "https://api.airtable.com"
    store_timeout: float = Field(30.0, gt=0, description="Per-request store timeout in seconds")
    log_store_traffic: bool = Field(False, description="Debug-log every store request and response")
    tables: TableIds = Field(default_factory=TableIds)

    # Execution engine routing
    engine_webhook_url: str | None = Field(None, description="Fallback engine webhook target")
    default_provider: str = "openai"
    default_model: str = "gpt-4"
    default_destination_table: str = "Articles"

    # Event streaming
    event_stream_path: str = "/api/events/{correlation_id}"
    heartbeat_interval: float = Field(30.0, gt=0, description="Seconds between idle heartbeats")
    streaming_enabled: bool = Field(True, description="Disable on stateless deployments")
    polling_fallback_path: str | None = Field(
        None,
        description="External status endpoint clients should poll when streaming is disabled",
    )

    # Alias catalog override (defaults to the bundled field_aliases.json)
    alias_catalog_path: str | None = None

    @property
    def has_airtable(self) -> bool:
        return bool(self.airtable_api_key.get_secret_value() and self.airtable_base_id)
