"""
Airtable Record Client for lanehub.

Read-only async access to Airtable's REST API, used as the external
relational store behind context assembly.

Usage:
    async with AirtableClient(AirtableConfig(api_key="pat...", base_id="app...")) as client:
        record = await client.find("tblInitiator", "rec123")

API Reference:
    https://airtable.com/developers/web/api/get-record
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from lanehub.integrations.base import IntegrationClient, IntegrationConfig, IntegrationError
from lanehub.integrations.schemas import SourceRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AirtableConfig(IntegrationConfig):
    """Configuration for the Airtable client."""

    api_key: str = ""
    base_id: str = ""
    base_url: str = "https://api.airtable.com"

    def __post_init__(self):
        if not self.api_key:
            raise ValueError("Airtable API key is required")
        if not self.base_id:
            raise ValueError("Airtable base id is required")


class AirtableClient(IntegrationClient):
    """
    Async Airtable client implementing the RecordStore protocol.

    Authentication uses a bearer token (personal access token).
    """

    def __init__(self, config: AirtableConfig):
        super().__init__(config)
        self._config: AirtableConfig = config

    @property
    def name(self) -> str:
        return "airtable"

    @property
    def base_id(self) -> str:
        return self._config.base_id

    def _get_auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_key}"}

    def _record_path(self, table: str, record_id: str) -> str:
        return f"/v0/{self.base_id}/{quote(table, safe='')}/{quote(record_id, safe='')}"

    async def find(self, table: str, record_id: str) -> SourceRecord:
        """
        Fetch a single record by id.

        Args:
            table: Table id or name
            record_id: Record id (e.g. "recXXXXXXXXXXXXXX")

        Returns:
            The record with its fields

        Raises:
            NotFoundError: If the record does not exist
            IntegrationError: On any other failure, including a success
                response whose body is not a record
        """
        response = await self._request("GET", self._record_path(table, record_id))
        try:
            record = SourceRecord.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise IntegrationError(
                f"Malformed record body for {table}/{record_id}: {e}",
                self.name,
                status_code=response.status_code,
                response_body=response.text,
            ) from e
        logger.debug(f"[airtable] Fetched {table}/{record.id} ({len(record.fields)} fields)")
        return record
