"""
In-memory record store.

Used for local development (no Airtable credentials configured) and in
tests. Mirrors the RecordStore contract: ``find`` raises NotFoundError for
unknown records.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from lanehub.integrations.base import NotFoundError
from lanehub.integrations.schemas import SourceRecord

logger = logging.getLogger(__name__)


class MemoryRecordStore:
    """
    Dictionary-backed store keyed by (table, record id).

    Example:
        store = MemoryRecordStore()
        store.add("initiator", "rec123", {"Goal": "Launch post"})
        record = await store.find("initiator", "rec123")
    """

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], SourceRecord] = {}

    @property
    def name(self) -> str:
        return "memory"

    def add(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any] | None = None,
    ) -> SourceRecord:
        """Store a record, replacing any existing one with the same id."""
        record = SourceRecord(id=record_id, fields=dict(fields or {}))
        self._records[(table, record_id)] = record
        return record

    def remove(self, table: str, record_id: str) -> bool:
        return self._records.pop((table, record_id), None) is not None

    async def find(self, table: str, record_id: str) -> SourceRecord:
        record = self._records.get((table, record_id))
        if record is None:
            raise NotFoundError(
                f"Record {record_id} not found in {table}",
                self.name,
                status_code=404,
            )
        return record

    def __len__(self) -> int:
        return len(self._records)
