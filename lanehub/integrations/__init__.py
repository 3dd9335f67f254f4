"""
lanehub Integrations Layer.

Clients for the external relational store that holds initiator, workflow,
entity, content-type and tool records.

Directory Structure:
    integrations/
    ├── base.py       # RecordStore protocol, IntegrationClient, errors
    ├── schemas.py    # SourceRecord
    ├── airtable.py   # AirtableClient (production)
    └── memory.py     # MemoryRecordStore (development, tests)
"""

from lanehub.integrations.airtable import AirtableClient, AirtableConfig
from lanehub.integrations.base import (
    AuthenticationError,
    IntegrationClient,
    IntegrationConfig,
    IntegrationError,
    NotFoundError,
    RateLimitError,
    RecordStore,
    ValidationError,
)
from lanehub.integrations.memory import MemoryRecordStore
from lanehub.integrations.schemas import FieldValue, SourceRecord

__all__ = [
    "AirtableClient",
    "AirtableConfig",
    "AuthenticationError",
    "FieldValue",
    "IntegrationClient",
    "IntegrationConfig",
    "IntegrationError",
    "MemoryRecordStore",
    "NotFoundError",
    "RateLimitError",
    "RecordStore",
    "SourceRecord",
    "ValidationError",
]
