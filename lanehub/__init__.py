"""
lanehub - Workflow context assembly and lane progress hub.

lanehub sits between a record store (Airtable) and a lane execution engine:

- **Context Assembly**: Follows a primary record's links into workflow,
  entity, content-type and tool records and builds one UnifiedContext
- **Tolerant Field Mapping**: Logical field names resolve through an alias
  catalog, so renamed columns keep working
- **Lane Planning**: Derives the active sub-lanes (A1.1 .. J5.1) from branch
  toggles and prompt linkages
- **Progress Fan-out**: Relays engine webhooks to live SSE subscribers

Quick Start:
    >>> from lanehub import ContextAssembler
    >>> from lanehub.integrations import MemoryRecordStore
    >>>
    >>> store = MemoryRecordStore()
    >>> store.add("tblBCiyCEEFJCJ1nO", "rec123", {"Goal": "Launch post"})
    >>> context = await ContextAssembler(store).assemble("rec123")
    >>> context.to_dict()["user_input"]["goal"]
    'Launch post'
"""

__version__ = "0.1.0"

from lanehub.assembly import ContextAssembler, UnifiedContext
from lanehub.events import ConnectionRegistry, EventBus, EventType

__all__ = [
    "__version__",
    "ContextAssembler",
    "UnifiedContext",
    "EventBus",
    "EventType",
    "ConnectionRegistry",
]
