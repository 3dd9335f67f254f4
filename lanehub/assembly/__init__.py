"""
lanehub Context Assembly.

Turns a primary record and the records it links to into a UnifiedContext
for the lane execution engine.

Components:
    fields.py       Tolerant first-match field lookup
    aliases.py      Logical-name -> physical-alias catalog
    lanes.py        Active sub-lane planning
    context.py      UnifiedContext models and idempotency keys
    assembler.py    ContextAssembler (store reads + section composition)

Usage:
    from lanehub.assembly import ContextAssembler

    assembler = ContextAssembler(store)
    context = await assembler.assemble("rec123")
"""

from lanehub.assembly.aliases import AliasCatalog
from lanehub.assembly.assembler import (
    AssemblyDefaults,
    ContextAssembler,
    FetchStatus,
    LinkedFetch,
)
from lanehub.assembly.context import UnifiedContext, idempotency_key
from lanehub.assembly.errors import (
    AssemblyError,
    AssemblyFailed,
    LinkedFetchError,
    MalformedPayload,
)
from lanehub.assembly.fields import first_link, is_linked, link_ids, resolve
from lanehub.assembly.json_fields import decode_json_field, decode_json_list
from lanehub.assembly.lanes import LaneActivation, LanePlanner

__all__ = [
    # Catalog and resolution
    "AliasCatalog",
    "resolve",
    "first_link",
    "link_ids",
    "is_linked",
    "decode_json_field",
    "decode_json_list",
    # Planning
    "LanePlanner",
    "LaneActivation",
    # Assembly
    "ContextAssembler",
    "AssemblyDefaults",
    "LinkedFetch",
    "FetchStatus",
    "UnifiedContext",
    "idempotency_key",
    # Errors
    "AssemblyError",
    "AssemblyFailed",
    "LinkedFetchError",
    "MalformedPayload",
]
