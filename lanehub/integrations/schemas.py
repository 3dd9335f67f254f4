"""
Pydantic schemas for records read from the external store.

Records are free-form: physical field names and their presence are not
guaranteed, so fields are kept as an ordered name -> value mapping rather
than a typed struct.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

# Tagged value variant for a single stored field. Linked-record fields are
# lists of record ids.
FieldValue = Union[str, bool, int, float, list[Any], dict[str, Any], None]


class SourceRecord(BaseModel):
    """A record as returned by the store: id plus its field mapping."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1, description="Record identifier")
    fields: dict[str, FieldValue] = Field(default_factory=dict)
    created_time: str | None = Field(None, alias="createdTime")
