"""
Context assembly errors.

Only AssemblyFailed escapes the assembler. LinkedFetchError and
MalformedPayload are recovered locally: the affected section falls back to
its defaults and the error is logged.
"""

from __future__ import annotations


class AssemblyError(Exception):
    """Base class for context assembly errors."""


class AssemblyFailed(AssemblyError):
    """The primary record could not be fetched; no context can be built."""

    def __init__(self, correlation_id: str, cause: Exception):
        super().__init__(f"Failed to assemble context for {correlation_id}: {cause}")
        self.correlation_id = correlation_id
        self.cause = cause


class LinkedFetchError(AssemblyError):
    """A linked record (workflow, entity, content type, tool) could not be fetched."""

    def __init__(self, link: str, record_id: str, cause: Exception):
        super().__init__(f"Could not fetch {link} {record_id}: {cause}")
        self.link = link
        self.record_id = record_id
        self.cause = cause


class MalformedPayload(AssemblyError):
    """A stored JSON-encoded field could not be decoded."""

    def __init__(self, field: str, raw: str, reason: str):
        super().__init__(f"Malformed JSON in '{field}': {reason}")
        self.field = field
        self.raw = raw
        self.reason = reason
