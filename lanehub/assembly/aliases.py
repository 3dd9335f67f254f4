"""
Alias Catalog.

Static mapping from a logical field name to the ordered list of physical
names it has been stored under. Loaded once from JSON, immutable afterwards.

File Format:
    {
        "links": {"workflow_link": ["Workflow", ...], ...},
        "branch_toggles": {"A": ["Branch A", ...], ..., "J": [...]},
        "lane_prompts": {"primary": ["WF - {lane}"], "workflow": ["{lane}"]},
        "fields": {"goal": ["Goal", "Whats Your Goal?"], ...}
    }

Keys:
    - links and fields are addressed by their own name ("workflow_link", "goal")
    - branch toggles are addressed as "branch_toggle.<lane>" ("branch_toggle.A")
    - lane prompt templates are expanded per sub-lane via lane_prompt_aliases()

Alias order is significant: resolution is first-match-wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).with_name("field_aliases.json")

BRANCH_TOGGLE_PREFIX = "branch_toggle."
PROMPT_SOURCES = ("primary", "workflow")


def _alias_tuple(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not value:
        raise ValueError(f"Alias list for '{key}' must be a non-empty list")
    if not all(isinstance(name, str) and name for name in value):
        raise ValueError(f"Alias list for '{key}' must contain only non-empty strings")
    return tuple(value)


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"Catalog section '{name}' must be an object")
    return section


@dataclass(frozen=True, slots=True)
class AliasCatalog:
    """
    Immutable logical-name -> physical-alias catalog.

    Example:
        catalog = AliasCatalog.default()
        catalog.aliases("workflow_link")
        # ("Workflow", "Premade AI Workflow (Initiator link to WF Table)", ...)
        catalog.aliases("branch_toggle.A")
        catalog.lane_prompt_aliases("A1.1", "primary")  # ("WF - A1.1",)
    """

    links: Mapping[str, tuple[str, ...]]
    branch_toggles: Mapping[str, tuple[str, ...]]
    fields: Mapping[str, tuple[str, ...]]
    lane_prompts: Mapping[str, tuple[str, ...]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AliasCatalog":
        """Build a catalog from parsed JSON, validating every alias list."""
        links = {k: _alias_tuple(k, v) for k, v in _section(data, "links").items()}
        toggles = {
            lane: _alias_tuple(f"{BRANCH_TOGGLE_PREFIX}{lane}", v)
            for lane, v in _section(data, "branch_toggles").items()
        }
        fields = {k: _alias_tuple(k, v) for k, v in _section(data, "fields").items()}

        prompts_raw = _section(data, "lane_prompts")
        prompts: dict[str, tuple[str, ...]] = {}
        for source in PROMPT_SOURCES:
            templates = _alias_tuple(f"lane_prompts.{source}", prompts_raw.get(source))
            if not all("{lane}" in t for t in templates):
                raise ValueError(f"Lane prompt templates for '{source}' must contain '{{lane}}'")
            prompts[source] = templates

        overlap = set(links) & set(fields)
        if overlap:
            raise ValueError(f"Keys defined in both links and fields: {sorted(overlap)}")

        return cls(
            links=MappingProxyType(links),
            branch_toggles=MappingProxyType(toggles),
            fields=MappingProxyType(fields),
            lane_prompts=MappingProxyType(prompts),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "AliasCatalog":
        path = Path(path)
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Alias catalog {path} must contain a JSON object")
        catalog = cls.from_dict(data)
        logger.info(
            f"[alias_catalog] Loaded {path.name}: {len(catalog.links)} links, "
            f"{len(catalog.branch_toggles)} toggles, {len(catalog.fields)} fields"
        )
        return catalog

    @classmethod
    def default(cls) -> "AliasCatalog":
        """The catalog bundled with the package."""
        return cls.from_file(DEFAULT_CATALOG_PATH)

    def aliases(self, key: str) -> tuple[str, ...]:
        """
        Ordered physical names for a logical key.

        Raises:
            KeyError: If the key is not in the catalog
        """
        if key.startswith(BRANCH_TOGGLE_PREFIX):
            return self.branch_toggles[key[len(BRANCH_TOGGLE_PREFIX):]]
        if key in self.links:
            return self.links[key]
        return self.fields[key]

    def has(self, key: str) -> bool:
        try:
            self.aliases(key)
        except KeyError:
            return False
        return True

    def lane_prompt_aliases(self, lane_key: str, source: str) -> tuple[str, ...]:
        """Physical prompt-linkage names for a sub-lane on the given record source."""
        return tuple(t.format(lane=lane_key) for t in self.lane_prompts[source])
