"""
Lane activation planning.

A workflow is split into 10 top-level lanes (A..J), each gating 5 sub-lanes
(A1.1, A2.1, ... A5.1). A sub-lane runs when its lane's branch toggle is on
and a prompt is linked for that sub-lane, either directly on the primary
record or on the workflow record it points to.

Planning is sequential and deterministic: lane-major, sub-lane-minor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from lanehub.assembly.aliases import AliasCatalog
from lanehub.assembly.fields import is_linked, resolve
from lanehub.integrations.schemas import SourceRecord

logger = logging.getLogger(__name__)

TOP_LEVEL_LANES: tuple[str, ...] = ("A", "B", "C", "D", "E", "F", "G", "H", "I", "J")
SUB_LANE_SUFFIXES: tuple[str, ...] = ("1.1", "2.1", "3.1", "4.1", "5.1")


@dataclass(frozen=True, slots=True)
class LaneActivation:
    """One entry of the lane plan handed to the execution engine."""

    lane: str
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"lane": self.lane, "enabled": self.enabled}


def sub_lane_keys(lane: str) -> tuple[str, ...]:
    return tuple(f"{lane}{suffix}" for suffix in SUB_LANE_SUFFIXES)


class LanePlanner:
    """
    Derives the ordered set of active sub-lanes.

    Rules:
        - No workflow record: nothing activates
        - Branch toggle falsy: none of that lane's sub-lanes activate
        - Toggle truthy: a sub-lane activates iff its prompt linkage is
          non-empty on the primary record, or failing that, on the workflow
    """

    def __init__(self, catalog: AliasCatalog):
        missing = [lane for lane in TOP_LEVEL_LANES if lane not in catalog.branch_toggles]
        if missing:
            raise ValueError(f"Alias catalog has no branch toggle for lanes: {missing}")
        self._catalog = catalog

    def plan(
        self,
        primary: SourceRecord | None,
        workflow: SourceRecord | None,
    ) -> list[str]:
        """Active sub-lane keys in execution order."""
        if workflow is None or primary is None:
            return []

        active: list[str] = []
        for lane in TOP_LEVEL_LANES:
            toggle = resolve(primary.fields, self._catalog.aliases(f"branch_toggle.{lane}"))
            if not toggle:
                continue

            for key in sub_lane_keys(lane):
                if self._has_prompt(primary, workflow, key):
                    active.append(key)

        logger.debug(f"[lane_planner] {primary.id}: {active or 'no active lanes'}")
        return active

    def activations(
        self,
        primary: SourceRecord | None,
        workflow: SourceRecord | None,
    ) -> list[LaneActivation]:
        return [LaneActivation(lane=key) for key in self.plan(primary, workflow)]

    def _has_prompt(self, primary: SourceRecord, workflow: SourceRecord, key: str) -> bool:
        on_primary = resolve(primary.fields, self._catalog.lane_prompt_aliases(key, "primary"))
        if is_linked(on_primary):
            return True
        on_workflow = resolve(workflow.fields, self._catalog.lane_prompt_aliases(key, "workflow"))
        return is_linked(on_workflow)
