"""Per-run resource timelines.

Every scheduling attempt builds its own ``ResourceTimeline`` objects, so
concurrent attempts over the same ``ProblemInstance`` never share mutable
state. A resource of capacity N is represented as N lanes; each lane only ever
grows at its end by blocks ``[start - setup, end)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .models import Resource, TransitionMatrix


@dataclass(frozen=True, slots=True)
class Placement:
    """Earliest feasible slot for an activity on one resource."""

    resource: int
    lane: int
    start: int
    end: int
    setup: int

    @property
    def busy_start(self) -> int:
        return self.start - self.setup


class ResourceTimeline:
    """Free time and last setup type of each capacity lane of one resource."""

    def __init__(self, index: int, resource: Resource) -> None:
        self.index = index
        self.resource = resource
        capacity = max(1, resource.capacity)
        self.lane_free = [0] * capacity
        self.lane_last_type: list[Optional[str]] = [None] * capacity

    def _fit(
        self,
        lower: int,
        length: int,
        blockers: Iterable[tuple[int, int]],
        horizon: Optional[int],
    ) -> Optional[int]:
        blockers = sorted(blockers)
        calendar = self.resource.calendar
        while True:
            start = calendar.earliest_fit(lower, length, horizon)
            if start is None:
                return None
            for b_start, b_end in blockers:
                if b_start < start + length and start < b_end:
                    lower = b_end
                    break
            else:
                return int(start)

    def earliest_placement(
        self,
        lower: int,
        setup_type: str,
        duration: int,
        transitions: TransitionMatrix,
        blockers: Iterable[tuple[int, int]] = (),
        horizon: Optional[int] = None,
    ) -> Optional[Placement]:
        """Earliest placement over all lanes (ties go to the lowest lane).

        Args:
            lower: Time the activity's predecessors allow it to start.
            setup_type: Setup category of the activity.
            duration: Processing time on this resource.
            transitions: Setup-time matrix.
            blockers: Committed intervals of exclusivity partners.
            horizon: Optional bound for the block end.

        Returns:
            Placement or None when no lane can host the activity.
        """
        blockers = list(blockers)
        best: Optional[Placement] = None
        for lane, free in enumerate(self.lane_free):
            setup = transitions.setup_time(
                self.resource.id, self.lane_last_type[lane], setup_type
            )
            busy_start = self._fit(max(lower, free), setup + duration, blockers, horizon)
            if busy_start is None:
                continue
            start = busy_start + setup
            if best is None or start < best.start:
                best = Placement(self.index, lane, start, start + duration, setup)
        return best

    def commit(self, placement: Placement, setup_type: str) -> None:
        lane = placement.lane
        self.lane_free[lane] = placement.end
        self.lane_last_type[lane] = setup_type
