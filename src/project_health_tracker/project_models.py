from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class Status(str, Enum):
    """Task lifecycle states; values are the exact literals used in project files."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"
    CANCELLED = "CANCELLED"


def is_completed(status: Status) -> bool:
    return status is Status.COMPLETED


def is_active(status: Status) -> bool:
    """Work that is expected to move: not started yet or in progress."""
    return status in (Status.NOT_STARTED, Status.IN_PROGRESS)


@dataclass(frozen=True)
class Milestone:
    """Informational checkpoint; not linked to tasks."""

    name: str
    due_date: date


@dataclass(frozen=True)
class Task:
    """Unit of tracked work with its schedule and last known status."""

    id: str
    name: str
    assigned_to: str | None
    start_date: date | None
    due_date: date | None
    completion_date: date | None
    last_updated_date: date
    status: Status

    @property
    def planned_days(self) -> int | None:
        """Planned duration in days, or None when either boundary is unknown."""
        if self.start_date is None or self.due_date is None:
            return None
        return (self.due_date - self.start_date).days


@dataclass(frozen=True)
class Project:
    """Root record for one project snapshot."""

    name: str
    client_name: str
    start_date: date
    milestones: tuple[Milestone, ...] = ()
    tasks: tuple[Task, ...] = ()


@dataclass(frozen=True)
class HealthReport:
    """
    Results of one health analysis run.

    Renderers read everything they display from here so that no adapter has to
    re-derive overdue, stagnant or allocation state on its own.
    """

    today: date
    stagnant_days_threshold: int
    active_task_limit: int
    overdue: tuple[Task, ...]
    stagnant: tuple[Task, ...]
    delay_factor: float
    projected_completion: date
    overallocations: Mapping[str, int] = field(default_factory=dict)
    data_issues: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Read-only view over a private copy so callers cannot edit the counts.
        object.__setattr__(self, "overallocations", MappingProxyType(dict(self.overallocations)))

    @property
    def overdue_ids(self) -> frozenset[str]:
        return frozenset(task.id for task in self.overdue)

    def sorted_overallocations(self) -> list[tuple[str, int]]:
        """Over-allocations ordered by assignee for deterministic display."""
        return sorted(self.overallocations.items())


@dataclass(frozen=True)
class TimelineRow:
    """
    Horizontal geometry for one task row of the ASCII timeline.

    ``bar_start`` and ``bar_width`` are column positions on a track of fixed
    width; both are None for tasks without a start or due date.
    """

    task_id: str
    name: str
    glyph: str
    bar_start: int | None
    bar_width: int | None
    flagged: bool = False
