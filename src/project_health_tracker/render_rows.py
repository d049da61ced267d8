from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

from .project_models import HealthReport, Project, Status, Task, TimelineRow

DEFAULT_TIMELINE_WIDTH = 60

_STATUS_GLYPHS = {
    Status.COMPLETED: "C",
    Status.IN_PROGRESS: "I",
    Status.NOT_STARTED: "N",
}
OTHER_GLYPH = "O"


@dataclass(frozen=True)
class TimelineWindow:
    """Chart boundaries shared by every row; ``span_days`` is never zero."""

    start: date
    end: date
    span_days: int


def status_glyph(status: Status) -> str:
    return _STATUS_GLYPHS.get(status, OTHER_GLYPH)


def timeline_window(tasks: Iterable[Task]) -> TimelineWindow | None:
    """Earliest start to latest due date over tasks that carry both; None if none do."""

    dated = [task for task in tasks if task.start_date is not None and task.due_date is not None]
    if not dated:
        return None
    start = min(task.start_date for task in dated)
    end = max(task.due_date for task in dated)
    span = (end - start).days
    return TimelineWindow(start=start, end=end, span_days=span if span != 0 else 1)


def to_timeline_rows(
    project: Project,
    report: HealthReport | None = None,
    width: int = DEFAULT_TIMELINE_WIDTH,
) -> list[TimelineRow]:
    """
    Convert project tasks into timeline rows scaled to ``width`` columns.

    Rows keep input task order. Overdue flags come from the report; nothing
    here decides health state.
    """

    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")

    window = timeline_window(project.tasks)
    flagged_ids = report.overdue_ids if report is not None else frozenset()
    rows: List[TimelineRow] = []

    for task in project.tasks:
        bar_start: int | None = None
        bar_width: int | None = None
        if window is not None and task.start_date is not None and task.due_date is not None:
            offset = (task.start_date - window.start).days
            duration = (task.due_date - task.start_date).days
            bar_start = round(offset * width / window.span_days)
            bar_width = max(1, round(duration * width / window.span_days))
        rows.append(
            TimelineRow(
                task_id=task.id,
                name=task.name,
                glyph=status_glyph(task.status),
                bar_start=bar_start,
                bar_width=bar_width,
                flagged=task.id in flagged_ids,
            )
        )

    return rows
