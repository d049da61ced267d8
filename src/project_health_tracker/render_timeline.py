from __future__ import annotations

from .project_models import HealthReport, Project, TimelineRow
from .render_rows import DEFAULT_TIMELINE_WIDTH, timeline_window, to_timeline_rows

EMPTY_CELL = "·"
LEGEND = "Legend: C=Completed, I=In Progress, N=Not Started, O=On Hold/Cancelled, !=Overdue"


def render_timeline(
    project: Project,
    report: HealthReport | None = None,
    width: int = DEFAULT_TIMELINE_WIDTH,
) -> str:
    """Render a Gantt-style text chart of the project's tasks."""

    lines = [f"--- Gantt-style Visual Tracker for: {project.name} ---", ""]
    if not project.tasks:
        lines.append("No tasks to display.")
        return "\n".join(lines) + "\n"

    window = timeline_window(project.tasks)
    if window is None:
        lines.append("Timeline: no dated tasks")
    else:
        lines.append(f"Timeline: {window.start.isoformat()} to {window.end.isoformat()}")
    lines.append("")

    for row in to_timeline_rows(project, report, width):
        lines.append(_format_row(row, width))

    if project.milestones:
        lines.append("")
        lines.append("Milestones:")
        for milestone in project.milestones:
            lines.append(f"  <> {milestone.due_date.isoformat()}  {milestone.name}")

    lines.append("")
    lines.append(LEGEND)
    return "\n".join(lines) + "\n"


def _format_row(row: TimelineRow, width: int) -> str:
    cells = [EMPTY_CELL] * width
    if row.bar_start is not None and row.bar_width is not None:
        # Bars running past the window edge are clipped to the track.
        for col in range(max(0, row.bar_start), min(width, row.bar_start + row.bar_width)):
            cells[col] = row.glyph
    marker = "!" if row.flagged else " "
    return f"{row.task_id:<8}{marker}| {''.join(cells)} | {row.name}"
