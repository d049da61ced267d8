from __future__ import annotations

import logging
import textwrap
from dataclasses import dataclass, replace
from importlib import metadata
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from .errors import RenderError, WriteError
from .project_models import HealthReport, Project

logger = logging.getLogger(__name__)

# US Letter in points; text positions are converted to figure fractions.
PAGE_WIDTH_PT = 612.0
PAGE_HEIGHT_PT = 792.0
MARGIN_PT = 50.0
START_Y_PT = 750.0
LINE_SPACING = 1.5
# Rough average glyph width as a fraction of font size, used for wrapping.
CHAR_WIDTH_RATIO = 0.52

TITLE_FONT = 18
SUBTITLE_FONT = 14
DATE_FONT = 12
HEADING_FONT = 14
ITEM_FONT = 10
SECTION_GAP_PT = 20.0
INDICATORS_GAP_PT = 30.0
BULLET = "• "


@dataclass(frozen=True)
class ReportLine:
    """One line of report text with its typography and the space to leave above it."""

    text: str
    size: int = ITEM_FONT
    weight: str = "normal"
    style: str = "normal"
    gap_before: float = 0.0


def build_report_lines(project: Project, report: HealthReport) -> list[ReportLine]:
    """
    Lay out the client report in its fixed section order.

    Header, key indicators, then overdue, stagnant and resource sections; the
    last three are left out when they have nothing to show.
    """

    title = f"{project.client_name} - Project Health Summary" if project.client_name else "Project Health Summary"
    lines = [
        ReportLine(title, size=TITLE_FONT, weight="bold"),
        ReportLine(f"Project: {project.name}", size=SUBTITLE_FONT),
        ReportLine(f"Report Date: {report.today.isoformat()}", size=DATE_FONT, style="italic"),
        ReportLine("Key Health Indicators", size=HEADING_FONT, weight="bold", gap_before=INDICATORS_GAP_PT),
        _item(
            f"Average Delay Factor: {report.delay_factor:.2f} "
            f"(tasks are taking {report.delay_factor * 100:.0f}% of planned time)"
        ),
        _item(f"Projected Completion Date (based on past performance): {report.projected_completion.isoformat()}"),
    ]

    if report.overdue:
        lines.append(_heading("Overdue Tasks"))
        for task in report.overdue:
            lines.append(
                _item(
                    f"{task.id} ({task.name}) - Due: {task.due_date.isoformat()}, "
                    f"Assigned: {task.assigned_to or 'unassigned'}"
                )
            )

    if report.stagnant:
        lines.append(_heading(f"Stagnant Tasks (No update in >{report.stagnant_days_threshold} days)"))
        for task in report.stagnant:
            lines.append(
                _item(
                    f"{task.id} ({task.name}) - Last Update: {task.last_updated_date.isoformat()}, "
                    f"Status: {task.status.value}"
                )
            )

    if report.overallocations:
        lines.append(_heading("Resource Allocation Notes"))
        for assignee, count in report.sorted_overallocations():
            lines.append(
                _item(f"Potential Over-allocation: {assignee} is assigned to {count} tasks currently in progress.")
            )

    return lines


def render_report(project: Project, report: HealthReport, out_path: str | Path) -> Path:
    """
    Write the client PDF report to ``out_path`` and return the path.

    The document is written to a temporary sibling first and moved into place
    only once complete, so a failed run never leaves a truncated report.
    """

    out = Path(out_path)
    lines = build_report_lines(project, report)
    tmp = out.with_name(out.name + ".part")

    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        with PdfPages(tmp, metadata=_pdf_metadata(project)) as pdf:
            writer = _PageWriter(pdf)
            try:
                for line in lines:
                    writer.write(line)
                writer.finish()
            finally:
                writer.discard()
        tmp.replace(out)
    except OSError as exc:
        _discard(tmp)
        raise WriteError(str(out), f"cannot write report: {exc}") from exc
    except (ValueError, RuntimeError) as exc:
        _discard(tmp)
        raise RenderError(str(out), f"cannot render report: {exc}") from exc

    logger.info("Wrote %d report lines to %s", len(lines), out)
    return out


def default_report_name(project: Project) -> str:
    return "Project_Health_Report_" + "_".join(project.name.split()) + ".pdf"


class _PageWriter:
    """Places lines top to bottom, starting a new page when the cursor reaches the margin."""

    def __init__(self, pdf: PdfPages) -> None:
        self._pdf = pdf
        self._fig = None
        self._y = START_Y_PT
        self.pages = 0

    def write(self, line: ReportLine) -> None:
        for chunk in _wrap(line):
            advance = chunk.size * LINE_SPACING
            if self._fig is None or self._y - chunk.gap_before - advance < MARGIN_PT:
                self._new_page()
            else:
                self._y -= chunk.gap_before
            self._fig.text(
                MARGIN_PT / PAGE_WIDTH_PT,
                self._y / PAGE_HEIGHT_PT,
                chunk.text,
                fontsize=chunk.size,
                fontweight=chunk.weight,
                fontstyle=chunk.style,
                ha="left",
                va="baseline",
                parse_math=False,
            )
            self._y -= advance

    def finish(self) -> None:
        if self._fig is None:
            self._new_page()
        self._flush()

    def discard(self) -> None:
        """Close a page left open by a failed write without saving it."""
        if self._fig is not None:
            plt.close(self._fig)
            self._fig = None

    def _new_page(self) -> None:
        self._flush()
        self._fig = plt.figure(figsize=(PAGE_WIDTH_PT / 72.0, PAGE_HEIGHT_PT / 72.0))
        self._y = START_Y_PT
        self.pages += 1

    def _flush(self) -> None:
        if self._fig is None:
            return
        self._pdf.savefig(self._fig)
        plt.close(self._fig)
        self._fig = None


def _heading(text: str) -> ReportLine:
    return ReportLine(text, size=HEADING_FONT, weight="bold", gap_before=SECTION_GAP_PT)


def _item(text: str) -> ReportLine:
    return ReportLine(BULLET + text, size=ITEM_FONT)


def _wrap(line: ReportLine) -> list[ReportLine]:
    max_chars = max(20, int((PAGE_WIDTH_PT - 2 * MARGIN_PT) / (line.size * CHAR_WIDTH_RATIO)))
    indent = " " * len(BULLET) if line.text.startswith(BULLET) else ""
    parts = textwrap.wrap(line.text, width=max_chars, subsequent_indent=indent) or [""]
    return [replace(line, text=part, gap_before=line.gap_before if i == 0 else 0.0) for i, part in enumerate(parts)]


def _pdf_metadata(project: Project) -> dict[str, str]:
    return {
        "Title": f"{project.name} - Project Health Summary",
        "Subject": f"Project health report for {project.client_name or project.name}",
        "Creator": f"project-health-tracker v{_tool_version()}",
    }


def _tool_version() -> str:
    try:
        return metadata.version("project-health-tracker")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove partial report %s: %s", path, exc)
