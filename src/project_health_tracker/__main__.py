from __future__ import annotations

import argparse
import datetime as dt
import logging
import sys
import webbrowser
from pathlib import Path

from .errors import DataFormatError, RenderError
from .health import DEFAULT_ACTIVE_TASK_LIMIT, DEFAULT_STAGNANT_DAYS, AnalysisSettings, analyze_project
from .parse_project import load_project
from .project_models import Project
from .render_report import default_report_name, render_report
from .render_rows import DEFAULT_TIMELINE_WIDTH
from .render_summary import render_summary
from .render_timeline import render_timeline

logger = logging.getLogger("project_health_tracker")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_date(value: str) -> dt.date:
    try:
        return dt.datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer '{value}'") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"expected a value >= 0, got {parsed}")
    return parsed


def _positive_int(value: str) -> int:
    parsed = _non_negative_int(value)
    if parsed == 0:
        raise argparse.ArgumentTypeError("expected a value >= 1")
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-health-tracker",
        description="Project health tracker",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("project", help="Path to project JSON or YAML")
    parser.add_argument(
        "--out",
        help="Output PDF path; defaults to output/Project_Health_Report_<project name>.pdf",
    )
    parser.add_argument(
        "--today",
        type=_parse_date,
        help="Reference date for the analysis (YYYY-MM-DD); defaults to today",
    )
    parser.add_argument(
        "--stagnant-days",
        type=_non_negative_int,
        default=DEFAULT_STAGNANT_DAYS,
        help="Days without an update after which an active task counts as stagnant",
    )
    parser.add_argument(
        "--active-task-limit",
        type=_non_negative_int,
        default=DEFAULT_ACTIVE_TASK_LIMIT,
        help="In-progress tasks per assignee above which they count as over-allocated",
    )
    parser.add_argument(
        "--timeline-width",
        type=_positive_int,
        default=DEFAULT_TIMELINE_WIDTH,
        help="Width of the ASCII timeline in columns",
    )
    parser.add_argument("--no-timeline", dest="timeline", action="store_false", help="Skip the ASCII timeline")
    parser.add_argument("--no-report", dest="report", action="store_false", help="Skip the PDF report")
    parser.add_argument(
        "--view",
        dest="view",
        action="store_true",
        default=False,
        help="Best-effort open the PDF after rendering",
    )
    parser.add_argument(
        "--no-view",
        dest="view",
        action="store_false",
        help="Do not open the PDF after rendering",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (written to stderr)",
    )
    return parser


def _setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr, force=True)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)
    project_path = Path(args.project)

    try:
        project: Project = load_project(project_path)
    except DataFormatError as exc:
        print(f"Error: failed to load {project_path}: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: project file not found: {project_path}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: cannot read {project_path}: {exc}", file=sys.stderr)
        return 1

    today = args.today or dt.date.today()
    settings = AnalysisSettings(
        stagnant_days_threshold=args.stagnant_days,
        active_task_limit=args.active_task_limit,
    )
    report = analyze_project(project, today, settings)

    print(render_summary(project, report))
    if args.timeline:
        print(render_timeline(project, report, width=args.timeline_width))

    if not args.report:
        return 0

    out_path = Path(args.out) if args.out else Path("output") / default_report_name(project)
    try:
        written = render_report(project, report, out_path)
    except RenderError as exc:
        print(f"Error: report generation failed: {exc}", file=sys.stderr)
        return 1

    print(f"[SUCCESS] Client-ready PDF summary saved as: {written}")

    if args.view:
        try:
            webbrowser.open(written.resolve().as_uri())
        except webbrowser.Error as exc:
            logger.warning("Could not open %s: %s", written, exc)

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
