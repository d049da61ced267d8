import datetime as dt
from pathlib import Path

import matplotlib.pyplot as plt
import pytest
from matplotlib.backends.backend_pdf import PdfPages

from project_health_tracker.errors import RenderError, WriteError
from project_health_tracker.health import analyze_project
from project_health_tracker.parse_project import load_project
from project_health_tracker.project_models import HealthReport, Project, Status, Task
from project_health_tracker.render_report import _PageWriter, build_report_lines, default_report_name, render_report
from project_health_tracker.render_rows import status_glyph, timeline_window, to_timeline_rows
from project_health_tracker.render_summary import render_summary
from project_health_tracker.render_timeline import render_timeline

SAMPLE = Path(__file__).resolve().parents[1] / "projects" / "project_nexus.json"
TODAY = dt.date(2023, 10, 16)


@pytest.fixture
def sample():
    project = load_project(SAMPLE)
    return project, analyze_project(project, TODAY)


def _task(task_id, start, due, status=Status.IN_PROGRESS):
    return Task(
        id=task_id,
        name=task_id,
        assigned_to="Ali",
        start_date=start,
        due_date=due,
        completion_date=None,
        last_updated_date=start or dt.date(2024, 1, 1),
        status=status,
    )


def _empty_report(today=TODAY, **overrides):
    values = dict(
        today=today,
        stagnant_days_threshold=7,
        active_task_limit=2,
        overdue=(),
        stagnant=(),
        delay_factor=1.0,
        projected_completion=today,
    )
    values.update(overrides)
    return HealthReport(**values)


def test_status_glyphs():
    assert status_glyph(Status.COMPLETED) == "C"
    assert status_glyph(Status.IN_PROGRESS) == "I"
    assert status_glyph(Status.NOT_STARTED) == "N"
    assert status_glyph(Status.ON_HOLD) == "O"
    assert status_glyph(Status.CANCELLED) == "O"


def test_timeline_rows_scale_to_width(sample):
    project, report = sample

    rows = to_timeline_rows(project, report, width=60)

    # Window 2023-09-01..2023-10-27 spans 56 days.
    assert [(r.bar_start, r.bar_width) for r in rows[:2]] == [(0, 10), (11, 15)]
    assert [r.task_id for r in rows if r.flagged] == ["NEX-02"]


def test_zero_span_window_uses_one_day():
    day = dt.date(2024, 1, 1)
    project = Project(name="P", client_name="", start_date=day, tasks=(_task("A", day, day),))

    window = timeline_window(project.tasks)
    rows = to_timeline_rows(project, width=10)

    assert window.span_days == 1
    assert (rows[0].bar_start, rows[0].bar_width) == (0, 1)


def test_undated_task_gets_empty_track():
    day = dt.date(2024, 1, 1)
    project = Project(
        name="P",
        client_name="",
        start_date=day,
        tasks=(_task("A", day, dt.date(2024, 1, 5)), _task("B", None, None)),
    )

    rows = to_timeline_rows(project, width=8)
    text = render_timeline(project, width=8)

    assert rows[1].bar_start is None
    assert "B        | ········ | B" in text


def test_render_timeline_lines(sample):
    project, report = sample

    text = render_timeline(project, report)

    assert "Timeline: 2023-09-01 to 2023-10-27" in text
    assert "NEX-01   | " + "C" * 10 + "·" * 50 + " | Setup Initial Infrastructure" in text
    assert "NEX-02  !| " in text
    assert "Phase 1 Complete" in text
    assert text.rstrip().endswith("!=Overdue")


def test_render_timeline_without_tasks():
    project = Project(name="Empty", client_name="", start_date=TODAY)

    assert "No tasks to display." in render_timeline(project)


def test_render_summary_reports_engine_results(sample):
    project, report = sample

    text = render_summary(project, report)

    assert "[!] Overdue Tasks (1):" in text
    assert "  - NEX-02: Develop Core Authentication (Due: 2023-09-25)" in text
    assert "(No update in >7 days) (1):" in text
    assert "tasks take 1.22 times the planned duration" in text
    assert "Projected Project Completion Date: 2023-10-31" in text
    assert "  - Ali has 3 tasks in progress." in text


def test_render_summary_without_overallocations():
    project = Project(name="Quiet", client_name="", start_date=TODAY)

    assert "  - None detected." in render_summary(project, _empty_report())


def test_report_sections_in_fixed_order(sample):
    project, report = sample

    headings = [line.text for line in build_report_lines(project, report) if line.weight == "bold"]

    assert headings == [
        "Innovate Inc. - Project Health Summary",
        "Key Health Indicators",
        "Overdue Tasks",
        "Stagnant Tasks (No update in >7 days)",
        "Resource Allocation Notes",
    ]


def test_report_omits_empty_sections():
    project = Project(name="Quiet", client_name="", start_date=TODAY)

    texts = [line.text for line in build_report_lines(project, _empty_report())]

    assert texts[0] == "Project Health Summary"
    assert "Report Date: 2023-10-16" in texts
    assert not any(t.startswith(("Overdue", "Stagnant", "Resource")) for t in texts)


def test_render_report_writes_pdf(tmp_path, sample):
    project, report = sample
    out = tmp_path / "reports" / default_report_name(project)

    written = render_report(project, report, out)

    assert written == out
    assert out.name == "Project_Health_Report_Project_Nexus.pdf"
    assert out.read_bytes().startswith(b"%PDF")
    assert not (tmp_path / "reports" / (out.name + ".part")).exists()


def test_long_reports_spill_onto_more_pages(tmp_path):
    day = dt.date(2024, 1, 1)
    tasks = tuple(_task(f"T-{i:03d}", day, dt.date(2024, 1, 2)) for i in range(120))
    project = Project(name="Big", client_name="Client", start_date=day, tasks=tasks)
    report = _empty_report(today=dt.date(2024, 2, 1), overdue=tasks)

    with PdfPages(tmp_path / "big.pdf") as pdf:
        writer = _PageWriter(pdf)
        for line in build_report_lines(project, report):
            writer.write(line)
        writer.finish()
        page_count = pdf.get_pagecount()

    assert writer.pages == page_count
    assert page_count >= 3


def test_render_report_unwritable_destination(tmp_path, sample):
    project, report = sample
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("file in the way", encoding="utf-8")

    with pytest.raises(WriteError) as excinfo:
        render_report(project, report, blocker / "report.pdf")

    assert "report.pdf" in excinfo.value.artifact


def test_render_report_keeps_dollar_signs_literal(tmp_path):
    day = dt.date(2024, 1, 1)
    task = _task("Budget $x^$ review", day, dt.date(2024, 1, 2))
    project = Project(name="Pay $5 to $10", client_name="$ Corp $", start_date=day, tasks=(task,))
    report = _empty_report(today=dt.date(2024, 2, 1), overdue=(task,))

    out = render_report(project, report, tmp_path / "dollars.pdf")

    assert out.read_bytes().startswith(b"%PDF")


def test_failed_render_closes_open_figures(tmp_path, sample, monkeypatch):
    project, report = sample
    open_before = len(plt.get_fignums())

    def fail_savefig(self, figure=None, **kwargs):
        raise ValueError("cannot draw page")

    monkeypatch.setattr(PdfPages, "savefig", fail_savefig)

    with pytest.raises(RenderError, match="cannot draw page"):
        render_report(project, report, tmp_path / "broken.pdf")

    assert len(plt.get_fignums()) == open_before
    assert not (tmp_path / "broken.pdf").exists()
