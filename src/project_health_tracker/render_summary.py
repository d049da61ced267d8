from __future__ import annotations

from .project_models import HealthReport, Project


def render_summary(project: Project, report: HealthReport) -> str:
    """Human-readable console summary of a finished health analysis."""

    lines: list[str] = [
        f"Project: {project.name} (client: {project.client_name or 'n/a'})",
        f"Analysis date: {report.today.isoformat()}",
        "",
        "--- Health Analysis Results ---",
        "",
        f"[!] Overdue Tasks ({len(report.overdue)}):",
    ]
    for task in report.overdue:
        lines.append(f"  - {task.id}: {task.name} (Due: {task.due_date.isoformat()})")

    lines.append("")
    lines.append(
        f"[!] Stagnant Tasks (No update in >{report.stagnant_days_threshold} days) ({len(report.stagnant)}):"
    )
    for task in report.stagnant:
        lines.append(f"  - {task.id}: {task.name} (Last Update: {task.last_updated_date.isoformat()})")

    lines.append("")
    lines.append(
        f"[*] Delay Estimation: On average, tasks take {report.delay_factor:.2f} times the planned duration."
    )
    lines.append(f"[*] Projected Project Completion Date: {report.projected_completion.isoformat()}")

    lines.append("")
    lines.append(f"[!] Resource Allocation Inefficiencies (>{report.active_task_limit} active tasks):")
    overallocations = report.sorted_overallocations()
    if not overallocations:
        lines.append("  - None detected.")
    for assignee, count in overallocations:
        lines.append(f"  - {assignee} has {count} tasks in progress.")

    if project.milestones:
        lines.append("")
        lines.append("[*] Milestones:")
        for milestone in project.milestones:
            lines.append(f"  - {milestone.name} (Due: {milestone.due_date.isoformat()})")

    if report.data_issues:
        lines.append("")
        lines.append(f"[?] Tasks excluded from some metrics ({len(report.data_issues)}):")
        for issue in report.data_issues:
            lines.append(f"  - {issue}")

    return "\n".join(lines) + "\n"
