from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .errors import DataIntegrityError
from .project_models import HealthReport, Project, Status, Task, is_active, is_completed

logger = logging.getLogger(__name__)

DEFAULT_STAGNANT_DAYS = 7
DEFAULT_ACTIVE_TASK_LIMIT = 2
NEUTRAL_DELAY_FACTOR = 1.0


@dataclass(frozen=True)
class AnalysisSettings:
    """Tunable thresholds for one analysis run."""

    stagnant_days_threshold: int = DEFAULT_STAGNANT_DAYS
    active_task_limit: int = DEFAULT_ACTIVE_TASK_LIMIT

    def __post_init__(self) -> None:
        _require_non_negative("stagnant_days_threshold", self.stagnant_days_threshold)
        _require_non_negative("active_task_limit", self.active_task_limit)


def analyze_project(project: Project, today: date, settings: AnalysisSettings | None = None) -> HealthReport:
    """
    Run every health check over the project as of ``today`` and bundle the results.

    The projection is computed after the delay factor because it scales
    remaining work by that factor; the other checks are independent reads.
    """

    settings = settings or AnalysisSettings()
    delay_factor = average_delay_factor(project)
    report = HealthReport(
        today=today,
        stagnant_days_threshold=settings.stagnant_days_threshold,
        active_task_limit=settings.active_task_limit,
        overdue=tuple(overdue_tasks(project, today)),
        stagnant=tuple(stagnant_tasks(project, today, settings.stagnant_days_threshold)),
        delay_factor=delay_factor,
        projected_completion=estimate_projected_completion_date(project, delay_factor, today),
        overallocations=resource_overallocations(project, settings.active_task_limit),
        data_issues=tuple(str(issue) for issue in find_data_issues(project)),
    )
    logger.info(
        "Analyzed '%s': %d overdue, %d stagnant, delay factor %.2f, projected %s",
        project.name,
        len(report.overdue),
        len(report.stagnant),
        report.delay_factor,
        report.projected_completion.isoformat(),
    )
    return report


def overdue_tasks(project: Project, today: date) -> list[Task]:
    """Incomplete tasks whose due date is strictly before ``today``, in input order."""

    return [
        task
        for task in project.tasks
        if not is_completed(task.status) and task.due_date is not None and task.due_date < today
    ]


def stagnant_tasks(project: Project, today: date, days_threshold: int = DEFAULT_STAGNANT_DAYS) -> list[Task]:
    """Active tasks untouched for more than ``days_threshold`` whole days, in input order."""

    _require_non_negative("days_threshold", days_threshold)
    return [
        task
        for task in project.tasks
        if is_active(task.status) and (today - task.last_updated_date).days > days_threshold
    ]


def average_delay_factor(project: Project) -> float:
    """
    Mean ratio of actual to planned duration over completed tasks.

    Completed tasks without a completion date or with a non-positive planned
    duration do not count. Returns 1.0 when nothing qualifies.
    """

    ratios: list[float] = []
    for task in _completed_with_dates(project.tasks):
        try:
            planned = _planned_days(task, metric="delay factor")
        except DataIntegrityError as exc:
            logger.warning("%s", exc)
            continue
        if planned <= 0:
            logger.debug("Task '%s' has a zero-length plan; excluded from delay factor", task.id)
            continue
        actual = (task.completion_date - task.start_date).days
        ratios.append(actual / planned)

    if not ratios:
        return NEUTRAL_DELAY_FACTOR
    return sum(ratios) / len(ratios)


def estimate_projected_completion_date(
    project: Project,
    delay_factor: float,
    today: date | None = None,
) -> date:
    """
    Latest forecast finish across incomplete tasks.

    Each incomplete task finishes at ``start_date + int(planned_days * delay_factor)``
    days; the scaled duration is truncated toward zero. With no incomplete task
    to forecast, falls back to the latest due date of any task, then to
    ``today``, then to the project start date.
    """

    candidates: list[date] = []
    for task in project.tasks:
        if is_completed(task.status):
            continue
        try:
            planned = _planned_days(task, metric="projected completion")
        except DataIntegrityError as exc:
            logger.warning("%s", exc)
            continue
        scaled = int(planned * delay_factor)
        candidates.append(task.start_date + timedelta(days=scaled))

    if candidates:
        return max(candidates)

    due_dates = [task.due_date for task in project.tasks if task.due_date is not None]
    if due_dates:
        return max(due_dates)
    return today if today is not None else project.start_date


def resource_overallocations(project: Project, active_task_limit: int = DEFAULT_ACTIVE_TASK_LIMIT) -> dict[str, int]:
    """Assignees holding more than ``active_task_limit`` in-progress tasks, with their counts."""

    _require_non_negative("active_task_limit", active_task_limit)
    counts: Counter[str] = Counter()
    for task in project.tasks:
        if task.status is not Status.IN_PROGRESS:
            continue
        if not task.assigned_to or not task.assigned_to.strip():
            logger.debug("Task '%s' is in progress but unassigned; not counted", task.id)
            continue
        counts[task.assigned_to] += 1
    return {assignee: count for assignee, count in counts.items() if count > active_task_limit}


def find_data_issues(project: Project) -> list[DataIntegrityError]:
    """List every task excluded from a metric because a field that metric needs is missing."""

    issues: list[DataIntegrityError] = []
    for task in project.tasks:
        if task.due_date is None and not is_completed(task.status):
            issues.append(DataIntegrityError(task.id, "dueDate", "overdue check"))
        if is_completed(task.status):
            if task.completion_date is None:
                issues.append(DataIntegrityError(task.id, "completionDate", "delay factor"))
                continue
            metric = "delay factor"
        else:
            metric = "projected completion"
        for field_name, value in (("startDate", task.start_date), ("dueDate", task.due_date)):
            if value is None:
                issues.append(DataIntegrityError(task.id, field_name, metric))
    return issues


def _completed_with_dates(tasks: Iterable[Task]) -> Iterable[Task]:
    for task in tasks:
        if is_completed(task.status) and task.completion_date is not None:
            yield task


def _planned_days(task: Task, metric: str) -> int:
    if task.start_date is None:
        raise DataIntegrityError(task.id, "startDate", metric)
    if task.due_date is None:
        raise DataIntegrityError(task.id, "dueDate", metric)
    return task.planned_days


def _require_non_negative(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
