from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import DataFormatError
from .project_models import Milestone, Project, Status, Task

logger = logging.getLogger(__name__)

_PROJECT_KEYS = {"name", "clientName", "startDate", "milestones", "tasks"}
_MILESTONE_KEYS = {"name", "dueDate"}
_TASK_KEYS = {
    "id",
    "name",
    "assignedTo",
    "startDate",
    "dueDate",
    "completionDate",
    "lastUpdatedDate",
    "status",
}


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable document path strings like tasks[0].dueDate."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_project(path: str | Path) -> Project:
    """
    Load a Project from a JSON or YAML file at the given path.

    Files ending in ``.json`` are read as JSON; everything else goes through
    the YAML loader. A missing file propagates as FileNotFoundError.
    """

    path = Path(path)
    with path.open("r", encoding="utf-8") as fh:
        try:
            if path.suffix.lower() == ".json":
                raw = json.load(fh)
            else:
                raw = yaml.safe_load(fh)
        except json.JSONDecodeError as exc:
            raise DataFormatError(f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}") from exc
        except yaml.YAMLError as exc:
            raise DataFormatError(f"invalid YAML: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise DataFormatError(f"not valid UTF-8: {exc}") from exc

    project = parse_project(raw)
    logger.info("Loaded project '%s' with %d tasks from %s", project.name, len(project.tasks), path)
    return project


def parse_project(data: Any) -> Project:
    """Build a Project from an already-decoded mapping."""

    return _parse_project(data, _Path())


def _parse_project(data: Any, path: _Path) -> Project:
    if not isinstance(data, dict):
        raise DataFormatError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, _PROJECT_KEYS, path)

    name = _require_str(data, "name", path)
    client_name = _optional_str(data, "clientName", path) or ""
    start_date = _parse_date(_require_value(data, "startDate", path), path.child("startDate"))

    milestones_raw = _optional_list(data, "milestones", path)
    milestones = tuple(
        _parse_milestone(item, path.child(f"milestones[{idx}]")) for idx, item in enumerate(milestones_raw)
    )

    tasks_raw = _optional_list(data, "tasks", path)
    ids: set[str] = set()
    tasks: list[Task] = []
    for idx, task_raw in enumerate(tasks_raw):
        tasks.append(_parse_task(task_raw, path.child(f"tasks[{idx}]"), ids))

    return Project(
        name=name,
        client_name=client_name,
        start_date=start_date,
        milestones=milestones,
        tasks=tuple(tasks),
    )


def _parse_milestone(data: Any, path: _Path) -> Milestone:
    if not isinstance(data, dict):
        raise DataFormatError(f"{path}: expected mapping for milestone")
    _assert_allowed_keys(data, _MILESTONE_KEYS, path)
    name = _require_str(data, "name", path)
    due_date = _parse_date(_require_value(data, "dueDate", path), path.child("dueDate"))
    return Milestone(name=name, due_date=due_date)


def _parse_task(data: Any, path: _Path, ids: set[str]) -> Task:
    if not isinstance(data, dict):
        raise DataFormatError(f"{path}: expected mapping for task")
    _assert_allowed_keys(data, _TASK_KEYS, path)

    task_id = _require_str(data, "id", path)
    if task_id in ids:
        raise DataFormatError(f"{path.child('id')}: duplicate task id '{task_id}'")
    ids.add(task_id)

    return Task(
        id=task_id,
        name=_require_str(data, "name", path),
        assigned_to=_optional_str(data, "assignedTo", path),
        start_date=_optional_date(data, "startDate", path),
        due_date=_optional_date(data, "dueDate", path),
        completion_date=_optional_date(data, "completionDate", path),
        last_updated_date=_parse_date(_require_value(data, "lastUpdatedDate", path), path.child("lastUpdatedDate")),
        status=_parse_status(_require_value(data, "status", path), path.child("status")),
    )


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise DataFormatError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise DataFormatError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataFormatError(f"{path.child(key)}: expected string or null")
    return value


def _optional_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DataFormatError(f"{path.child(key)}: expected list")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data or data[key] is None:
        raise DataFormatError(f"{path}: missing required field '{key}'")
    return data[key]


def _optional_date(data: dict[str, Any], key: str, path: _Path) -> _dt.date | None:
    value = data.get(key)
    if value is None:
        return None
    return _parse_date(value, path.child(key))


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # YAML turns unquoted ISO dates into date objects already.
    if isinstance(value, _dt.date) and not isinstance(value, _dt.datetime):
        return value
    if not isinstance(value, str):
        raise DataFormatError(f"{path}: expected YYYY-MM-DD string")
    try:
        return _dt.datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise DataFormatError(f"{path}: expected YYYY-MM-DD string, got '{value}'") from exc


def _parse_status(value: Any, path: _Path) -> Status:
    if not isinstance(value, str):
        raise DataFormatError(f"{path}: expected status string")
    try:
        return Status(value)
    except ValueError as exc:
        allowed = ", ".join(status.value for status in Status)
        raise DataFormatError(f"{path}: unknown status '{value}' (expected one of {allowed})") from exc
