from __future__ import annotations


class HealthTrackerError(Exception):
    """Base class for errors raised by the project health tracker."""


class DataFormatError(HealthTrackerError):
    """Raised when input cannot be parsed into a Project (bad structure, date or status)."""


class DataIntegrityError(HealthTrackerError):
    """Raised when a task lacks a field that one specific metric needs."""

    def __init__(self, task_id: str, field: str, metric: str) -> None:
        self.task_id = task_id
        self.field = field
        self.metric = metric
        super().__init__(f"Task '{task_id}' has no {field}; excluded from {metric}")


class RenderError(HealthTrackerError):
    """Raised when an output artifact cannot be produced."""

    def __init__(self, artifact: str, message: str) -> None:
        self.artifact = artifact
        super().__init__(f"{artifact}: {message}")


class WriteError(RenderError):
    """Raised when a rendered artifact cannot be written to its destination."""
