"""Exception hierarchy for stagewise."""

from __future__ import annotations


class StagewiseError(Exception):
    """Base class for all stagewise errors."""


class InvalidArgumentError(StagewiseError, ValueError):
    """Raised when a workflow is constructed with invalid arguments."""

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(message or f"{argument} must be a non-empty string")


class HistoryConsistencyError(StagewiseError):
    """The event history does not match the protocol.

    Raised when an ``ActivityTaskCompleted`` event references a scheduled
    event that cannot be found in the history. Processing of the decision
    task must be aborted.
    """

    def __init__(self, scheduled_event_id: int) -> None:
        self.scheduled_event_id = scheduled_event_id
        super().__init__(
            f"No ActivityTaskScheduled event with id {scheduled_event_id} in history"
        )


class UnknownActivityTypeError(StagewiseError, LookupError):
    """An activity task arrived for a type no worker function serves."""

    def __init__(self, name: str, version: str, task_list: str) -> None:
        self.name = name
        self.version = version
        super().__init__(
            f"No task function for activity type {name}/{version} on {task_list}"
        )


class ServiceError(StagewiseError):
    """A call against the orchestration service failed."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class TypeAlreadyExistsError(ServiceError):
    """The activity or workflow type is already registered."""


class UnknownResourceError(ServiceError):
    """The referenced domain, execution or task token does not exist."""


__all__ = [
    "StagewiseError",
    "InvalidArgumentError",
    "HistoryConsistencyError",
    "UnknownActivityTypeError",
    "ServiceError",
    "TypeAlreadyExistsError",
    "UnknownResourceError",
]
