"""Core contracts describing workflow activities and stages."""

from __future__ import annotations

from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import TASK_LIST_SUFFIX


class Activity(BaseModel):
    """One unit of work in a pipeline.

    Timeouts are whole seconds and are handed to the orchestration service
    exactly as given; ``None`` leaves the service default in place.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    task: Callable[[str], str] = Field(exclude=True, repr=False)
    heartbeat_timeout: Optional[int] = Field(default=None, ge=0)
    schedule_to_start_timeout: Optional[int] = Field(default=None, ge=0)
    start_to_close_timeout: Optional[int] = Field(default=None, ge=0)
    schedule_to_close_timeout: Optional[int] = Field(default=None, ge=0)
    task_list: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_task_list(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("task_list"):
            data = {**data, "task_list": f"{data.get('name', '')}{TASK_LIST_SUFFIX}"}
        return data


class ScheduleActivity(BaseModel):
    """Stage action: schedule ``activity`` and wait for its result."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["schedule_activity"] = "schedule_activity"
    activity: Activity


# Only one action exists today; keep the alias so callers match on it.
StageAction = ScheduleActivity


class Stage(BaseModel):
    """A position in the pipeline, derived by :class:`stagewise.Workflow`."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    action: StageAction
    version: str

    @property
    def activity(self) -> Activity:
        return self.action.activity


__all__ = ["Activity", "ScheduleActivity", "StageAction", "Stage"]
