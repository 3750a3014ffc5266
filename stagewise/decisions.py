"""Decisions returned to the orchestration service."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .history import ActivityType


def _seconds(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


class ScheduleActivityTask(BaseModel):
    """Schedule the activity of one stage.

    ``activity_id`` carries the stage id so a later completion can be traced
    back to the stage that produced it.
    """

    model_config = ConfigDict(frozen=True)

    decision_type: Literal["ScheduleActivityTask"] = "ScheduleActivityTask"
    activity_id: str
    activity_type: ActivityType
    task_list: Optional[str] = None
    input: Optional[str] = None
    heartbeat_timeout: Optional[int] = None
    schedule_to_start_timeout: Optional[int] = None
    start_to_close_timeout: Optional[int] = None
    schedule_to_close_timeout: Optional[int] = None

    @property
    def stage_id(self) -> int:
        return int(self.activity_id)

    def to_payload(self) -> Dict[str, Any]:
        attributes: Dict[str, Any] = {
            "activityType": {
                "name": self.activity_type.name,
                "version": self.activity_type.version,
            },
            "activityId": self.activity_id,
        }
        optional = {
            "taskList": {"name": self.task_list} if self.task_list else None,
            "input": self.input,
            "heartbeatTimeout": _seconds(self.heartbeat_timeout),
            "scheduleToStartTimeout": _seconds(self.schedule_to_start_timeout),
            "startToCloseTimeout": _seconds(self.start_to_close_timeout),
            "scheduleToCloseTimeout": _seconds(self.schedule_to_close_timeout),
        }
        attributes.update({k: v for k, v in optional.items() if v is not None})
        return {
            "decisionType": self.decision_type,
            "scheduleActivityTaskDecisionAttributes": attributes,
        }


class CompleteWorkflowExecution(BaseModel):
    """Close the execution successfully with ``result``."""

    model_config = ConfigDict(frozen=True)

    decision_type: Literal["CompleteWorkflowExecution"] = "CompleteWorkflowExecution"
    result: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        attributes = {} if self.result is None else {"result": self.result}
        return {
            "decisionType": self.decision_type,
            "completeWorkflowExecutionDecisionAttributes": attributes,
        }


Decision = Annotated[
    Union[ScheduleActivityTask, CompleteWorkflowExecution],
    Field(discriminator="decision_type"),
]


class DecisionResult(BaseModel):
    """Decisions for one decision task plus the execution context to record."""

    decisions: List[Decision] = Field(default_factory=list)
    execution_context: str = ""

    def to_payload(self) -> List[Dict[str, Any]]:
        return [decision.to_payload() for decision in self.decisions]


__all__ = [
    "ScheduleActivityTask",
    "CompleteWorkflowExecution",
    "Decision",
    "DecisionResult",
]
