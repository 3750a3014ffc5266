"""History events and task envelopes exchanged with the orchestration service."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    """Accepts both snake_case names and the service's camelCase keys."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    @model_validator(mode="before")
    @classmethod
    def _unwrap_task_list(cls, data: Any) -> Any:
        # the service nests task lists as {"name": ...}
        if isinstance(data, dict):
            for key in ("taskList", "task_list"):
                value = data.get(key)
                if isinstance(value, dict):
                    data = {**data, key: value.get("name")}
        return data


class ActivityType(_WireModel):
    name: str
    version: str


class WorkflowType(_WireModel):
    name: str
    version: str


class WorkflowExecution(_WireModel):
    workflow_id: str
    run_id: str


class HistoryEvent(_WireModel):
    """An event of any kind. Subclasses carry the attributes the decider reads."""

    event_id: int
    event_type: str
    event_timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class WorkflowExecutionStarted(HistoryEvent):
    event_type: Literal["WorkflowExecutionStarted"] = "WorkflowExecutionStarted"
    input: Optional[str] = None
    workflow_type: Optional[WorkflowType] = None
    task_list: Optional[str] = None
    child_policy: Optional[str] = None
    execution_start_to_close_timeout: Optional[str] = None
    task_start_to_close_timeout: Optional[str] = None


class WorkflowExecutionCompleted(HistoryEvent):
    event_type: Literal["WorkflowExecutionCompleted"] = "WorkflowExecutionCompleted"
    result: Optional[str] = None
    decision_task_completed_event_id: Optional[int] = None


class DecisionTaskScheduled(HistoryEvent):
    event_type: Literal["DecisionTaskScheduled"] = "DecisionTaskScheduled"
    task_list: Optional[str] = None
    start_to_close_timeout: Optional[str] = None


class DecisionTaskStarted(HistoryEvent):
    event_type: Literal["DecisionTaskStarted"] = "DecisionTaskStarted"
    scheduled_event_id: int
    identity: Optional[str] = None


class DecisionTaskCompleted(HistoryEvent):
    event_type: Literal["DecisionTaskCompleted"] = "DecisionTaskCompleted"
    scheduled_event_id: int
    started_event_id: int
    execution_context: Optional[str] = None


class DecisionTaskTimedOut(HistoryEvent):
    event_type: Literal["DecisionTaskTimedOut"] = "DecisionTaskTimedOut"
    scheduled_event_id: int
    started_event_id: int
    timeout_type: str = "START_TO_CLOSE"


class ActivityTaskScheduled(HistoryEvent):
    event_type: Literal["ActivityTaskScheduled"] = "ActivityTaskScheduled"
    activity_id: str
    activity_type: ActivityType
    input: Optional[str] = None
    control: Optional[str] = None
    task_list: Optional[str] = None
    heartbeat_timeout: Optional[str] = None
    schedule_to_start_timeout: Optional[str] = None
    start_to_close_timeout: Optional[str] = None
    schedule_to_close_timeout: Optional[str] = None
    decision_task_completed_event_id: Optional[int] = None


class ActivityTaskStarted(HistoryEvent):
    event_type: Literal["ActivityTaskStarted"] = "ActivityTaskStarted"
    scheduled_event_id: int
    identity: Optional[str] = None


class ActivityTaskCompleted(HistoryEvent):
    event_type: Literal["ActivityTaskCompleted"] = "ActivityTaskCompleted"
    scheduled_event_id: int
    started_event_id: int
    result: Optional[str] = None


class ActivityTaskFailed(HistoryEvent):
    event_type: Literal["ActivityTaskFailed"] = "ActivityTaskFailed"
    scheduled_event_id: int
    started_event_id: int
    reason: Optional[str] = None
    details: Optional[str] = None


EVENT_TYPES: Dict[str, Type[HistoryEvent]] = {
    cls.model_fields["event_type"].default: cls
    for cls in (
        WorkflowExecutionStarted,
        WorkflowExecutionCompleted,
        DecisionTaskScheduled,
        DecisionTaskStarted,
        DecisionTaskCompleted,
        DecisionTaskTimedOut,
        ActivityTaskScheduled,
        ActivityTaskStarted,
        ActivityTaskCompleted,
        ActivityTaskFailed,
    )
}


def parse_event(raw: Dict[str, Any]) -> HistoryEvent:
    """Build a history event from the service's wire representation.

    Event kinds without a dedicated model become a plain :class:`HistoryEvent`.
    """
    event_type = raw["eventType"]
    attributes_key = event_type[0].lower() + event_type[1:] + "EventAttributes"
    data = {
        "eventId": raw["eventId"],
        "eventType": event_type,
        **(raw.get(attributes_key) or {}),
    }
    if raw.get("eventTimestamp") is not None:
        data["eventTimestamp"] = raw["eventTimestamp"]

    cls = EVENT_TYPES.get(event_type, HistoryEvent)
    return cls.model_validate(data)


def get_workflow_input(events: Iterable[HistoryEvent]) -> Optional[str]:
    """Return the input the execution was started with, if any."""
    for event in events:
        if isinstance(event, WorkflowExecutionStarted):
            return event.input
    return None


class DecisionTask(_WireModel):
    """A unit of decision work; ``events`` are ordered most-recent-first."""

    task_token: str
    workflow_execution: WorkflowExecution
    workflow_type: WorkflowType
    events: List[HistoryEvent] = Field(default_factory=list)
    previous_started_event_id: Optional[int] = None


class ActivityTask(_WireModel):
    """A unit of activity work handed to an activity worker."""

    task_token: str
    activity_id: str
    activity_type: ActivityType
    workflow_execution: WorkflowExecution
    input: Optional[str] = None
    started_event_id: Optional[int] = None


__all__ = [
    "ActivityType",
    "WorkflowType",
    "WorkflowExecution",
    "HistoryEvent",
    "WorkflowExecutionStarted",
    "WorkflowExecutionCompleted",
    "DecisionTaskScheduled",
    "DecisionTaskStarted",
    "DecisionTaskCompleted",
    "DecisionTaskTimedOut",
    "ActivityTaskScheduled",
    "ActivityTaskStarted",
    "ActivityTaskCompleted",
    "ActivityTaskFailed",
    "EVENT_TYPES",
    "parse_event",
    "get_workflow_input",
    "DecisionTask",
    "ActivityTask",
]
