"""History replay: derive the next decision from an execution's event log."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .contracts import Stage
from .decisions import (
    CompleteWorkflowExecution,
    Decision,
    DecisionResult,
    ScheduleActivityTask,
)
from .errors import HistoryConsistencyError
from .history import (
    ActivityTaskCompleted,
    ActivityTaskScheduled,
    ActivityType,
    DecisionTask,
    HistoryEvent,
    get_workflow_input,
)

logger = logging.getLogger(__name__)


class Decider:
    """Stateless decider for a linear pipeline of stages.

    The pipeline position is recovered from the history alone: every
    scheduled activity carries its stage id as ``activityId``, so the most
    recent completion tells us which stage to run next. Calling the decider
    twice with the same history yields the same decision.
    """

    def __init__(self, stages: Sequence[Stage]) -> None:
        self._stages = tuple(stages)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._stages

    def schedule_stage(self, n: int, input: Optional[str]) -> Decision:
        """Schedule stage ``n``, or complete the workflow past the last stage."""
        if n >= len(self._stages):
            return CompleteWorkflowExecution(result=input)

        stage = self._stages[n]
        activity = stage.activity
        return ScheduleActivityTask(
            activity_id=str(stage.id),
            activity_type=ActivityType(name=activity.name, version=stage.version),
            task_list=activity.task_list,
            input=input,
            heartbeat_timeout=activity.heartbeat_timeout,
            schedule_to_start_timeout=activity.schedule_to_start_timeout,
            start_to_close_timeout=activity.start_to_close_timeout,
            schedule_to_close_timeout=activity.schedule_to_close_timeout,
        )

    def decide(
        self, events: Sequence[HistoryEvent], workflow_input: Optional[str]
    ) -> Decision:
        """Return the next decision for ``events`` (most-recent-first)."""
        for position, event in enumerate(events):
            if isinstance(event, ActivityTaskCompleted):
                scheduled = _find_scheduled(
                    event.scheduled_event_id, events[position + 1 :]
                )
                return self.schedule_stage(int(scheduled.activity_id) + 1, event.result)
        return self.schedule_stage(0, workflow_input)

    def __call__(self, task: DecisionTask) -> DecisionResult:
        workflow_input = get_workflow_input(task.events)
        decision = self.decide(task.events, workflow_input)
        logger.debug(
            f"Decided {decision.decision_type} for "
            f"workflow_id={task.workflow_execution.workflow_id}"
        )
        return DecisionResult(decisions=[decision], execution_context="")


def _find_scheduled(
    event_id: int, events: Sequence[HistoryEvent]
) -> ActivityTaskScheduled:
    for event in events:
        if event.event_id == event_id:
            if not isinstance(event, ActivityTaskScheduled):
                break
            return event
    raise HistoryConsistencyError(event_id)


__all__ = ["Decider"]
