"""Shared fixtures for stagewise tests."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from stagewise import Activity, InMemoryOrchestrationClient, Workflow
from stagewise.history import (
    ActivityTaskCompleted,
    ActivityTaskScheduled,
    ActivityTaskStarted,
    ActivityType,
    DecisionTaskCompleted,
    DecisionTaskScheduled,
    DecisionTaskStarted,
    HistoryEvent,
    WorkflowExecutionStarted,
)


def make_activity(name: str, task=None, **kwargs) -> Activity:
    defaults = dict(
        description=f"{name} activity",
        heartbeat_timeout=30,
        schedule_to_start_timeout=60,
        start_to_close_timeout=120,
        schedule_to_close_timeout=180,
    )
    defaults.update(kwargs)
    return Activity(name=name, task=task or (lambda value: f"{value}:{name}"), **defaults)


@pytest.fixture
def order_workflow() -> Workflow:
    return (
        Workflow("shop", "Order", "Order processing", "1")
        >> make_activity("Validate")
        >> make_activity("Charge")
        >> make_activity("Ship")
    )


@pytest.fixture
def client() -> InMemoryOrchestrationClient:
    return InMemoryOrchestrationClient(poll_timeout=0.02, poll_interval=0.005)


class HistoryBuilder:
    """Builds chronological histories and hands them out most-recent-first."""

    def __init__(self, input: str | None = None) -> None:
        self.events: List[HistoryEvent] = []
        self._add(WorkflowExecutionStarted, input=input)
        self.decision_round()

    def _add(self, cls, **attributes) -> HistoryEvent:
        event = cls(event_id=len(self.events) + 1, **attributes)
        self.events.append(event)
        return event

    def decision_round(self) -> None:
        scheduled = self._add(DecisionTaskScheduled, task_list="OrderTaskList")
        self._add(DecisionTaskStarted, scheduled_event_id=scheduled.event_id)

    def complete_stage(self, stage_id: int, name: str, result: str | None) -> None:
        started = self.events[-1]
        self._add(
            DecisionTaskCompleted,
            scheduled_event_id=started.scheduled_event_id,
            started_event_id=started.event_id,
        )
        scheduled = self._add(
            ActivityTaskScheduled,
            activity_id=str(stage_id),
            activity_type=ActivityType(name=name, version=f"Order.{stage_id}"),
        )
        activity_started = self._add(
            ActivityTaskStarted, scheduled_event_id=scheduled.event_id
        )
        self._add(
            ActivityTaskCompleted,
            scheduled_event_id=scheduled.event_id,
            started_event_id=activity_started.event_id,
            result=result,
        )
        self.decision_round()

    def most_recent_first(self) -> List[HistoryEvent]:
        return list(reversed(self.events))


@pytest.fixture
def history() -> type[HistoryBuilder]:
    return HistoryBuilder


async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


async def stop(tasks) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
