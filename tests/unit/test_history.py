"""History event parsing tests."""

from datetime import datetime, timezone

from stagewise.history import (
    ActivityTaskCompleted,
    ActivityTaskScheduled,
    HistoryEvent,
    WorkflowExecutionStarted,
    parse_event,
)


def test_parse_workflow_started():
    event = parse_event(
        {
            "eventId": 1,
            "eventType": "WorkflowExecutionStarted",
            "eventTimestamp": datetime(2024, 1, 1, tzinfo=timezone.utc),
            "workflowExecutionStartedEventAttributes": {
                "input": "order-42",
                "childPolicy": "TERMINATE",
                "taskList": {"name": "OrderTaskList"},
                "workflowType": {"name": "Order", "version": "1"},
            },
        }
    )

    assert isinstance(event, WorkflowExecutionStarted)
    assert event.input == "order-42"
    assert event.task_list == "OrderTaskList"
    assert event.workflow_type.name == "Order"
    assert event.event_timestamp.year == 2024


def test_parse_activity_scheduled_and_completed():
    scheduled = parse_event(
        {
            "eventId": 5,
            "eventType": "ActivityTaskScheduled",
            "activityTaskScheduledEventAttributes": {
                "activityId": "0",
                "activityType": {"name": "Validate", "version": "Order.0"},
                "taskList": {"name": "ValidateTaskList"},
                "heartbeatTimeout": "30",
                "decisionTaskCompletedEventId": 4,
            },
        }
    )
    completed = parse_event(
        {
            "eventId": 7,
            "eventType": "ActivityTaskCompleted",
            "activityTaskCompletedEventAttributes": {
                "scheduledEventId": 5,
                "startedEventId": 6,
                "result": "valid",
            },
        }
    )

    assert isinstance(scheduled, ActivityTaskScheduled)
    assert scheduled.activity_id == "0"
    assert scheduled.task_list == "ValidateTaskList"
    assert scheduled.heartbeat_timeout == "30"
    assert isinstance(completed, ActivityTaskCompleted)
    assert completed.scheduled_event_id == 5
    assert completed.result == "valid"


def test_unknown_event_kind_parses_to_plain_event():
    event = parse_event(
        {
            "eventId": 9,
            "eventType": "TimerFired",
            "timerFiredEventAttributes": {"timerId": "t", "startedEventId": 8},
        }
    )

    assert type(event) is HistoryEvent
    assert event.event_type == "TimerFired"
    assert event.event_id == 9
