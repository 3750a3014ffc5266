"""In-memory orchestration service for tests and local runs."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from ..constants import REGISTERED
from ..decisions import CompleteWorkflowExecution, Decision, ScheduleActivityTask
from ..errors import ServiceError, TypeAlreadyExistsError, UnknownResourceError
from ..history import (
    ActivityTask,
    ActivityTaskCompleted,
    ActivityTaskFailed,
    ActivityTaskScheduled,
    ActivityTaskStarted,
    DecisionTask,
    DecisionTaskCompleted,
    DecisionTaskScheduled,
    DecisionTaskStarted,
    DecisionTaskTimedOut,
    HistoryEvent,
    WorkflowExecution,
    WorkflowExecutionCompleted,
    WorkflowExecutionStarted,
    WorkflowType,
)
from .base import BaseOrchestrationClient

logger = logging.getLogger(__name__)


def _seconds(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


class ExecutionRecord(BaseModel):
    """State of one workflow execution. ``events`` are chronological."""

    domain: str
    workflow_id: str
    run_id: str
    workflow_type: WorkflowType
    task_list: str
    status: str = "OPEN"
    result: Optional[str] = None
    events: List[HistoryEvent] = Field(default_factory=list)
    heartbeats: int = 0

    def next_event_id(self) -> int:
        return len(self.events) + 1

    def latest(self, event_type: type) -> Optional[HistoryEvent]:
        for event in reversed(self.events):
            if isinstance(event, event_type):
                return event
        return None


class _TaskLease(BaseModel):
    workflow_id: str
    scheduled_event_id: int
    started_event_id: int
    expires_at: Optional[float] = None


class InMemoryOrchestrationClient(BaseOrchestrationClient):
    """Simulates the orchestration service inside the current process.

    Registrations, executions and their histories live in local memory and
    are lost when the process exits.

    A decision task that is not answered within ``decision_task_timeout``
    seconds (falling back to the workflow type's task start-to-close
    timeout) times out and a new decision task is scheduled. With neither
    set, decision tasks never time out. Activity tasks never time out.
    """

    def __init__(
        self,
        poll_timeout: float = 1.0,
        poll_interval: float = 0.01,
        decision_task_timeout: Optional[float] = None,
    ) -> None:
        self.poll_timeout = poll_timeout
        self.poll_interval = poll_interval
        self.decision_task_timeout = decision_task_timeout
        self._activity_types: Dict[str, Dict[Tuple[str, str], Dict[str, Any]]] = (
            defaultdict(dict)
        )
        self._workflow_types: Dict[str, Dict[Tuple[str, str], Dict[str, Any]]] = (
            defaultdict(dict)
        )
        self._executions: Dict[str, ExecutionRecord] = {}
        self._decision_queues: Dict[Tuple[str, str], Deque[str]] = defaultdict(deque)
        self._activity_queues: Dict[Tuple[str, str], Deque[Tuple[str, int]]] = (
            defaultdict(deque)
        )
        self._leases: Dict[str, _TaskLease] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def list_activity_types(self, domain: str) -> Set[Tuple[str, str]]:
        return {
            key
            for key, info in self._activity_types[domain].items()
            if info["status"] == REGISTERED
        }

    async def register_activity_type(
        self,
        domain: str,
        name: str,
        version: str,
        description: str = "",
        task_list: Optional[str] = None,
        heartbeat_timeout: Optional[int] = None,
        schedule_to_start_timeout: Optional[int] = None,
        start_to_close_timeout: Optional[int] = None,
        schedule_to_close_timeout: Optional[int] = None,
    ) -> None:
        async with self._lock:
            if (name, version) in self._activity_types[domain]:
                raise TypeAlreadyExistsError(
                    f"Activity type {name}/{version} already exists in {domain}",
                    code="TypeAlreadyExistsFault",
                )
            self._activity_types[domain][(name, version)] = {
                "status": REGISTERED,
                "description": description,
                "task_list": task_list,
                "heartbeat_timeout": heartbeat_timeout,
                "schedule_to_start_timeout": schedule_to_start_timeout,
                "start_to_close_timeout": start_to_close_timeout,
                "schedule_to_close_timeout": schedule_to_close_timeout,
            }
        logger.info(f"Registered activity type {name}/{version} in {domain}")

    async def list_workflow_types(self, domain: str, name: str) -> int:
        return sum(
            1
            for (type_name, _), info in self._workflow_types[domain].items()
            if type_name == name and info["status"] == REGISTERED
        )

    async def register_workflow_type(
        self,
        domain: str,
        name: str,
        version: str,
        description: str = "",
        task_list: Optional[str] = None,
        task_start_to_close_timeout: Optional[int] = None,
        execution_start_to_close_timeout: Optional[int] = None,
        child_policy: Optional[str] = None,
    ) -> None:
        async with self._lock:
            if (name, version) in self._workflow_types[domain]:
                raise TypeAlreadyExistsError(
                    f"Workflow type {name}/{version} already exists in {domain}",
                    code="TypeAlreadyExistsFault",
                )
            self._workflow_types[domain][(name, version)] = {
                "status": REGISTERED,
                "description": description,
                "task_list": task_list,
                "task_start_to_close_timeout": task_start_to_close_timeout,
                "execution_start_to_close_timeout": execution_start_to_close_timeout,
                "child_policy": child_policy,
            }
        logger.info(f"Registered workflow type {name}/{version} in {domain}")

    def activity_type_info(self, domain: str, name: str, version: str) -> Dict[str, Any]:
        return self._activity_types[domain][(name, version)]

    def workflow_type_info(self, domain: str, name: str, version: str) -> Dict[str, Any]:
        return self._workflow_types[domain][(name, version)]

    # ------------------------------------------------------------------
    async def start_workflow_execution(
        self,
        domain: str,
        workflow_id: str,
        name: str,
        version: str,
        input: Optional[str] = None,
        task_list: Optional[str] = None,
    ) -> str:
        async with self._lock:
            info = self._workflow_types[domain].get((name, version))
            if info is None:
                raise UnknownResourceError(
                    f"Unknown workflow type {name}/{version} in {domain}",
                    code="UnknownResourceFault",
                )
            current = self._executions.get(workflow_id)
            if current is not None and current.status == "OPEN":
                raise ServiceError(
                    f"Execution {workflow_id} is already running",
                    code="WorkflowExecutionAlreadyStartedFault",
                )

            task_list = task_list or info["task_list"]
            if not task_list:
                raise ServiceError(
                    f"No task list for workflow {name}/{version}",
                    code="DefaultUndefinedFault",
                )
            execution = ExecutionRecord(
                domain=domain,
                workflow_id=workflow_id,
                run_id=uuid.uuid4().hex,
                workflow_type=WorkflowType(name=name, version=version),
                task_list=task_list,
            )
            execution.events.append(
                WorkflowExecutionStarted(
                    event_id=execution.next_event_id(),
                    input=input,
                    workflow_type=execution.workflow_type,
                    task_list=task_list,
                    child_policy=info["child_policy"],
                    execution_start_to_close_timeout=_seconds(
                        info["execution_start_to_close_timeout"]
                    ),
                    task_start_to_close_timeout=_seconds(
                        info["task_start_to_close_timeout"]
                    ),
                )
            )
            self._executions[workflow_id] = execution
            self._schedule_decision(execution)
        logger.info(f"Started execution {workflow_id} of {name}/{version}")
        return execution.run_id

    def get_execution(self, workflow_id: str) -> ExecutionRecord:
        try:
            return self._executions[workflow_id]
        except KeyError:
            raise UnknownResourceError(
                f"Unknown execution {workflow_id}", code="UnknownResourceFault"
            ) from None

    def _schedule_decision(self, execution: ExecutionRecord) -> None:
        execution.events.append(
            DecisionTaskScheduled(
                event_id=execution.next_event_id(), task_list=execution.task_list
            )
        )
        key = (execution.domain, execution.task_list)
        self._decision_queues[key].append(execution.workflow_id)

    async def _wait_for(
        self, queue: Deque, before: Optional[Callable[[], None]] = None
    ) -> Optional[Any]:
        deadline = asyncio.get_running_loop().time() + self.poll_timeout
        while True:
            async with self._lock:
                if before is not None:
                    before()
                if queue:
                    return queue.popleft()
            if asyncio.get_running_loop().time() >= deadline:
                return None
            await asyncio.sleep(self.poll_interval)

    def _lease(self, task_token: str) -> Tuple[_TaskLease, ExecutionRecord]:
        lease = self._leases.pop(task_token, None)
        if lease is None:
            raise UnknownResourceError(
                f"Unknown task token {task_token}", code="UnknownResourceFault"
            )
        return lease, self._executions[lease.workflow_id]

    def _decision_deadline(self, execution: ExecutionRecord) -> Optional[float]:
        timeout = self.decision_task_timeout
        if timeout is None:
            started = execution.events[0]
            if started.task_start_to_close_timeout is not None:
                timeout = float(started.task_start_to_close_timeout)
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    def _expire_decision_leases(self) -> None:
        now = asyncio.get_running_loop().time()
        expired = [
            token
            for token, lease in self._leases.items()
            if lease.expires_at is not None and lease.expires_at <= now
        ]
        for token in expired:
            lease = self._leases.pop(token)
            execution = self._executions[lease.workflow_id]
            execution.events.append(
                DecisionTaskTimedOut(
                    event_id=execution.next_event_id(),
                    scheduled_event_id=lease.scheduled_event_id,
                    started_event_id=lease.started_event_id,
                )
            )
            logger.warning(f"Decision task for {execution.workflow_id} timed out")
            if execution.status == "OPEN":
                self._schedule_decision(execution)

    # ------------------------------------------------------------------
    async def poll_for_decision_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[DecisionTask]:
        workflow_id = await self._wait_for(
            self._decision_queues[(domain, task_list)], self._expire_decision_leases
        )
        if workflow_id is None:
            return None

        async with self._lock:
            execution = self._executions[workflow_id]
            scheduled = execution.latest(DecisionTaskScheduled)
            previous = execution.latest(DecisionTaskStarted)
            started = DecisionTaskStarted(
                event_id=execution.next_event_id(),
                scheduled_event_id=scheduled.event_id,
                identity=identity,
            )
            execution.events.append(started)

            token = uuid.uuid4().hex
            self._leases[token] = _TaskLease(
                workflow_id=workflow_id,
                scheduled_event_id=scheduled.event_id,
                started_event_id=started.event_id,
                expires_at=self._decision_deadline(execution),
            )
            return DecisionTask(
                task_token=token,
                workflow_execution=WorkflowExecution(
                    workflow_id=workflow_id, run_id=execution.run_id
                ),
                workflow_type=execution.workflow_type,
                events=list(reversed(execution.events)),
                previous_started_event_id=previous.event_id if previous else None,
            )

    async def respond_decision_task_completed(
        self,
        task_token: str,
        decisions: List[Decision],
        execution_context: Optional[str] = None,
    ) -> None:
        async with self._lock:
            lease, execution = self._lease(task_token)
            completed = DecisionTaskCompleted(
                event_id=execution.next_event_id(),
                scheduled_event_id=lease.scheduled_event_id,
                started_event_id=lease.started_event_id,
                execution_context=execution_context,
            )
            execution.events.append(completed)

            for decision in decisions:
                if isinstance(decision, ScheduleActivityTask):
                    self._schedule_activity(execution, decision, completed.event_id)
                elif isinstance(decision, CompleteWorkflowExecution):
                    execution.events.append(
                        WorkflowExecutionCompleted(
                            event_id=execution.next_event_id(),
                            result=decision.result,
                            decision_task_completed_event_id=completed.event_id,
                        )
                    )
                    execution.status = "COMPLETED"
                    execution.result = decision.result
                    logger.info(f"Execution {execution.workflow_id} completed")
                else:
                    raise ServiceError(f"Unsupported decision {decision!r}")

    def _schedule_activity(
        self,
        execution: ExecutionRecord,
        decision: ScheduleActivityTask,
        decision_event_id: int,
    ) -> None:
        name, version = decision.activity_type.name, decision.activity_type.version
        info = self._activity_types[execution.domain].get((name, version), {})
        task_list = decision.task_list or info.get("task_list")
        if not task_list:
            raise ServiceError(f"No task list for activity {name}/{version}")

        scheduled = ActivityTaskScheduled(
            event_id=execution.next_event_id(),
            activity_id=decision.activity_id,
            activity_type=decision.activity_type,
            input=decision.input,
            task_list=task_list,
            heartbeat_timeout=_seconds(decision.heartbeat_timeout),
            schedule_to_start_timeout=_seconds(decision.schedule_to_start_timeout),
            start_to_close_timeout=_seconds(decision.start_to_close_timeout),
            schedule_to_close_timeout=_seconds(decision.schedule_to_close_timeout),
            decision_task_completed_event_id=decision_event_id,
        )
        execution.events.append(scheduled)
        self._activity_queues[(execution.domain, task_list)].append(
            (execution.workflow_id, scheduled.event_id)
        )

    # ------------------------------------------------------------------
    async def poll_for_activity_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[ActivityTask]:
        item = await self._wait_for(self._activity_queues[(domain, task_list)])
        if item is None:
            return None

        workflow_id, scheduled_event_id = item
        async with self._lock:
            execution = self._executions[workflow_id]
            scheduled = execution.events[scheduled_event_id - 1]
            started = ActivityTaskStarted(
                event_id=execution.next_event_id(),
                scheduled_event_id=scheduled_event_id,
                identity=identity,
            )
            execution.events.append(started)

            token = uuid.uuid4().hex
            self._leases[token] = _TaskLease(
                workflow_id=workflow_id,
                scheduled_event_id=scheduled_event_id,
                started_event_id=started.event_id,
            )
            return ActivityTask(
                task_token=token,
                activity_id=scheduled.activity_id,
                activity_type=scheduled.activity_type,
                workflow_execution=WorkflowExecution(
                    workflow_id=workflow_id, run_id=execution.run_id
                ),
                input=scheduled.input,
                started_event_id=started.event_id,
            )

    async def respond_activity_task_completed(
        self, task_token: str, result: Optional[str] = None
    ) -> None:
        async with self._lock:
            lease, execution = self._lease(task_token)
            execution.events.append(
                ActivityTaskCompleted(
                    event_id=execution.next_event_id(),
                    scheduled_event_id=lease.scheduled_event_id,
                    started_event_id=lease.started_event_id,
                    result=result,
                )
            )
            if execution.status == "OPEN":
                self._schedule_decision(execution)

    async def respond_activity_task_failed(
        self,
        task_token: str,
        reason: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        async with self._lock:
            lease, execution = self._lease(task_token)
            execution.events.append(
                ActivityTaskFailed(
                    event_id=execution.next_event_id(),
                    scheduled_event_id=lease.scheduled_event_id,
                    started_event_id=lease.started_event_id,
                    reason=reason,
                    details=details,
                )
            )
            if execution.status == "OPEN":
                self._schedule_decision(execution)

    async def record_activity_task_heartbeat(
        self, task_token: str, details: Optional[str] = None
    ) -> bool:
        async with self._lock:
            lease = self._leases.get(task_token)
            if lease is None:
                raise UnknownResourceError(
                    f"Unknown task token {task_token}", code="UnknownResourceFault"
                )
            self._executions[lease.workflow_id].heartbeats += 1
        return False
