"""Starts and wires the pollers that drive a workflow."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from .clients.base import BaseOrchestrationClient
from .config import WorkerConfig
from .registrar import TypeRegistrar
from .workers import ActivityHandler, ActivityWorker, DecisionWorker

if TYPE_CHECKING:
    from .workflow import Workflow

logger = logging.getLogger(__name__)


class ErrorChannel:
    """Fan-out of poller errors to subscribed handlers.

    Errors published while nobody is subscribed are logged rather than
    dropped.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: List[Callable[[Exception], None]] = []

    def subscribe(self, handler: Callable[[Exception], None]) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    @property
    def has_subscribers(self) -> bool:
        return bool(self._handlers)

    def publish(self, error: Exception) -> None:
        if not self._handlers:
            logger.error(f"Unhandled error on {self.name}: {error!r}")
            return
        for handler in list(self._handlers):
            try:
                handler(error)
            except Exception:
                logger.exception(f"Error handler on {self.name} raised")


class WorkerSupervisor:
    """Registers a workflow's types and starts its pollers."""

    def __init__(
        self,
        workflow: "Workflow",
        client: BaseOrchestrationClient,
        worker_config: Optional[WorkerConfig] = None,
    ) -> None:
        self.workflow = workflow
        self._client = client
        self._config = worker_config or WorkerConfig()
        self.decision_worker: Optional[DecisionWorker] = None
        self.activity_workers: List[ActivityWorker] = []

    def _worker_kwargs(self) -> dict:
        return {
            "identity": self._config.identity,
            "backoff_base": self._config.poll_backoff_base,
            "max_backoff": self._config.max_poll_backoff,
        }

    def _handlers_by_task_list(self) -> Dict[str, Dict[Tuple[str, str], ActivityHandler]]:
        """Group the stages' task functions by the task list they poll."""
        handlers: Dict[str, Dict[Tuple[str, str], ActivityHandler]] = {}
        for stage in self.workflow.stages:
            activity = stage.activity
            handlers.setdefault(activity.task_list, {})[(activity.name, stage.version)] = (
                ActivityHandler(activity.task, activity.heartbeat_timeout)
            )
        return handlers

    async def start(self, lifespan: Optional[float] = None) -> List[asyncio.Task]:
        """Register types, then start one decision poller and one activity
        poller per distinct activity task list.

        Registration failures propagate before any poller starts.

        Returns:
            The running poller tasks.
        """
        workflow = self.workflow
        await TypeRegistrar(self._client).register(workflow)

        self.decision_worker = DecisionWorker(
            self._client,
            workflow.domain,
            workflow.task_list,
            workflow.decider,
            workflow.on_decision_task_error.publish,
            **self._worker_kwargs(),
        )
        tasks = [
            asyncio.create_task(
                self.decision_worker.start(lifespan=lifespan),
                name=f"decision-worker:{workflow.task_list}",
            )
        ]

        for task_list, handlers in self._handlers_by_task_list().items():
            worker = ActivityWorker(
                self._client,
                workflow.domain,
                task_list,
                handlers,
                workflow.on_activity_task_error.publish,
                **self._worker_kwargs(),
            )
            self.activity_workers.append(worker)
            tasks.append(
                asyncio.create_task(
                    worker.start(lifespan=lifespan),
                    name=f"activity-worker:{task_list}",
                )
            )

        logger.info(
            f"Started workflow {workflow.name} in {workflow.domain} with "
            f"{len(self.activity_workers)} activity worker(s)"
        )
        return tasks


__all__ = ["ErrorChannel", "WorkerSupervisor"]
