"""Pipeline definition and its persistent builder."""

from __future__ import annotations

import asyncio
from functools import cached_property
from typing import Iterable, List, Optional, Tuple

from .clients.base import BaseOrchestrationClient
from .config import WorkerConfig
from .constants import TASK_LIST_SUFFIX
from .contracts import Activity, ScheduleActivity, Stage
from .decider import Decider
from .errors import InvalidArgumentError
from .supervisor import ErrorChannel, WorkerSupervisor


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class Workflow:
    """A linear pipeline of activity stages.

    Workflows are immutable: :meth:`attach` returns a new workflow with one
    more activity, so partially built pipelines can be shared and extended.
    ``activities`` is given most recently attached first, the order
    :meth:`attach` accumulates them in.

    Example:
        order = (
            Workflow("shop", "Order", "Order processing", "1")
            >> validate
            >> charge
            >> ship
        )
    """

    def __init__(
        self,
        domain: str,
        name: str,
        description: str,
        version: str,
        task_list: Optional[str] = None,
        activities: Optional[Iterable[Activity]] = None,
        task_start_to_close_timeout: Optional[int] = None,
        exec_start_to_close_timeout: Optional[int] = None,
        child_policy: Optional[str] = None,
    ) -> None:
        if _blank(domain):
            raise InvalidArgumentError("domain")
        if _blank(name):
            raise InvalidArgumentError("name")

        self.domain = domain
        self.name = name
        self.description = description
        self.version = version
        self.task_list = task_list or f"{name}{TASK_LIST_SUFFIX}"
        self.task_start_to_close_timeout = task_start_to_close_timeout
        self.exec_start_to_close_timeout = exec_start_to_close_timeout
        self.child_policy = child_policy
        # most recently attached first
        self._activities: Tuple[Activity, ...] = tuple(activities or ())

        self.on_decision_task_error = ErrorChannel(f"{name}.decision_task_error")
        self.on_activity_task_error = ErrorChannel(f"{name}.activity_task_error")

    def attach(self, activity: Activity) -> "Workflow":
        """Return a new workflow with ``activity`` as its last stage."""
        return Workflow(
            self.domain,
            self.name,
            self.description,
            self.version,
            task_list=self.task_list,
            activities=(activity,) + self._activities,
            task_start_to_close_timeout=self.task_start_to_close_timeout,
            exec_start_to_close_timeout=self.exec_start_to_close_timeout,
            child_policy=self.child_policy,
        )

    def __rshift__(self, activity: Activity) -> "Workflow":
        return self.attach(activity)

    @cached_property
    def stages(self) -> List[Stage]:
        return [
            Stage(
                id=index,
                action=ScheduleActivity(activity=activity),
                version=f"{self.name}.{index}",
            )
            for index, activity in enumerate(reversed(self._activities))
        ]

    @cached_property
    def decider(self) -> Decider:
        return Decider(self.stages)

    async def start(
        self,
        client: BaseOrchestrationClient,
        worker_config: Optional[WorkerConfig] = None,
        lifespan: Optional[float] = None,
    ) -> List[asyncio.Task]:
        """Register types and start the workflow's pollers."""
        supervisor = WorkerSupervisor(self, client, worker_config)
        return await supervisor.start(lifespan=lifespan)

    def __repr__(self) -> str:
        return (
            f"Workflow(domain={self.domain!r}, name={self.name!r}, "
            f"version={self.version!r}, stages={len(self._activities)})"
        )


__all__ = ["Workflow"]
