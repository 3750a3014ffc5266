"""Keeps the service's type catalogue in line with the declared pipeline."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Sequence

from .clients.base import BaseOrchestrationClient
from .contracts import Stage
from .errors import TypeAlreadyExistsError

if TYPE_CHECKING:
    from .workflow import Workflow

logger = logging.getLogger(__name__)


class TypeRegistrar:
    """Registers the activity and workflow types a workflow needs.

    Registration is read-then-conditionally-write: calling ``register`` on
    every process start is safe. Failures other than a duplicate
    registration propagate to the caller and are not retried.
    """

    def __init__(self, client: BaseOrchestrationClient) -> None:
        self._client = client

    async def register(self, workflow: "Workflow") -> None:
        """Run the activity and workflow type passes concurrently."""
        await asyncio.gather(
            self.register_activity_types(workflow.domain, workflow.stages),
            self.register_workflow_type(workflow),
        )

    async def register_activity_types(
        self, domain: str, stages: Sequence[Stage]
    ) -> int:
        """Register every ``(activity name, stage version)`` not yet known.

        Returns:
            Number of activity types registered by this call.
        """
        existing = await self._client.list_activity_types(domain)
        missing = [
            stage
            for stage in stages
            if (stage.activity.name, stage.version) not in existing
        ]

        registered = 0
        for stage in missing:
            activity = stage.activity
            try:
                await self._client.register_activity_type(
                    domain,
                    activity.name,
                    stage.version,
                    description=activity.description,
                    task_list=activity.task_list,
                    heartbeat_timeout=activity.heartbeat_timeout,
                    schedule_to_start_timeout=activity.schedule_to_start_timeout,
                    start_to_close_timeout=activity.start_to_close_timeout,
                    schedule_to_close_timeout=activity.schedule_to_close_timeout,
                )
            except TypeAlreadyExistsError:
                logger.info(
                    f"Activity type {activity.name}/{stage.version} was registered concurrently"
                )
                continue
            registered += 1
            logger.info(f"Registered activity type {activity.name}/{stage.version}")
        return registered

    async def register_workflow_type(self, workflow: "Workflow") -> bool:
        """Register the workflow type unless any version of it exists.

        Returns:
            ``True`` when a new workflow type was registered.
        """
        count = await self._client.list_workflow_types(workflow.domain, workflow.name)
        if count:
            logger.debug(
                f"Workflow type {workflow.name} already registered in {workflow.domain}"
            )
            return False

        try:
            await self._client.register_workflow_type(
                workflow.domain,
                workflow.name,
                workflow.version,
                description=workflow.description,
                task_list=workflow.task_list,
                task_start_to_close_timeout=workflow.task_start_to_close_timeout,
                execution_start_to_close_timeout=workflow.exec_start_to_close_timeout,
                child_policy=workflow.child_policy,
            )
        except TypeAlreadyExistsError:
            logger.info(
                f"Workflow type {workflow.name}/{workflow.version} was registered concurrently"
            )
            return False
        logger.info(f"Registered workflow type {workflow.name}/{workflow.version}")
        return True


__all__ = ["TypeRegistrar"]
