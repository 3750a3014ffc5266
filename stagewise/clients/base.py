"""Base interface for orchestration service clients."""

from __future__ import annotations

import abc
from typing import List, Optional, Set, Tuple

from ..decisions import Decision
from ..history import ActivityTask, DecisionTask


class BaseOrchestrationClient(metaclass=abc.ABCMeta):
    """Abstract client for a decision/activity task orchestration service.

    Timeouts are whole seconds; ``None`` means "use the service default".
    Failures surface as :class:`stagewise.errors.ServiceError`.
    """

    # -- type catalogue -------------------------------------------------
    @abc.abstractmethod
    async def list_activity_types(self, domain: str) -> Set[Tuple[str, str]]:
        """Return ``(name, version)`` of every registered activity type."""
        raise NotImplementedError

    @abc.abstractmethod
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
        """Register a new activity type."""
        raise NotImplementedError

    @abc.abstractmethod
    async def list_workflow_types(self, domain: str, name: str) -> int:
        """Return how many registered workflow types are called ``name``."""
        raise NotImplementedError

    @abc.abstractmethod
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
        """Register a new workflow type."""
        raise NotImplementedError

    # -- executions -----------------------------------------------------
    @abc.abstractmethod
    async def start_workflow_execution(
        self,
        domain: str,
        workflow_id: str,
        name: str,
        version: str,
        input: Optional[str] = None,
        task_list: Optional[str] = None,
    ) -> str:
        """Start an execution of a registered workflow type; return its run id."""
        raise NotImplementedError

    # -- decision tasks -------------------------------------------------
    @abc.abstractmethod
    async def poll_for_decision_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[DecisionTask]:
        """Wait for a decision task; ``None`` when the poll timed out empty."""
        raise NotImplementedError

    @abc.abstractmethod
    async def respond_decision_task_completed(
        self,
        task_token: str,
        decisions: List[Decision],
        execution_context: Optional[str] = None,
    ) -> None:
        """Submit the decisions for a decision task."""
        raise NotImplementedError

    # -- activity tasks -------------------------------------------------
    @abc.abstractmethod
    async def poll_for_activity_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[ActivityTask]:
        """Wait for an activity task; ``None`` when the poll timed out empty."""
        raise NotImplementedError

    @abc.abstractmethod
    async def respond_activity_task_completed(
        self, task_token: str, result: Optional[str] = None
    ) -> None:
        """Report a successful activity result."""
        raise NotImplementedError

    @abc.abstractmethod
    async def respond_activity_task_failed(
        self,
        task_token: str,
        reason: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        """Report a failed activity."""
        raise NotImplementedError

    @abc.abstractmethod
    async def record_activity_task_heartbeat(
        self, task_token: str, details: Optional[str] = None
    ) -> bool:
        """Record a heartbeat; return ``True`` if cancellation was requested."""
        raise NotImplementedError
