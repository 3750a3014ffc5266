"""Long-running pollers for decision and activity tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Mapping, NamedTuple, Optional, Tuple

from .clients.base import BaseOrchestrationClient
from .constants import DEFAULT_IDENTITY, DEFAULT_MAX_POLL_BACKOFF
from .decisions import DecisionResult
from .errors import UnknownActivityTypeError
from .history import ActivityTask, DecisionTask
from .utils.retry import wait_before_retry

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[Exception], None]

# Limits imposed by the service on failure reports.
MAX_REASON_LENGTH = 256
MAX_DETAILS_LENGTH = 32768


class _Poller:
    """Shared poll loop: poll, dispatch, back off after transport failures."""

    kind = "task"

    def __init__(
        self,
        client: BaseOrchestrationClient,
        domain: str,
        task_list: str,
        on_error: ErrorHandler,
        identity: str = DEFAULT_IDENTITY,
        backoff_base: float = 1.5,
        max_backoff: float = DEFAULT_MAX_POLL_BACKOFF,
    ) -> None:
        self._client = client
        self.domain = domain
        self.task_list = task_list
        self._on_error = on_error
        self.identity = identity
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff

    async def _poll(self):
        raise NotImplementedError

    async def handle(self, task) -> None:
        raise NotImplementedError

    async def start(self, lifespan: Optional[float] = None) -> None:
        """Poll until cancelled.

        Args:
            lifespan: Maximum time in seconds to keep polling. If None, runs indefinitely.
        """
        loop = asyncio.get_running_loop()
        start_time = loop.time()
        attempt = 0
        logger.info(f"Polling for {self.kind}s on {self.domain}/{self.task_list}")

        while lifespan is None or loop.time() - start_time < lifespan:
            try:
                task = await self._poll()
            except Exception as e:
                attempt += 1
                logger.warning(
                    f"Polling {self.kind}s on {self.task_list} failed (attempt {attempt}): {e}"
                )
                self._on_error(e)
                await wait_before_retry(
                    attempt, base=self._backoff_base, cap=self._max_backoff
                )
                continue

            attempt = 0
            if task is not None:
                await self.handle(task)

        logger.info(f"Stopped polling for {self.kind}s on {self.domain}/{self.task_list}")


class DecisionWorker(_Poller):
    """Polls decision tasks and answers them with ``decide``."""

    kind = "decision task"

    def __init__(
        self,
        client: BaseOrchestrationClient,
        domain: str,
        task_list: str,
        decide: Callable[[DecisionTask], DecisionResult],
        on_error: ErrorHandler,
        **kwargs,
    ) -> None:
        super().__init__(client, domain, task_list, on_error, **kwargs)
        self._decide = decide

    async def _poll(self) -> Optional[DecisionTask]:
        return await self._client.poll_for_decision_task(
            self.domain, self.task_list, identity=self.identity
        )

    async def handle(self, task: DecisionTask) -> None:
        workflow_id = task.workflow_execution.workflow_id
        try:
            result = self._decide(task)
            await self._client.respond_decision_task_completed(
                task.task_token, result.decisions, result.execution_context
            )
        except Exception as e:
            logger.error(f"Decision task for workflow_id={workflow_id} failed: {e}")
            self._on_error(e)
            return
        logger.debug(f"Responded to decision task for workflow_id={workflow_id}")


class ActivityHandler(NamedTuple):
    """Task function for one activity type and its heartbeat interval."""

    task: Callable[[str], str]
    heartbeat_interval: Optional[float] = None


class ActivityWorker(_Poller):
    """Polls activity tasks and runs the matching handler on their input.

    ``handlers`` maps ``(activity name, version)`` to the handler serving
    that type, so several activities can share one task list. The task
    function runs in a worker thread while heartbeats are recorded every
    ``heartbeat_interval`` seconds; an interval of 0 or ``None`` disables
    heartbeats. Tasks of a type with no handler are reported as failed.
    """

    kind = "activity task"

    def __init__(
        self,
        client: BaseOrchestrationClient,
        domain: str,
        task_list: str,
        handlers: Mapping[Tuple[str, str], ActivityHandler],
        on_error: ErrorHandler,
        **kwargs,
    ) -> None:
        super().__init__(client, domain, task_list, on_error, **kwargs)
        self.handlers: Dict[Tuple[str, str], ActivityHandler] = dict(handlers)

    async def _poll(self) -> Optional[ActivityTask]:
        return await self._client.poll_for_activity_task(
            self.domain, self.task_list, identity=self.identity
        )

    def _handler_for(self, task: ActivityTask) -> ActivityHandler:
        name, version = task.activity_type.name, task.activity_type.version
        try:
            return self.handlers[(name, version)]
        except KeyError:
            raise UnknownActivityTypeError(name, version, self.task_list) from None

    async def _heartbeat(self, task_token: str, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                cancel_requested = await self._client.record_activity_task_heartbeat(
                    task_token
                )
            except Exception as e:
                logger.warning(f"Heartbeat failed: {e}")
                self._on_error(e)
                continue
            if cancel_requested:
                logger.info("Cancellation requested for running activity task")

    async def _run(self, task: ActivityTask) -> Optional[str]:
        handler = self._handler_for(task)
        heartbeat = (
            asyncio.create_task(
                self._heartbeat(task.task_token, handler.heartbeat_interval),
                name=f"heartbeat:{task.activity_id}",
            )
            if handler.heartbeat_interval
            else None
        )
        try:
            return await asyncio.to_thread(handler.task, task.input or "")
        finally:
            if heartbeat is not None:
                heartbeat.cancel()
                await asyncio.gather(heartbeat, return_exceptions=True)

    async def handle(self, task: ActivityTask) -> None:
        activity = f"{task.activity_type.name}/{task.activity_type.version}"
        try:
            result = await self._run(task)
        except Exception as e:
            logger.error(f"Activity {activity} (activity_id={task.activity_id}) failed: {e}")
            self._on_error(e)
            await self._report_failure(task, e)
            return

        try:
            await self._client.respond_activity_task_completed(task.task_token, result)
        except Exception as e:
            logger.error(f"Could not report completion of {activity}: {e}")
            self._on_error(e)
            return
        logger.info(f"Activity {activity} completed (activity_id={task.activity_id})")

    async def _report_failure(self, task: ActivityTask, error: Exception) -> None:
        try:
            await self._client.respond_activity_task_failed(
                task.task_token,
                reason=type(error).__name__[:MAX_REASON_LENGTH],
                details=str(error)[:MAX_DETAILS_LENGTH],
            )
        except Exception as e:
            logger.error(f"Could not report failure of activity_id={task.activity_id}: {e}")
            self._on_error(e)


__all__ = ["ActivityHandler", "ActivityWorker", "DecisionWorker", "ErrorHandler"]
