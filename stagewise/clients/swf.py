"""Amazon Simple Workflow Service client."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..constants import REGISTERED
from ..decisions import Decision
from ..errors import ServiceError, TypeAlreadyExistsError, UnknownResourceError
from ..history import ActivityTask, DecisionTask, parse_event
from .base import BaseOrchestrationClient

logger = logging.getLogger(__name__)

# Long polls are held open for up to 60 seconds by the service.
POLL_READ_TIMEOUT = 70

_ERRORS = {
    "TypeAlreadyExistsFault": TypeAlreadyExistsError,
    "UnknownResourceFault": UnknownResourceError,
}


def _seconds(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


def _compact(**kwargs: Any) -> Dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


class SwfOrchestrationClient(BaseOrchestrationClient):
    """Client for Amazon SWF built on boto3.

    boto3 is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url

        if client is None:
            client_kwargs: Dict[str, Any] = {
                "service_name": "swf",
                "region_name": region,
                "config": Config(read_timeout=POLL_READ_TIMEOUT),
            }
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            if access_key and secret_key:
                client_kwargs["aws_access_key_id"] = access_key
                client_kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client(**client_kwargs)

        self.client = client
        logger.info(f"SWF client initialized for region={region} endpoint={endpoint_url}")

    async def _call(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        method = getattr(self.client, operation)
        try:
            return await asyncio.to_thread(functools.partial(method, **kwargs))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            message = e.response.get("Error", {}).get("Message", str(e))
            error_cls = _ERRORS.get(code, ServiceError)
            raise error_cls(f"{operation} failed: {message}", code=code) from e
        except BotoCoreError as e:
            raise ServiceError(f"{operation} failed: {e}") from e

    async def _paginate(self, operation: str, key: str, **kwargs: Any) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        token: Optional[str] = None
        while True:
            page = await self._call(operation, **_compact(nextPageToken=token, **kwargs))
            items.extend(page.get(key, []))
            token = page.get("nextPageToken")
            if not token:
                return items

    # ------------------------------------------------------------------
    async def list_activity_types(self, domain: str) -> Set[Tuple[str, str]]:
        infos = await self._paginate(
            "list_activity_types",
            "typeInfos",
            domain=domain,
            registrationStatus=REGISTERED,
        )
        return {
            (info["activityType"]["name"], info["activityType"]["version"])
            for info in infos
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
        await self._call(
            "register_activity_type",
            **_compact(
                domain=domain,
                name=name,
                version=version,
                description=description or None,
                defaultTaskList={"name": task_list} if task_list else None,
                defaultTaskHeartbeatTimeout=_seconds(heartbeat_timeout),
                defaultTaskScheduleToStartTimeout=_seconds(schedule_to_start_timeout),
                defaultTaskStartToCloseTimeout=_seconds(start_to_close_timeout),
                defaultTaskScheduleToCloseTimeout=_seconds(schedule_to_close_timeout),
            ),
        )

    async def list_workflow_types(self, domain: str, name: str) -> int:
        infos = await self._paginate(
            "list_workflow_types",
            "typeInfos",
            domain=domain,
            name=name,
            registrationStatus=REGISTERED,
        )
        return len(infos)

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
        await self._call(
            "register_workflow_type",
            **_compact(
                domain=domain,
                name=name,
                version=version,
                description=description or None,
                defaultTaskList={"name": task_list} if task_list else None,
                defaultTaskStartToCloseTimeout=_seconds(task_start_to_close_timeout),
                defaultExecutionStartToCloseTimeout=_seconds(
                    execution_start_to_close_timeout
                ),
                defaultChildPolicy=child_policy,
            ),
        )

    async def start_workflow_execution(
        self,
        domain: str,
        workflow_id: str,
        name: str,
        version: str,
        input: Optional[str] = None,
        task_list: Optional[str] = None,
    ) -> str:
        response = await self._call(
            "start_workflow_execution",
            **_compact(
                domain=domain,
                workflowId=workflow_id,
                workflowType={"name": name, "version": version},
                input=input,
                taskList={"name": task_list} if task_list else None,
            ),
        )
        return response["runId"]

    # ------------------------------------------------------------------
    async def poll_for_decision_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[DecisionTask]:
        request = _compact(
            domain=domain,
            taskList={"name": task_list},
            identity=identity,
            reverseOrder=True,
        )
        response = await self._call("poll_for_decision_task", **request)
        if not response.get("taskToken"):
            return None

        events = list(response.get("events", []))
        token = response.get("nextPageToken")
        while token:
            page = await self._call(
                "poll_for_decision_task", nextPageToken=token, **request
            )
            events.extend(page.get("events", []))
            token = page.get("nextPageToken")

        return DecisionTask(
            task_token=response["taskToken"],
            workflow_execution=response["workflowExecution"],
            workflow_type=response["workflowType"],
            events=[parse_event(event) for event in events],
            previous_started_event_id=response.get("previousStartedEventId"),
        )

    async def respond_decision_task_completed(
        self,
        task_token: str,
        decisions: List[Decision],
        execution_context: Optional[str] = None,
    ) -> None:
        await self._call(
            "respond_decision_task_completed",
            **_compact(
                taskToken=task_token,
                decisions=[decision.to_payload() for decision in decisions],
                executionContext=execution_context,
            ),
        )

    async def poll_for_activity_task(
        self, domain: str, task_list: str, identity: Optional[str] = None
    ) -> Optional[ActivityTask]:
        response = await self._call(
            "poll_for_activity_task",
            **_compact(domain=domain, taskList={"name": task_list}, identity=identity),
        )
        if not response.get("taskToken"):
            return None
        return ActivityTask.model_validate(response)

    async def respond_activity_task_completed(
        self, task_token: str, result: Optional[str] = None
    ) -> None:
        await self._call(
            "respond_activity_task_completed",
            **_compact(taskToken=task_token, result=result),
        )

    async def respond_activity_task_failed(
        self,
        task_token: str,
        reason: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        await self._call(
            "respond_activity_task_failed",
            **_compact(taskToken=task_token, reason=reason, details=details),
        )

    async def record_activity_task_heartbeat(
        self, task_token: str, details: Optional[str] = None
    ) -> bool:
        response = await self._call(
            "record_activity_task_heartbeat",
            **_compact(taskToken=task_token, details=details),
        )
        return bool(response.get("cancelRequested", False))
