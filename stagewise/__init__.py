"""stagewise: linear activity pipelines driven by history replay."""

from .clients import BaseOrchestrationClient, InMemoryOrchestrationClient, get_client
from .config import StagewiseConfig, load_config
from .contracts import Activity, ScheduleActivity, Stage
from .decider import Decider
from .decisions import CompleteWorkflowExecution, DecisionResult, ScheduleActivityTask
from .errors import (
    HistoryConsistencyError,
    InvalidArgumentError,
    ServiceError,
    StagewiseError,
    TypeAlreadyExistsError,
    UnknownActivityTypeError,
)
from .registrar import TypeRegistrar
from .supervisor import ErrorChannel, WorkerSupervisor
from .workflow import Workflow

__version__ = "0.1.0"
__all__ = [
    "Activity",
    "ScheduleActivity",
    "Stage",
    "Workflow",
    "Decider",
    "ScheduleActivityTask",
    "CompleteWorkflowExecution",
    "DecisionResult",
    "TypeRegistrar",
    "WorkerSupervisor",
    "ErrorChannel",
    "BaseOrchestrationClient",
    "InMemoryOrchestrationClient",
    "get_client",
    "StagewiseConfig",
    "load_config",
    "StagewiseError",
    "InvalidArgumentError",
    "HistoryConsistencyError",
    "ServiceError",
    "TypeAlreadyExistsError",
    "UnknownActivityTypeError",
]
