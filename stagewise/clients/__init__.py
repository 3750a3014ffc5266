"""Orchestration client factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import StagewiseConfig, load_config
from .base import BaseOrchestrationClient
from .inmemory import ExecutionRecord, InMemoryOrchestrationClient


def get_client(
    backend: Optional[str] = None, config: Optional[StagewiseConfig] = None
) -> BaseOrchestrationClient:
    """Factory function to get the configured orchestration client."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("STAGEWISE_CLIENT")
        or config.client.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryOrchestrationClient()
    elif backend == "swf":
        from .swf import SwfOrchestrationClient

        swf_conf = config.client.swf
        return SwfOrchestrationClient(
            region=swf_conf.region,
            endpoint_url=swf_conf.endpoint_url,
            access_key=swf_conf.access_key,
            secret_key=swf_conf.secret_key,
        )
    else:
        raise ValueError(f"Unsupported client backend: {backend}")


__all__ = [
    "BaseOrchestrationClient",
    "ExecutionRecord",
    "InMemoryOrchestrationClient",
    "get_client",
]
