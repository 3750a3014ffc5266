from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_IDENTITY, DEFAULT_MAX_POLL_BACKOFF


class SwfConfig(BaseModel):
    """Connection settings for Amazon SWF."""

    region: str = "us-east-1"
    endpoint_url: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None


class ClientConfig(BaseModel):
    """Orchestration client settings."""

    backend: Literal["inmemory", "swf"] = "inmemory"
    swf: SwfConfig = SwfConfig()


class WorkerConfig(BaseModel):
    """Settings shared by decision and activity pollers."""

    identity: str = DEFAULT_IDENTITY
    poll_backoff_base: float = 1.5
    max_poll_backoff: float = DEFAULT_MAX_POLL_BACKOFF


class StagewiseConfig(BaseModel):
    """Top-level configuration model."""

    client: ClientConfig = ClientConfig()
    worker: WorkerConfig = WorkerConfig()
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> StagewiseConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to STAGEWISE_CONFIG env
            variable or 'stagewise.yaml' in the current directory.
    """

    config_path = path or os.getenv("STAGEWISE_CONFIG", "stagewise.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = StagewiseConfig(**data)
    else:
        config = StagewiseConfig()

    env_log_level = os.getenv("STAGEWISE_LOG_LEVEL")
    if env_log_level:
        config.log_level = env_log_level.upper()
    return config
