"""Tests for configuration loading."""

import pytest

from stagewise.clients import InMemoryOrchestrationClient, get_client
from stagewise.clients.swf import SwfOrchestrationClient
from stagewise.config import load_config


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEWISE_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("STAGEWISE_LOG_LEVEL", raising=False)

    config = load_config()

    assert config.client.backend == "inmemory"
    assert config.worker.identity == "stagewise-worker"
    assert config.log_level == "INFO"


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "stagewise.yaml"
    config_path.write_text(
        """
client:
  backend: swf
  swf:
    region: eu-west-1
worker:
  identity: host-7
  max_poll_backoff: 5
"""
    )
    monkeypatch.setenv("STAGEWISE_CONFIG", str(config_path))
    monkeypatch.setenv("STAGEWISE_LOG_LEVEL", "debug")

    config = load_config()
    assert config.client.backend == "swf"
    assert config.client.swf.region == "eu-west-1"
    assert config.worker.identity == "host-7"
    assert config.worker.max_poll_backoff == 5
    assert config.log_level == "DEBUG"


def test_get_client_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "stagewise.yaml"
    config_path.write_text(
        """
client:
  backend: swf
  swf:
    region: us-west-2
"""
    )
    monkeypatch.setenv("STAGEWISE_CONFIG", str(config_path))
    monkeypatch.delenv("STAGEWISE_CLIENT", raising=False)

    client = get_client()
    assert isinstance(client, SwfOrchestrationClient)
    assert client.region == "us-west-2"


def test_env_overrides_client_backend(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEWISE_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("STAGEWISE_CLIENT", "inmemory")
    assert isinstance(get_client(), InMemoryOrchestrationClient)


def test_unknown_backend_is_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("STAGEWISE_CONFIG", str(tmp_path / "missing.yaml"))
    with pytest.raises(ValueError):
        get_client("carrier-pigeon")
