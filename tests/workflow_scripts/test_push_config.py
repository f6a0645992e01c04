#!/usr/bin/env python3
# file: tests/workflow_scripts/test_push_config.py
# version: 1.0.0
# guid: b9d4e2a0-7c63-4f1e-85b7-0a6c3e9d4f12

"""Unit tests for push_config module."""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / ".github/workflows/scripts"
sys.path.insert(0, str(SCRIPTS_DIR))

import push_config  # pylint: disable=wrong-import-position
import workflow_common  # pylint: disable=wrong-import-position


def test_load_action_config_from_inputs() -> None:
    """Action inputs take precedence over ambient variables."""
    config = push_config.load_action_config(
        {
            "INPUT_BUF_TOKEN": "buf-token",
            "INPUT_GITHUB_TOKEN": "input-gh",
            "GITHUB_TOKEN": "ambient-gh",
            "GITHUB_REPOSITORY": "acme/weather",
            "GITHUB_REF_NAME": "feature",
            "GITHUB_API_URL": "https://ghe.example.com/api/v3",
        }
    )

    assert config.buf_token == "buf-token"
    assert config.github_token == "input-gh"
    assert config.github_repository == "acme/weather"
    assert config.ref_name == "feature"
    assert config.github_api_url == "https://ghe.example.com/api/v3"
    assert config.registry_api_url is None


def test_load_action_config_defaults() -> None:
    """The ambient GITHUB_TOKEN and public API URL are used by default."""
    config = push_config.load_action_config(
        {
            "BUF_TOKEN": "buf-token",
            "GITHUB_TOKEN": "ambient-gh",
            "GITHUB_REPOSITORY": "acme/weather",
            "BUF_API_URL": "http://localhost:8080",
        }
    )

    assert config.github_token == "ambient-gh"
    assert config.github_api_url == push_config.DEFAULT_GITHUB_API_URL
    assert config.ref_name == ""
    assert config.registry_api_url == "http://localhost:8080"


def test_load_action_config_requires_buf_token() -> None:
    """A missing BSR token is a validation error."""
    with pytest.raises(workflow_common.WorkflowError) as exc_info:
        push_config.load_action_config({"GITHUB_REPOSITORY": "acme/weather"})

    assert exc_info.value.message == "a buf authentication token was not provided"


def test_load_action_config_requires_repository() -> None:
    """GITHUB_REPOSITORY must be set."""
    with pytest.raises(workflow_common.WorkflowError) as exc_info:
        push_config.load_action_config({"INPUT_BUF_TOKEN": "buf-token"})

    assert exc_info.value.message == "GITHUB_REPOSITORY is empty"


def test_load_action_config_reads_process_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Without an explicit mapping the process environment is used."""
    monkeypatch.setenv("INPUT_BUF_TOKEN", "from-env")
    monkeypatch.setenv("GITHUB_REPOSITORY", "acme/weather")

    assert push_config.load_action_config().buf_token == "from-env"


def test_push_request_is_immutable() -> None:
    """PushRequest cannot be changed after construction."""
    request = push_config.PushRequest(
        input_path=".",
        track="main",
        current_commit="a" * 40,
        default_branch="main",
        ref_name="main",
    )

    with pytest.raises(dataclasses.FrozenInstanceError):
        request.track = "other"  # type: ignore[misc]
