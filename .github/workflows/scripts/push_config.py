#!/usr/bin/env python3
# file: .github/workflows/scripts/push_config.py
# version: 1.0.0
# guid: 9d2c6a17-4e8b-4f03-b5a1-6c7e2d9f0b38

"""Immutable run configuration captured once from the Actions environment.

Everything the reconciliation needs from the runner (tokens, repository, ref
name, API endpoints) is read here and handed on explicitly, so no other module
consults ``os.environ``.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping, Optional

import workflow_common

DEFAULT_GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True)
class PushRequest:
    """A single push invocation.

    Attributes:
        input_path: Directory holding the module's buf.yaml
        track: Track requested by the workflow
        current_commit: Git SHA being pushed (``github.sha``)
        default_branch: Repository default branch
        ref_name: Branch or tag name that triggered the run
    """

    input_path: str
    track: str
    current_commit: str
    default_branch: str
    ref_name: str


@dataclass(frozen=True)
class ActionConfig:
    """Credentials and endpoints for the remote collaborators."""

    buf_token: str
    github_token: str
    github_repository: str
    github_api_url: str = DEFAULT_GITHUB_API_URL
    ref_name: str = ""
    registry_api_url: Optional[str] = None


def load_action_config(environ: Optional[Mapping[str, str]] = None) -> ActionConfig:
    """Build an ``ActionConfig`` from action inputs and runner variables.

    Raises:
        workflow_common.WorkflowError: If the BSR token or repository is missing
    """
    env = os.environ if environ is None else environ

    buf_token = env.get("INPUT_BUF_TOKEN", "").strip() or env.get("BUF_TOKEN", "")
    if not buf_token:
        raise workflow_common.WorkflowError(
            "a buf authentication token was not provided",
            hint="Set the 'buf_token' input to a BSR API token secret",
            docs_url="https://docs.buf.build/bsr/authentication",
        )

    github_repository = env.get("GITHUB_REPOSITORY", "")
    if not github_repository:
        raise workflow_common.WorkflowError(
            "GITHUB_REPOSITORY is empty",
            hint="This helper must run inside a GitHub Actions workflow",
        )

    github_token = env.get("INPUT_GITHUB_TOKEN", "").strip() or env.get(
        "GITHUB_TOKEN", ""
    )

    return ActionConfig(
        buf_token=buf_token,
        github_token=github_token,
        github_repository=github_repository,
        github_api_url=env.get("GITHUB_API_URL", "") or DEFAULT_GITHUB_API_URL,
        ref_name=env.get("GITHUB_REF_NAME", ""),
        registry_api_url=env.get("BUF_API_URL") or None,
    )
