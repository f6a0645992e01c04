#!/usr/bin/env python3
# file: .github/workflows/scripts/github_compare.py
# version: 1.0.0
# guid: c7a49e20-1f3b-4b8d-a652-83e0d1f9c4b7

"""Classify the relationship between two git commits via the GitHub API."""

from __future__ import annotations

import enum
from typing import Optional, Protocol

import requests
import workflow_common

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "buf-push-action"
REQUEST_TIMEOUT = 30


class CompareStatus(enum.Enum):
    """Where ``head`` sits relative to ``base``.

    ``NOT_FOUND`` means ``base`` is not a commit the repository knows about.
    """

    AHEAD = "ahead"
    BEHIND = "behind"
    IDENTICAL = "identical"
    DIVERGED = "diverged"
    NOT_FOUND = "not_found"


class CompareCommitsError(workflow_common.WorkflowError):
    """The comparison could not be made for a reason other than a missing commit."""


class CommitComparator(Protocol):
    def compare_commits(self, base: str, head: str) -> CompareStatus:
        ...


def parse_status(value: str) -> CompareStatus:
    """Map the API's ``status`` field onto a ``CompareStatus``."""
    try:
        status = CompareStatus(value)
    except ValueError:
        status = None
    if status is None or status is CompareStatus.NOT_FOUND:
        raise CompareCommitsError(f"unknown CompareCommitsStatus: {value}")
    return status


class GitHubCompareClient:
    """Commit comparison against ``GET /repos/{owner}/{repo}/compare/{base}...{head}``."""

    def __init__(
        self,
        token: str,
        repository: str,
        api_url: Optional[str] = None,
        user_agent: str = USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not token:
            raise workflow_common.WorkflowError(
                "github_token is empty",
                hint="Pass 'github_token: ${{ github.token }}' to the action",
            )
        owner_and_repo = repository.split("/")
        if len(owner_and_repo) != 2 or not all(owner_and_repo):
            raise workflow_common.WorkflowError(
                f"GITHUB_REPOSITORY is not in the format owner/repo: {repository}",
            )
        base_url = (api_url or DEFAULT_API_URL).rstrip("/")
        if not base_url.startswith(("https://", "http://")):
            raise workflow_common.WorkflowError(
                f"invalid GitHub API URL: {api_url}",
                hint="GITHUB_API_URL must include the http(s) scheme",
            )

        self.owner, self.repo = owner_and_repo
        self.base_url = base_url
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": user_agent,
            }
        )

    def compare_commits(self, base: str, head: str) -> CompareStatus:
        url = f"{self.base_url}/repos/{self.owner}/{self.repo}/compare/{base}...{head}"
        try:
            response = self.session.get(url, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as error:
            raise CompareCommitsError(
                f"Failed to compare {base}...{head}: {error}",
            ) from error

        if response.status_code == 404:
            return CompareStatus.NOT_FOUND
        if response.status_code != 200:
            raise CompareCommitsError(
                f"Failed to compare {base}...{head}: "
                f"{response.status_code} {response.text.strip()}",
                hint="Check that github_token can read repository contents",
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise CompareCommitsError(
                f"Invalid JSON from compare endpoint: {error}",
            ) from error
        return parse_status(str(payload.get("status", "")))
