#!/usr/bin/env python3
# file: .github/workflows/scripts/bsr_registry.py
# version: 1.0.0
# guid: 0e6b3d84-9a27-4c51-bf08-2d7c6e1a95f3

"""Buf Schema Registry client.

The registry speaks the Connect protocol: every RPC is an HTTPS ``POST`` of a
JSON body to ``{api_url}/{service}/{method}``. Failures come back as JSON
``{"code": ..., "message": ...}`` documents. The reconciliation branches on
``not_found``, ``already_exists`` and ``failed_precondition``, so those are
returned to the caller as an ``ErrorCode`` on the ``RpcResult``; any other
failure raises ``RegistryError``.
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
from typing import Any, Optional, Protocol

from module_reader import BufModule, ModuleIdentity
import requests
import workflow_common

REGISTRY_PACKAGE = "buf.alpha.registry.v1alpha1"
USER_AGENT = "buf-push-action"
REQUEST_TIMEOUT = 30


class ErrorCode(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    FAILED_PRECONDITION = "failed_precondition"


class RegistryError(workflow_common.WorkflowError):
    """A registry call failed in a way the caller cannot reconcile."""

    def __init__(self, message: str, code: str = "unknown", hint: str = "") -> None:
        super().__init__(message, hint=hint)
        self.code = code


@dataclass(frozen=True)
class RpcResult:
    """Outcome of one registry call: an ``ErrorCode`` plus the decoded value."""

    code: ErrorCode
    value: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.code is ErrorCode.OK


@dataclass(frozen=True)
class TrackHead:
    """The commit at the tip of a track and the tags attached to it."""

    commit: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class RepositoryTag:
    name: str
    commit: str


class RegistryClient(Protocol):
    def get_track_head(self, module: ModuleIdentity, track: str) -> RpcResult:
        ...

    def push(
        self,
        owner: str,
        repository: str,
        module: BufModule,
        tags: list[str],
        tracks: list[str],
    ) -> RpcResult:
        ...

    def tag_existing_commit(
        self,
        module: ModuleIdentity,
        tag_name: str,
        existing_commit: str,
    ) -> RpcResult:
        ...

    def delete_track(self, module: ModuleIdentity, track: str) -> RpcResult:
        ...


def default_api_url(remote: str) -> str:
    return f"https://api.{remote}"


class BsrRegistryClient:
    """``RegistryClient`` backed by the BSR Connect API."""

    def __init__(
        self,
        token: str,
        remote: str,
        api_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not token:
            raise workflow_common.WorkflowError(
                "a buf authentication token was not provided",
            )
        self.remote = remote
        self.api_url = (api_url or default_api_url(remote)).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Connect-Protocol-Version": "1",
                "User-Agent": USER_AGENT,
            }
        )

    def call(self, service: str, method: str, body: dict[str, Any]) -> RpcResult:
        """Invoke ``service/method`` and classify the response."""
        url = f"{self.api_url}/{REGISTRY_PACKAGE}.{service}/{method}"
        try:
            response = self.session.post(url, json=body, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as error:
            raise RegistryError(f"{service}.{method} failed: {error}") from error

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = None

        if response.status_code == 200:
            if not isinstance(payload, dict):
                raise RegistryError(f"{service}.{method} returned a non-JSON response")
            return RpcResult(ErrorCode.OK, payload)

        if not isinstance(payload, dict) or "code" not in payload:
            raise RegistryError(
                f"{service}.{method} failed: "
                f"{response.status_code} {response.text.strip()}",
            )
        code = str(payload["code"])
        message = str(payload.get("message", ""))
        try:
            error_code = ErrorCode(code)
        except ValueError:
            error_code = None
        if error_code is None or error_code is ErrorCode.OK:
            hint = ""
            if code == "unauthenticated":
                hint = "Check that buf_token is a valid BSR API token"
            raise RegistryError(message or code, code=code, hint=hint)
        return RpcResult(error_code, message=message)

    def get_track_head(self, module: ModuleIdentity, track: str) -> RpcResult:
        result = self.call(
            "RepositoryCommitService",
            "GetRepositoryCommitByReference",
            {
                "repositoryOwner": module.owner,
                "repositoryName": module.repository,
                "reference": track,
            },
        )
        if not result.ok:
            return result
        commit = result.value.get("repositoryCommit") or {}
        head = TrackHead(
            commit=str(commit.get("name", "")),
            tags=tuple(str(tag.get("name", "")) for tag in commit.get("tags") or []),
        )
        return RpcResult(ErrorCode.OK, head)

    def push(
        self,
        owner: str,
        repository: str,
        module: BufModule,
        tags: list[str],
        tracks: list[str],
    ) -> RpcResult:
        result = self.call(
            "PushService",
            "Push",
            {
                "owner": owner,
                "repository": repository,
                "branch": "",
                "module": module.to_proto_json(),
                "tags": list(tags),
                "tracks": list(tracks),
            },
        )
        if not result.ok:
            return result
        pin = result.value.get("localModulePin") or {}
        return RpcResult(ErrorCode.OK, str(pin.get("commit", "")))

    def tag_existing_commit(
        self,
        module: ModuleIdentity,
        tag_name: str,
        existing_commit: str,
    ) -> RpcResult:
        repository = self.call(
            "RepositoryService",
            "GetRepositoryByFullName",
            {"fullName": f"{module.owner}/{module.repository}"},
        )
        if not repository.ok:
            return repository
        repository_id = (repository.value.get("repository") or {}).get("id", "")

        result = self.call(
            "RepositoryTagService",
            "CreateRepositoryTag",
            {
                "repositoryId": repository_id,
                "name": tag_name,
                "commitName": existing_commit,
            },
        )
        if not result.ok:
            return result
        tag = result.value.get("repositoryTag") or {}
        return RpcResult(
            ErrorCode.OK,
            RepositoryTag(
                name=str(tag.get("name", tag_name)),
                commit=str(tag.get("commitName", existing_commit)),
            ),
        )

    def delete_track(self, module: ModuleIdentity, track: str) -> RpcResult:
        return self.call(
            "RepositoryTrackService",
            "DeleteRepositoryTrackByName",
            {
                "ownerName": module.owner,
                "repositoryName": module.repository,
                "name": track,
            },
        )
