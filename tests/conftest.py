#!/usr/bin/env python3
# file: tests/conftest.py
# version: 1.0.0
# guid: 8a5f2c6e-3d91-4b07-a4c8-e1b9f06d7c52

"""In-memory collaborators for driving the push reconciliation in tests."""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Any, Generator

import pytest

SCRIPTS_PATH = Path(__file__).resolve().parents[1] / ".github/workflows/scripts"
if str(SCRIPTS_PATH) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_PATH))

from bsr_registry import ErrorCode, RepositoryTag, RpcResult, TrackHead  # noqa: E402
from github_compare import CompareStatus  # noqa: E402
from module_reader import BufModule, ModuleFile, ModuleIdentity  # noqa: E402
import workflow_common  # noqa: E402

GIT_COMMIT_1 = "a" * 40
GIT_COMMIT_2 = "b" * 40
CURRENT_COMMIT = "f" * 40


class FakeComparator:
    """Returns scripted statuses keyed by ``base`` and records every call."""

    def __init__(self, statuses: dict[str, Any] | None = None) -> None:
        self.statuses = statuses or {}
        self.calls: list[tuple[str, str]] = []

    def compare_commits(self, base: str, head: str) -> CompareStatus:
        self.calls.append((base, head))
        status = self.statuses.get(base, CompareStatus.AHEAD)
        if isinstance(status, Exception):
            raise status
        return status


class FakeRegistry:
    """Scripted ``RegistryClient`` that records every call."""

    def __init__(
        self,
        head: RpcResult | None = None,
        push: RpcResult | None = None,
        tag: RpcResult | None = None,
        delete: RpcResult | None = None,
    ) -> None:
        self.head = head or RpcResult(ErrorCode.NOT_FOUND, message="track not found")
        self.push_result = push or RpcResult(ErrorCode.OK, "c1")
        self.tag_result = tag or RpcResult(ErrorCode.OK, RepositoryTag("tag", "c0"))
        self.delete_result = delete or RpcResult(ErrorCode.OK, {})
        self.head_calls: list[tuple[ModuleIdentity, str]] = []
        self.push_calls: list[dict[str, Any]] = []
        self.tag_calls: list[tuple[ModuleIdentity, str, str]] = []
        self.delete_calls: list[tuple[ModuleIdentity, str]] = []

    @property
    def call_count(self) -> int:
        return (
            len(self.head_calls)
            + len(self.push_calls)
            + len(self.tag_calls)
            + len(self.delete_calls)
        )

    def get_track_head(self, module: ModuleIdentity, track: str) -> RpcResult:
        self.head_calls.append((module, track))
        return self.head

    def push(self, owner, repository, module, tags, tracks) -> RpcResult:
        self.push_calls.append(
            {
                "owner": owner,
                "repository": repository,
                "module": module,
                "tags": list(tags),
                "tracks": list(tracks),
            }
        )
        return self.push_result

    def tag_existing_commit(self, module, tag_name, existing_commit) -> RpcResult:
        self.tag_calls.append((module, tag_name, existing_commit))
        return self.tag_result

    def delete_track(self, module, track) -> RpcResult:
        self.delete_calls.append((module, track))
        return self.delete_result


def head_with_tags(commit: str, *tags: str) -> RpcResult:
    return RpcResult(ErrorCode.OK, TrackHead(commit=commit, tags=tuple(tags)))


@pytest.fixture
def identity() -> ModuleIdentity:
    return ModuleIdentity("buf.build", "acme", "weather")


@pytest.fixture
def module(identity: ModuleIdentity) -> BufModule:
    return BufModule(
        identity=identity,
        files=(ModuleFile("acme/weather/v1/weather.proto", b'syntax = "proto3";\n'),),
    )


@pytest.fixture
def module_dir(tmp_path: Path) -> Path:
    """A minimal module on disk."""
    root = tmp_path / "proto"
    (root / "acme" / "weather" / "v1").mkdir(parents=True)
    (root / "buf.yaml").write_text(
        "version: v1\nname: buf.build/acme/weather\n",
        encoding="utf-8",
    )
    (root / "acme" / "weather" / "v1" / "weather.proto").write_text(
        'syntax = "proto3";\n\npackage acme.weather.v1;\n',
        encoding="utf-8",
    )
    return root


@pytest.fixture(autouse=True)
def reset_masks() -> Generator[None, None, None]:
    """Forget values masked by earlier tests."""
    workflow_common._MASKED_VALUES.clear()  # type: ignore[attr-defined]
    yield
    workflow_common._MASKED_VALUES.clear()  # type: ignore[attr-defined]
