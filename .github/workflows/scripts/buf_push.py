#!/usr/bin/env python3
# file: .github/workflows/scripts/buf_push.py
# version: 1.0.0
# guid: 6f1d8b39-0c5e-4a72-9e84-b3a7c2d15e60

"""Push reconciliation for buf-push-action.

Decides whether the current git commit should be pushed to a BSR track, and
converges pushes whose content already exists on the track head.

A push is skipped when a git-SHA tag on the track head is identical to, or
ahead of, the current commit. Divergence is reported but does not block the
push. When the registry refuses a push because the content already exists,
the current SHA is attached as an extra tag on the existing head commit so
later lookups by that SHA succeed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import re
from typing import Optional

from bsr_registry import ErrorCode, RegistryClient, RegistryError, TrackHead
from github_compare import CommitComparator, CompareStatus
from module_reader import BufModule, ModuleIdentity
from push_config import PushRequest
import workflow_common

MAIN_TRACK = "main"

_GIT_COMMIT_TAG = re.compile(r"^[0-9a-f]{40}$")


class CrossBranchMainError(workflow_common.WorkflowError):
    """The main track was targeted from a branch that is not the default."""


class PushOutcome(enum.Enum):
    SKIPPED_IDENTICAL = "skipped-identical"
    SKIPPED_BEHIND = "skipped-behind"
    PUSHED_NEW = "pushed-new"
    PUSHED_DIVERGED = "pushed-diverged"
    TAGGED_EXISTING = "tagged-existing"

    @property
    def skipped(self) -> bool:
        return self in (PushOutcome.SKIPPED_IDENTICAL, PushOutcome.SKIPPED_BEHIND)


@dataclass
class PushResult:
    """Terminal result of a reconciliation.

    Attributes:
        outcome: Which path the reconciliation took
        track: Effective track after resolution
        commit: Resulting BSR commit name (``None`` when skipped)
        commit_url: BSR web URL for ``commit``
        notices: Notices emitted along the way, in order
    """

    outcome: PushOutcome
    track: str
    commit: Optional[str] = None
    commit_url: Optional[str] = None
    notices: list[str] = field(default_factory=list)


def resolve_track(track: str, default_branch: str, ref_name: str) -> str:
    """Return the track a push or delete should act on.

    The requested track is returned unchanged unless it names the repository's
    default branch and was either taken from the triggering ref or no ref is
    known, in which case the registry's default track ``main`` is used.
    """
    if track == default_branch and (track == ref_name or ref_name == ""):
        return MAIN_TRACK
    return track


def is_git_commit_tag(tag: str) -> bool:
    """True when ``tag`` has the shape of a full lowercase git SHA."""
    return bool(_GIT_COMMIT_TAG.match(tag))


def candidate_tags(head: Optional[TrackHead]) -> list[str]:
    if head is None:
        return []
    return [tag for tag in head.tags if is_git_commit_tag(tag)]


def check_main_track(request: PushRequest) -> None:
    """Reject pushes to ``main`` from a branch literally named main that isn't the default.

    This keeps commits from a second ``main`` branch out of the main track when
    the repository's default branch is something else (e.g. ``master``).
    """
    if (
        request.default_branch != MAIN_TRACK
        and request.track == MAIN_TRACK
        and request.track == request.ref_name
    ):
        raise CrossBranchMainError(
            "cannot push to main track from a non-default branch",
            hint=(
                f"The default branch is '{request.default_branch}'; set the "
                "'track' input to push this branch elsewhere"
            ),
        )


def fetch_track_head(
    registry: RegistryClient,
    module: ModuleIdentity,
    track: str,
) -> Optional[TrackHead]:
    """Return the head of ``track`` or ``None`` when the track has no history."""
    result = registry.get_track_head(module, track)
    if result.ok:
        return result.value
    # FAILED_PRECONDITION can mean the track exists without commits; if some
    # other precondition is unmet the push below fails and reports it.
    if result.code in (ErrorCode.NOT_FOUND, ErrorCode.FAILED_PRECONDITION):
        return None
    raise RegistryError(result.message or result.code.value, code=result.code.value)


def _notify(result: PushResult, message: str) -> None:
    result.notices.append(message)
    workflow_common.write_notice(message)


def tag_existing_commit(
    registry: RegistryClient,
    module: ModuleIdentity,
    tag_name: str,
    commit: str,
) -> None:
    """Attach ``tag_name`` to the existing ``commit``."""
    result = registry.tag_existing_commit(module, tag_name, commit)
    if result.ok:
        return
    if result.code is ErrorCode.NOT_FOUND:
        raise workflow_common.WorkflowError(
            f'a repository named "{module.identity_string()}" does not exist',
        )
    if result.code is ErrorCode.ALREADY_EXISTS:
        raise workflow_common.WorkflowError(
            f"{module.identity_string()}:{tag_name} already exists with different content",
        )
    raise RegistryError(result.message or result.code.value, code=result.code.value)


def reconcile_push(
    request: PushRequest,
    module: BufModule,
    comparator: CommitComparator,
    registry: RegistryClient,
) -> PushResult:
    """Skip, push, or tag the existing head for ``request``.

    Raises:
        CrossBranchMainError: If main is targeted from a non-default branch
        workflow_common.WorkflowError: For any failure that cannot be reconciled
    """
    if not request.current_commit:
        raise workflow_common.WorkflowError(
            "github.sha is empty",
            hint="Pass the commit to push, normally ${{ github.sha }}",
        )
    check_main_track(request)

    identity = module.identity
    track = resolve_track(request.track, request.default_branch, request.ref_name)
    result = PushResult(outcome=PushOutcome.PUSHED_NEW, track=track)

    head = fetch_track_head(registry, identity, track)

    for tag in candidate_tags(head):
        status = comparator.compare_commits(tag, request.current_commit)
        if status is CompareStatus.NOT_FOUND:
            continue
        if status is CompareStatus.IDENTICAL:
            result.outcome = PushOutcome.SKIPPED_IDENTICAL
            _notify(
                result,
                f"Skipping because the current git commit is already the head of track {track}",
            )
            return result
        if status is CompareStatus.BEHIND:
            result.outcome = PushOutcome.SKIPPED_BEHIND
            _notify(
                result,
                f"Skipping because the current git commit is behind the head of track {track}",
            )
            return result
        if status is CompareStatus.DIVERGED:
            result.outcome = PushOutcome.PUSHED_DIVERGED
            _notify(
                result,
                f"The current git commit is diverged from the head of track {track}",
            )
        elif status is not CompareStatus.AHEAD:
            raise workflow_common.WorkflowError(f"unexpected status: {status.value}")

    pushed = registry.push(
        identity.owner,
        identity.repository,
        module,
        [request.current_commit],
        [track],
    )
    if pushed.ok:
        result.commit = pushed.value
    elif pushed.code is ErrorCode.ALREADY_EXISTS and head is not None:
        tag_existing_commit(registry, identity, request.current_commit, head.commit)
        result.outcome = PushOutcome.TAGGED_EXISTING
        result.commit = head.commit
        _notify(result, "The latest commit has the same content; not creating a new commit.")
    else:
        raise RegistryError(pushed.message or pushed.code.value, code=pushed.code.value)

    result.commit_url = identity.commit_url(result.commit)
    return result


def delete_track(
    module: ModuleIdentity,
    track: str,
    default_branch: str,
    ref_name: str,
    registry: RegistryClient,
) -> Optional[str]:
    """Delete a non-main track.

    Returns:
        The notice emitted when nothing was deleted, otherwise ``None``
    """
    if not track:
        raise workflow_common.WorkflowError("track not provided")
    if not default_branch:
        raise workflow_common.WorkflowError("default_branch not provided")

    track = resolve_track(track, default_branch, ref_name)
    if track == MAIN_TRACK:
        notice = "Skipping because the main track can not be deleted from BSR"
        workflow_common.write_notice(notice)
        return notice

    result = registry.delete_track(module, track)
    if result.ok:
        return None
    if result.code is ErrorCode.NOT_FOUND:
        raise workflow_common.WorkflowError(
            f"{module.identity_string()}:{track} does not exist",
        )
    raise RegistryError(result.message or result.code.value, code=result.code.value)


def format_push_summary(result: PushResult, module: ModuleIdentity) -> str:
    """Format the outcome as markdown for the step summary."""
    lines = [
        "## Buf Push",
        "",
        f"**Module**: {module.identity_string()}",
        f"**Track**: {result.track}",
        f"**Outcome**: {result.outcome.value}",
    ]
    if result.commit:
        lines.append(f"**Commit**: [{result.commit}]({result.commit_url})")
    for notice in result.notices:
        lines.append(f"- {notice}")
    return "\n".join(lines) + "\n"
