#!/usr/bin/env python3
# file: .github/workflows/scripts/buf_push_action.py
# version: 1.0.0
# guid: a2e97c0b-58d3-4f16-8b4a-1c9d0e7f3a25

"""Command line entry point for the buf-push-action GitHub Action.

Usage:
    python buf_push_action.py push <input> <track> <commit> <default-branch> <ref-name>
    python buf_push_action.py delete-track
"""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

import buf_push
from bsr_registry import BsrRegistryClient
from github_compare import GitHubCompareClient
import module_reader
import push_config
import workflow_common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buf_push_action",
        description="helper for the GitHub Action buf-push-action",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    push = subcommands.add_parser("push", help="push to BSR")
    push.add_argument("input", help="Directory containing buf.yaml")
    push.add_argument("track", help="Track to push to")
    push.add_argument("commit", help="Git commit SHA being pushed")
    push.add_argument("default_branch", help="Repository default branch")
    push.add_argument("ref_name", help="Ref name that triggered the workflow")

    subcommands.add_parser(
        "delete-track",
        help="delete a track on BSR (reads the input, track and default_branch inputs)",
    )
    return parser


def run_push(
    request: push_config.PushRequest,
    config: push_config.ActionConfig,
) -> buf_push.PushResult:
    """Reconcile and push ``request``, then publish the workflow outputs."""
    # Validate before touching the network or the filesystem.
    buf_push.check_main_track(request)

    with workflow_common.timed_operation("Read module"):
        module = module_reader.read_module(request.input_path)
    identity = module.identity
    print(f"📦 Module: {identity.identity_string()} ({len(module.files)} files)")

    comparator = GitHubCompareClient(
        config.github_token,
        config.github_repository,
        api_url=config.github_api_url,
    )
    registry = BsrRegistryClient(
        config.buf_token,
        identity.remote,
        api_url=config.registry_api_url,
    )

    with workflow_common.timed_operation("Push to BSR"):
        result = buf_push.reconcile_push(request, module, comparator, registry)

    print(f"🎯 Track: {result.track}")
    print(f"✅ Outcome: {result.outcome.value}")
    if result.commit:
        workflow_common.write_output("commit", result.commit)
        workflow_common.write_output("commit_url", result.commit_url or "")

    try:
        workflow_common.append_summary(buf_push.format_push_summary(result, identity))
    except workflow_common.WorkflowError as error:
        print(workflow_common.sanitize_log(str(error)))
    return result


def run_delete_track(config: push_config.ActionConfig) -> Optional[str]:
    """Delete the track named by the action inputs."""
    input_path = workflow_common.get_input("input", default=".")
    track = workflow_common.get_input("track")
    default_branch = workflow_common.get_input("default_branch")

    module = module_reader.read_module(input_path)
    registry = BsrRegistryClient(
        config.buf_token,
        module.identity.remote,
        api_url=config.registry_api_url,
    )
    notice = buf_push.delete_track(
        module.identity,
        track,
        default_branch,
        config.ref_name,
        registry,
    )
    if notice is None:
        print(f"🗑️  Deleted track {track} of {module.identity.identity_string()}")
    return notice


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point; exits non-zero with an ``::error::`` line on failure."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = push_config.load_action_config()
        workflow_common.add_mask(config.buf_token)

        if args.command == "push":
            request = push_config.PushRequest(
                input_path=args.input,
                track=args.track,
                current_commit=args.commit,
                default_branch=args.default_branch,
                ref_name=args.ref_name,
            )
            run_push(request, config)
        else:
            run_delete_track(config)
    except Exception as error:  # pylint: disable=broad-except
        workflow_common.handle_error(error, args.command)


if __name__ == "__main__":
    main()
