#!/usr/bin/env python3
# file: .github/workflows/scripts/workflow_common.py
# version: 2.0.0
# guid: 3b8e1f52-7c4a-4d19-9a6e-0f2d5c8b7a14

"""Shared utilities for the buf-push-action helper scripts."""

from __future__ import annotations

from contextlib import contextmanager
import os
from pathlib import Path
import re
import sys
import time

_MASKED_VALUES: list[str] = []


class WorkflowError(Exception):
    """Workflow execution error with optional hints and documentation links."""

    def __init__(
        self,
        message: str,
        hint: str = "",
        docs_url: str = "",
    ) -> None:
        """Initialize workflow error."""
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.docs_url = docs_url

    def __str__(self) -> str:
        """Format error with hints and documentation links."""
        parts = [f"❌ {self.message}"]
        if self.hint:
            parts.append(f"💡 Hint: {self.hint}")
        if self.docs_url:
            parts.append(f"📚 Docs: {self.docs_url}")
        return "\n".join(parts)


def append_to_file(path_env: str, content: str) -> None:
    """Append content to a GitHub Actions environment file."""
    file_path_str = os.environ.get(path_env)
    if not file_path_str:
        raise WorkflowError(
            f"Environment variable {path_env} not set",
            hint="This helper must run inside a GitHub Actions workflow",
            docs_url=(
                "https://docs.github.com/en/actions/using-workflows/"
                "workflow-commands-for-github-actions"
            ),
        )

    file_path = Path(file_path_str)
    if not file_path.exists():
        raise WorkflowError(
            f"File {file_path} does not exist",
            hint=f"Ensure GitHub Actions created the {path_env} file",
        )

    with file_path.open("a", encoding="utf-8") as handle:
        handle.write(content)


def write_output(name: str, value: str) -> None:
    """Write an output variable for downstream workflow steps.

    The value is always echoed to stdout so local runs still see it; the
    ``GITHUB_OUTPUT`` file is only written when the runner provides one.
    """
    print(f"{name}={value}")
    if os.environ.get("GITHUB_OUTPUT"):
        append_to_file("GITHUB_OUTPUT", f"{name}={value}\n")


def append_summary(text: str) -> None:
    """Append markdown content to the GitHub Actions step summary."""
    append_to_file("GITHUB_STEP_SUMMARY", text)


def escape_command_data(value: str) -> str:
    """Escape a message for use inside a workflow command."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def write_notice(message: str) -> None:
    """Emit a ``::notice::`` annotation."""
    print(f"::notice::{escape_command_data(sanitize_log(message))}")


def write_error(message: str) -> None:
    """Emit a ``::error::`` annotation."""
    print(f"::error::{escape_command_data(sanitize_log(message))}")


def add_mask(value: str) -> None:
    """Ask the runner to mask ``value`` and mask it in our own logs too."""
    if not value:
        return
    print(f"::add-mask::{value}")
    if value not in _MASKED_VALUES:
        _MASKED_VALUES.append(value)


def get_input(name: str, default: str = "", required: bool = False) -> str:
    """Return an action input the way the runner exposes it (``INPUT_<NAME>``)."""
    key = "INPUT_" + name.replace(" ", "_").upper()
    value = os.environ.get(key, "").strip()
    if not value:
        if required:
            raise WorkflowError(
                f"Input required and not supplied: {name}",
                hint=f"Add '{name}' to the 'with:' block of the step",
            )
        return default
    return value


@contextmanager
def timed_operation(operation_name: str):
    """Context manager that records duration for an operation."""
    start_time = time.time()
    try:
        yield
    finally:
        duration = time.time() - start_time
        print(f"⏱️  {operation_name} took {duration:.2f}s")
        try:
            append_summary(f"| {operation_name} | {duration:.2f}s |\n")
        except WorkflowError as error:
            print(sanitize_log(str(error)), file=sys.stderr)


def handle_error(error: Exception, context: str) -> None:
    """Report an error as a workflow annotation and exit non-zero."""
    if isinstance(error, WorkflowError):
        message = error.message
        if error.hint:
            message = f"{message} (hint: {error.hint})"
    else:
        message = f"Unexpected error in {context}: {error}"
    write_error(message)
    print(sanitize_log(str(error)), file=sys.stderr)
    sys.exit(1)


def sanitize_log(message: str) -> str:
    """Mask sensitive tokens from log messages."""
    sanitized = re.sub(r"ghp_[a-zA-Z0-9]{36}", "***GITHUB_TOKEN***", message)
    sanitized = re.sub(r"ghs_[a-zA-Z0-9]{36}", "***GITHUB_SECRET***", sanitized)
    sanitized = re.sub(
        r"Bearer\s+[a-zA-Z0-9\-._~+/]+=*",
        "Bearer ***TOKEN***",
        sanitized,
    )
    for value in _MASKED_VALUES:
        sanitized = sanitized.replace(value, "***")
    return sanitized
