#!/usr/bin/env python3
# file: .github/workflows/scripts/module_reader.py
# version: 1.0.0
# guid: 51f0c8a3-2b6d-4e7a-8c19-d4e3b7a2f605

"""Read a buf module (buf.yaml, buf.lock and .proto sources) from disk."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import workflow_common
import yaml

CONFIG_FILE_NAME = "buf.yaml"
LOCK_FILE_NAME = "buf.lock"
DOCUMENTATION_FILE_NAMES = ("buf.md", "README.md", "README.markdown")


class ConfigNotFoundError(workflow_common.WorkflowError):
    """buf.yaml is missing from the input directory."""


class ModuleParseError(workflow_common.WorkflowError):
    """buf.yaml, buf.lock or the module contents could not be interpreted."""


@dataclass(frozen=True)
class ModuleIdentity:
    """The ``remote/owner/repository`` name of a module."""

    remote: str
    owner: str
    repository: str

    @classmethod
    def parse(cls, name: str) -> "ModuleIdentity":
        parts = name.strip().split("/")
        if len(parts) != 3 or not all(parts):
            raise ModuleParseError(
                f"invalid module name: {name!r}",
                hint="The buf.yaml name must look like buf.build/owner/repository",
            )
        return cls(remote=parts[0], owner=parts[1], repository=parts[2])

    def identity_string(self) -> str:
        return f"{self.remote}/{self.owner}/{self.repository}"

    def commit_url(self, commit: str) -> str:
        """Return the BSR web URL for ``commit`` of this module."""
        return f"https://{self.identity_string()}/tree/{commit}"


@dataclass(frozen=True)
class ModuleFile:
    path: str
    content: bytes


@dataclass(frozen=True)
class ModulePin:
    remote: str
    owner: str
    repository: str
    commit: str
    branch: str = ""


@dataclass(frozen=True)
class BufModule:
    """A module ready to be pushed: identity plus content bundle."""

    identity: ModuleIdentity
    files: tuple[ModuleFile, ...]
    dependencies: tuple[ModulePin, ...] = ()
    documentation: str = ""
    documentation_path: str = ""
    excludes: tuple[str, ...] = ()

    def to_proto_json(self) -> dict[str, Any]:
        """Encode as the JSON form of ``buf.alpha.module.v1alpha1.Module``."""
        payload: dict[str, Any] = {
            "files": [
                {
                    "path": module_file.path,
                    "content": base64.b64encode(module_file.content).decode("ascii"),
                }
                for module_file in self.files
            ],
        }
        if self.dependencies:
            payload["dependencies"] = [
                {
                    "remote": pin.remote,
                    "owner": pin.owner,
                    "repository": pin.repository,
                    "branch": pin.branch,
                    "commit": pin.commit,
                }
                for pin in self.dependencies
            ]
        if self.documentation:
            payload["documentation"] = self.documentation
            payload["documentationPath"] = self.documentation_path
        return payload


def _load_yaml(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as handle:
            return yaml.safe_load(handle)
    except yaml.YAMLError as error:
        raise ModuleParseError(
            f"Invalid YAML in {path}: {error}",
            hint=f"Validate with: yamllint {path}",
        ) from error


def load_config(input_path: Path) -> dict[str, Any]:
    """Load buf.yaml from ``input_path``."""
    config_path = input_path / CONFIG_FILE_NAME
    if not config_path.is_file():
        raise ConfigNotFoundError(
            f"config file not found: {input_path}",
            hint=f"The 'input' directory must contain a {CONFIG_FILE_NAME}",
            docs_url="https://docs.buf.build/configuration/v1/buf-yaml",
        )
    config = _load_yaml(config_path)
    if not isinstance(config, dict):
        raise ModuleParseError(f"{config_path} must contain a YAML dictionary")
    return config


def load_lock_dependencies(input_path: Path) -> tuple[ModulePin, ...]:
    """Return the pinned dependencies from buf.lock, if one exists."""
    lock_path = input_path / LOCK_FILE_NAME
    if not lock_path.is_file():
        return ()
    lock = _load_yaml(lock_path) or {}
    if not isinstance(lock, dict):
        raise ModuleParseError(f"{lock_path} must contain a YAML dictionary")

    pins: list[ModulePin] = []
    for entry in lock.get("deps") or []:
        if not isinstance(entry, dict):
            raise ModuleParseError(f"{lock_path} has a malformed dependency: {entry!r}")
        try:
            pins.append(
                ModulePin(
                    remote=str(entry["remote"]),
                    owner=str(entry["owner"]),
                    repository=str(entry["repository"]),
                    commit=str(entry["commit"]),
                    branch=str(entry.get("branch", "")),
                )
            )
        except KeyError as error:
            raise ModuleParseError(
                f"{lock_path} dependency is missing {error.args[0]!r}",
                hint="Regenerate the lock file with: buf mod update",
            ) from error
    return tuple(pins)


def _is_excluded(relative: Path, excludes: tuple[str, ...]) -> bool:
    relative_str = relative.as_posix()
    return any(
        relative_str == exclude or relative_str.startswith(exclude.rstrip("/") + "/")
        for exclude in excludes
    )


def collect_proto_files(input_path: Path, excludes: tuple[str, ...] = ()) -> tuple[ModuleFile, ...]:
    """Collect every .proto file under ``input_path`` in a stable order."""
    files: list[ModuleFile] = []
    for path in sorted(input_path.rglob("*.proto")):
        if not path.is_file():
            continue
        relative = path.relative_to(input_path)
        if _is_excluded(relative, excludes):
            continue
        files.append(ModuleFile(path=relative.as_posix(), content=path.read_bytes()))
    return tuple(files)


def read_documentation(input_path: Path) -> tuple[str, str]:
    for file_name in DOCUMENTATION_FILE_NAMES:
        candidate = input_path / file_name
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8"), file_name
    return "", ""


def read_module(input_path: str | Path) -> BufModule:
    """Read the module rooted at ``input_path``.

    Raises:
        ConfigNotFoundError: If buf.yaml is missing
        ModuleParseError: If the configuration is invalid or there are no files
    """
    root = Path(input_path)
    config = load_config(root)

    name = config.get("name")
    if not name or not isinstance(name, str):
        raise ModuleParseError(
            f"name not found in {root / CONFIG_FILE_NAME}",
            hint="Add a 'name: buf.build/<owner>/<repository>' entry",
        )
    identity = ModuleIdentity.parse(name)

    build = config.get("build") or {}
    excludes = tuple(
        Path(str(exclude)).as_posix() for exclude in (build.get("excludes") or [])
    )

    files = collect_proto_files(root, excludes)
    if not files:
        raise ModuleParseError("module has no files")

    documentation, documentation_path = read_documentation(root)
    return BufModule(
        identity=identity,
        files=files,
        dependencies=load_lock_dependencies(root),
        documentation=documentation,
        documentation_path=documentation_path,
        excludes=excludes,
    )
