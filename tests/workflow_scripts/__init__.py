#!/usr/bin/env python3
# file: tests/workflow_scripts/__init__.py
# version: 2.0.0
# guid: 6c2e0b94-a1f7-4d38-8e5b-f3a9d71c4e20

"""Unit tests for the buf-push-action helper scripts."""

from __future__ import annotations

from pathlib import Path
import sys

SCRIPTS_PATH = Path(__file__).resolve().parents[2] / ".github/workflows/scripts"
if str(SCRIPTS_PATH) not in sys.path:
    sys.path.insert(0, str(SCRIPTS_PATH))
