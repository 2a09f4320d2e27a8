"""Shared pytest fixtures and configuration for the opencli-wrap test suite.

Guidelines
----------
* No internet access in any test.
* Real processes are only ever ``sys.executable``.
* Core tests must be pure, with no side effects.
* Coroutines are driven with ``asyncio.run`` from plain test functions.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from opencli_wrap.core.models import Spec
from opencli_wrap.core.spec_parser import parse_spec

SAMPLE_SPEC: dict[str, object] = {
    "opencli": "0.1",
    "info": {
        "title": "TaskManager",
        "version": "1.0.0",
        "description": "A small task manager",
    },
    "options": [
        {"name": "verbose", "aliases": ["-v"], "description": "Verbose output"},
        {
            "name": "config",
            "description": "Config file",
            "arguments": [{"name": "path", "required": True}],
        },
    ],
    "commands": {
        "task": {
            "description": "Manage tasks",
            "commands": {
                "add": {
                    "description": "Add a new task",
                    "arguments": [
                        {"name": "title", "required": True, "ordinal": 0},
                    ],
                    "options": [
                        {
                            "name": "priority",
                            "aliases": ["-p"],
                            "arguments": [{"name": "level", "required": True}],
                        },
                        {"name": "dry-run"},
                    ],
                    "exitCodes": [{"code": 0, "description": "Created"}],
                    "examples": [{"command": "task add \"Buy milk\" --priority high"}],
                },
                "complete": {
                    "description": "Complete a task",
                    "arguments": [
                        {"name": "id", "required": True, "ordinal": 0},
                        {"name": "note", "required": False, "ordinal": 1},
                    ],
                },
            },
        },
        "stats": {"description": "Show statistics"},
    },
}


@pytest.fixture()
def sample_spec_text() -> str:
    return json.dumps(SAMPLE_SPEC)


@pytest.fixture()
def sample_spec(sample_spec_text: str) -> Spec:
    return parse_spec(sample_spec_text)


@pytest.fixture()
def sample_spec_file(tmp_path: Path, sample_spec_text: str) -> Path:
    path = tmp_path / "taskmanager.opencli.json"
    path.write_text(sample_spec_text, encoding="utf-8")
    return path
