from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

WRAPPER_KEY = "workflowState"


def load_workflow_payload(path: Path) -> dict[str, Any]:
    """Read a workflow state file, accepting both bare and ``workflowState`` wrapped objects."""
    payload = orjson.loads(path.read_bytes())
    if not isinstance(payload, dict):
        msg = f"Expected a JSON object in {path}, got {type(payload).__name__}"
        raise ValueError(msg)
    return unwrap_workflow_state(payload)


def unwrap_workflow_state(payload: dict[str, Any]) -> dict[str, Any]:
    wrapped = payload.get(WRAPPER_KEY)
    return wrapped if isinstance(wrapped, dict) else payload


def write_state_atomic(path: Path, state: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.tmp")
    tmp_path.write_bytes(orjson.dumps(state, option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE))
    tmp_path.replace(path)
