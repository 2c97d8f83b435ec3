"""Filesystem-backed goal loader for screen-reader accessibility runs."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

from exceptions import GoalLoadError, GoalValidationError
from goal_types import Goal


def _optional_text(value: Any, index: int, field: str) -> str | None:
    """Return a stripped string, or None when the field is absent."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise GoalValidationError(
            f"Goal field '{field}' must be a string, got {type(value).__name__}",
            index=index,
            field=field,
        )
    return value.strip()


def _parse_goal(data: Dict[str, Any], index: int) -> Goal:
    """Parse one goal record: ``{"goal": ..., "expect": ...}``."""
    if not isinstance(data, dict):
        raise GoalValidationError("Goal entry must be a mapping", index=index)

    description = data.get("goal", data.get("description"))
    description = _optional_text(description, index, "goal")
    if not description:
        raise GoalValidationError("Goal is missing a 'goal' field", index=index, field="goal")

    # 'expect' is optional but, when given, must carry text
    expect_key = "expect" if "expect" in data else "expectation"
    expectation = _optional_text(data.get(expect_key), index, expect_key)
    if expectation is not None and not expectation:
        raise GoalValidationError(
            f"Goal field '{expect_key}' must not be empty",
            index=index,
            field=expect_key,
        )

    goal_id = data.get("id")
    return Goal(
        description=description,
        expectation=expectation,
        id=str(goal_id) if goal_id is not None else None,
    )


def parse_goals(payload: Any) -> List[Goal]:
    """Parse a decoded goal document into an ordered list of goals."""
    if isinstance(payload, dict) and "goals" in payload:
        payload = payload["goals"]
    if not isinstance(payload, list):
        raise GoalLoadError("Goal file must contain a list of goals")
    return [_parse_goal(item, index) for index, item in enumerate(payload)]


def load_goals(path: Path) -> List[Goal]:
    """Load an ordered goal list from a JSON or YAML file."""
    try:
        raw = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yml", ".yaml"}:
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw)
        return parse_goals(data)
    except GoalValidationError:
        raise
    except GoalLoadError as exc:
        raise GoalLoadError(exc.message, file_path=str(path)) from exc
    except Exception as exc:
        raise GoalLoadError(f"Failed to load goal file: {exc}", file_path=str(path)) from exc

