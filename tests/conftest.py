"""Pytest fixtures for the screen-reader goal agent tests."""
from __future__ import annotations

import json
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest

from goal_types import (
    AgentResult,
    FailureRecord,
    Goal,
    GoalResult,
    GoalStage,
    JudgeVerdict,
    RunOutcome,
    RunReport,
    TranscriptEntry,
)
from exceptions import VerdictFailure
from llm import ModelTurn, ToolCall


SAMPLE_SNAPSHOT = """
- banner:
  - navigation "Main":
    - list:
      - listitem:
        - link "Home":
          - /url: /
      - listitem:
        - link "Secret information":
          - /url: /secret-info
- main:
  - heading "Welcome to the Test Site" [level=1]
  - paragraph: This site is used to check navigation.
  - heading "Explore" [level=2]
  - button "Discover"
  - textbox "Email address"
  - checkbox "Remember me" [checked]
"""


class FakeModel:
    """Scripted model: returns queued turns from ``invoke`` and queued JSON from ``invoke_json``."""

    def __init__(self, turns: List[ModelTurn] = None, judgements: List[str] = None):
        self.turns = list(turns or [])
        self.judgements = list(judgements or [])
        self.invocations: List[List[Dict[str, Any]]] = []
        self.prompts: List[str] = []

    async def invoke(self, messages, tools=None) -> ModelTurn:
        self.invocations.append(list(messages))
        if not self.turns:
            return ModelTurn(content="Done.")
        turn = self.turns.pop(0)
        if isinstance(turn, BaseException):
            raise turn
        return turn

    async def invoke_json(self, prompt: str) -> str:
        self.prompts.append(prompt)
        answer = self.judgements.pop(0) if self.judgements else '{"conclusion": true}'
        if isinstance(answer, BaseException):
            raise answer
        return answer


def tool_turn(*names: str, arguments: str = "{}") -> ModelTurn:
    """A model turn calling the named capabilities in order."""
    return ModelTurn(
        content="",
        tool_calls=[ToolCall(id=f"call_{i}", name=name, arguments=arguments) for i, name in enumerate(names)],
    )


@pytest.fixture
def sample_goal() -> Goal:
    return Goal(
        description="Find the secret code on this website",
        expectation="The agent reports the code QUANTUM-LEAP-2024",
        id="secret-code",
    )


@pytest.fixture
def transcript_goal() -> Goal:
    return Goal(description="List the headings on the home page")


@pytest.fixture
def sample_entries() -> tuple:
    return (
        TranscriptEntry("move_to_next_heading_function", "Welcome to the Test Site, heading, level 1", datetime(2024, 1, 1, 10, 0, 1)),
        TranscriptEntry("move_to_next_button_function", "button, Discover", datetime(2024, 1, 1, 10, 0, 2)),
        TranscriptEntry("perform_default_action_for_item_function", "Secret Information, document", datetime(2024, 1, 1, 10, 0, 3)),
    )


@pytest.fixture
def sample_goal_result(sample_goal: Goal, sample_entries: tuple) -> GoalResult:
    """A passed goal with three observations."""
    return GoalResult(
        goal=sample_goal,
        passed=True,
        stage=GoalStage.PASSED,
        started_at=datetime(2024, 1, 1, 10, 0, 0),
        finished_at=datetime(2024, 1, 1, 10, 0, 30),
        reason="Goal achieved.",
        transcript=sample_entries,
        agent_output="The secret code is QUANTUM-LEAP-2024",
        verdict=JudgeVerdict(conclusion=True, path="expectation", raw='{"conclusion": true}'),
        steps=3,
    )


@pytest.fixture
def failed_goal_result(transcript_goal: Goal, sample_entries: tuple) -> GoalResult:
    """A goal the judge rejected."""
    error = VerdictFailure("Goal not achieved.", path="transcript")
    return GoalResult(
        goal=transcript_goal,
        passed=False,
        stage=GoalStage.JUDGING,
        started_at=datetime(2024, 1, 1, 10, 1, 0),
        finished_at=datetime(2024, 1, 1, 10, 1, 10),
        reason="Goal not achieved.",
        transcript=sample_entries[:1],
        agent_output="I could not find any headings.",
        verdict=JudgeVerdict(conclusion=False, path="transcript", raw='{"conclusion": false}'),
        steps=1,
        failure=FailureRecord(goal=transcript_goal, transcript=sample_entries[:1], error=error, stage=GoalStage.JUDGING),
    )


@pytest.fixture
def sample_outcome(sample_goal_result: GoalResult, failed_goal_result: GoalResult) -> RunOutcome:
    return RunOutcome(
        results=[sample_goal_result, failed_goal_result],
        started_at=datetime(2024, 1, 1, 10, 0, 0),
        finished_at=datetime(2024, 1, 1, 10, 1, 10),
        report=RunReport(failures=(failed_goal_result.failure,)),
    )


@pytest.fixture
def sample_agent_result() -> AgentResult:
    return AgentResult(output="The secret code is QUANTUM-LEAP-2024", steps=3)


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_goals_yaml() -> str:
    """Sample YAML goal file."""
    return """
goals:
  - goal: Find the secret code on this website
    expect: The agent reports the code QUANTUM-LEAP-2024
  - goal: List the headings on the home page
"""


@pytest.fixture
def sample_goals_json() -> List[Dict[str, Any]]:
    """Sample JSON goal file content."""
    return [
        {"goal": "Find the secret code on this website", "expect": "The agent reports the code QUANTUM-LEAP-2024"},
        {"goal": "List the headings on the home page"},
    ]


@pytest.fixture
def goals_file(temp_dir: Path, sample_goals_json: List[Dict[str, Any]]) -> Path:
    path = temp_dir / "goals.json"
    path.write_text(json.dumps(sample_goals_json))
    return path


@pytest.fixture
def mock_browser() -> MagicMock:
    """Create a mock browser for testing."""
    browser = MagicMock()
    browser.is_started = True
    browser.start = AsyncMock()
    browser.close = AsyncMock()
    browser.goto = AsyncMock()
    browser.wait_for_selector = AsyncMock()
    browser.settle = AsyncMock()
    browser.aria_snapshot = AsyncMock(return_value=SAMPLE_SNAPSHOT)
    browser.get_url = MagicMock(return_value="http://localhost:3456/")
    browser.get_title = AsyncMock(return_value="Accessibility Test Site")
    browser.click_by_role = AsyncMock()
    browser.focus_by_role = AsyncMock()
    browser.describe_focus = AsyncMock(return_value=None)
    browser.type_text = AsyncMock()
    browser.press_key = AsyncMock()
    return browser


@pytest.fixture
def mock_screen_reader() -> MagicMock:
    """Screen reader whose last phrase is set by each primitive."""
    reader = MagicMock()
    state = {"phrase": "", "count": 0}

    def speaking(prefix: str):
        async def action(*args, **kwargs):
            state["count"] += 1
            detail = " ".join(str(getattr(a, "value", a)) for a in args)
            state["phrase"] = f"{prefix} {detail}".strip() + f" #{state['count']}"
        return action

    reader.start = AsyncMock()
    reader.stop = AsyncMock()
    reader.navigate_to_web_content = AsyncMock()
    reader.next = AsyncMock(side_effect=speaking("next"))
    reader.perform = AsyncMock(side_effect=speaking("perform"))
    reader.type = AsyncMock(side_effect=speaking("typed"))
    reader.press = AsyncMock(side_effect=speaking("pressed"))

    async def last_spoken_phrase():
        return state["phrase"]

    reader.last_spoken_phrase = AsyncMock(side_effect=last_spoken_phrase)
    return reader


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()


@pytest.fixture
def model_factory():
    """Build a scripted model from turns and judge answers."""
    return FakeModel


@pytest.fixture
def make_tool_turn():
    return tool_turn


@pytest.fixture
def sample_snapshot() -> str:
    """Aria snapshot of the fixture site's home page."""
    return SAMPLE_SNAPSHOT
