"""Typed objects for screen-reader accessibility goals."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

JudgePath = Literal["expectation", "transcript"]


@dataclass(frozen=True)
class Goal:
    """One unit of user intent to validate."""

    description: str
    expectation: Optional[str] = None
    id: Optional[str] = None

    @property
    def has_expectation(self) -> bool:
        return self.expectation is not None

    @property
    def label(self) -> str:
        return self.id or self.description


@dataclass(frozen=True)
class TranscriptEntry:
    """One Observation together with the capability that produced it."""

    capability: str
    observation: str
    timestamp: datetime


class Transcript:
    """Ordered Observations for a single goal attempt."""

    def __init__(self) -> None:
        self._entries: List[TranscriptEntry] = []

    def append(self, capability: str, observation: str) -> TranscriptEntry:
        entry = TranscriptEntry(
            capability=capability,
            observation=observation,
            timestamp=datetime.utcnow(),
        )
        self._entries.append(entry)
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> Tuple[TranscriptEntry, ...]:
        """Immutable copy of the entries recorded so far."""
        return tuple(self._entries)

    @property
    def observations(self) -> Tuple[str, ...]:
        return tuple(entry.observation for entry in self._entries)

    def render(self) -> str:
        return render_observations(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


def render_observations(entries: Tuple[TranscriptEntry, ...] | List[TranscriptEntry]) -> str:
    """One utterance per line, in invocation order."""
    return "\n".join(entry.observation for entry in entries)


@dataclass
class AgentResult:
    """Final answer of the reasoning loop for one goal."""

    output: str
    steps: int
    messages: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class JudgeVerdict:
    """Boolean verdict of the outcome judge."""

    conclusion: bool
    path: JudgePath
    raw: str = ""


class GoalStage(str, Enum):
    """Per-goal state machine; a failed goal keeps the stage it failed in."""
    SETUP = "setup"
    REASONING = "reasoning"
    JUDGING = "judging"
    PASSED = "passed"


@dataclass(frozen=True)
class FailureRecord:
    """A failed goal attempt: the goal, its transcript and the error."""

    goal: Goal
    transcript: Tuple[TranscriptEntry, ...]
    error: BaseException
    stage: GoalStage = GoalStage.REASONING

    @property
    def error_message(self) -> str:
        message = getattr(self.error, "message", None)
        return message or str(self.error) or type(self.error).__name__


@dataclass
class GoalResult:
    """Outcome of a goal attempt."""

    goal: Goal
    passed: bool
    stage: GoalStage
    started_at: datetime
    finished_at: datetime
    reason: str
    transcript: Tuple[TranscriptEntry, ...] = ()
    agent_output: Optional[str] = None
    verdict: Optional[JudgeVerdict] = None
    steps: int = 0
    failure: Optional[FailureRecord] = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.finished_at - self.started_at).total_seconds())

    @property
    def status(self) -> str:
        return "passed" if self.passed else "failed"


@dataclass(frozen=True)
class RunReport:
    """Aggregate of all failure records for a completed run."""

    failures: Tuple[FailureRecord, ...]
    title: str = "Accessibility Test Failed"
    labels: Tuple[str, ...] = ("bug", "accessibility")

    def __len__(self) -> int:
        return len(self.failures)

    def render_markdown(self) -> str:
        body = "# Accessibility Test Failures\n\n"
        for failure in self.failures:
            body += (
                "\n---\n\n"
                f"## Failed Goal: {failure.goal.description}\n\n"
                "### Screen Reader Log\n"
                f"```\n{render_observations(failure.transcript)}\n```\n\n"
                "### Error\n"
                f"```\n{failure.error_message}\n```\n"
            )
        return body


@dataclass
class RunOutcome:
    """Aggregated results for a run."""

    results: List[GoalResult]
    started_at: datetime
    finished_at: datetime
    report: Optional[RunReport] = None
    issue_reference: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def pass_rate(self) -> float:
        return (self.passed / self.total * 100) if self.total else 0.0

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.finished_at - self.started_at).total_seconds())

    @property
    def success(self) -> bool:
        return self.report is None or len(self.report) == 0

    @property
    def failed_goals(self) -> List[GoalResult]:
        return [r for r in self.results if not r.passed]

    @property
    def passed_goals(self) -> List[GoalResult]:
        return [r for r in self.results if r.passed]
