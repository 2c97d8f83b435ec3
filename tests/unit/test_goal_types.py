"""Unit tests for goal_types module."""
from __future__ import annotations

from datetime import datetime

import pytest

from exceptions import CapabilityInputError, VerdictFailure
from goal_types import (
    FailureRecord,
    Goal,
    GoalResult,
    GoalStage,
    RunOutcome,
    RunReport,
    Transcript,
    TranscriptEntry,
)


class TestGoal:
    """Tests for Goal dataclass."""

    def test_default_values(self):
        goal = Goal(description="List headings")
        assert goal.expectation is None
        assert goal.id is None
        assert goal.label == "List headings"

    def test_is_immutable(self):
        goal = Goal(description="List headings")
        with pytest.raises(AttributeError):
            goal.description = "Something else"


class TestTranscript:
    """Tests for Transcript."""

    def test_keeps_invocation_order(self):
        transcript = Transcript()
        transcript.append("next_item_function", "first")
        transcript.append("next_item_function", "second")
        transcript.append("report_title_function", "third")
        assert transcript.observations == ("first", "second", "third")
        assert [e.capability for e in transcript] == [
            "next_item_function",
            "next_item_function",
            "report_title_function",
        ]

    def test_clear(self):
        transcript = Transcript()
        transcript.append("next_item_function", "first")
        transcript.clear()
        assert len(transcript) == 0
        assert transcript.render() == ""

    def test_snapshot_is_detached(self):
        transcript = Transcript()
        transcript.append("next_item_function", "first")
        snapshot = transcript.snapshot()
        transcript.append("next_item_function", "second")
        transcript.clear()
        assert [e.observation for e in snapshot] == ["first"]

    def test_empty_observation_is_kept(self):
        transcript = Transcript()
        transcript.append("next_item_function", "")
        assert transcript.observations == ("",)

    def test_render_one_line_per_observation(self):
        transcript = Transcript()
        transcript.append("next_item_function", "Welcome, heading, level 1")
        transcript.append("next_item_function", "button, Discover")
        assert transcript.render() == "Welcome, heading, level 1\nbutton, Discover"


class TestFailureRecord:
    """Tests for FailureRecord."""

    def test_error_message_prefers_message_attribute(self, transcript_goal):
        error = CapabilityInputError("Bad arguments", name="keyboard_function", arguments="{}")
        record = FailureRecord(goal=transcript_goal, transcript=(), error=error)
        assert record.error_message == "Bad arguments"

    def test_error_message_from_plain_exception(self, transcript_goal):
        record = FailureRecord(goal=transcript_goal, transcript=(), error=RuntimeError("boom"))
        assert record.error_message == "boom"

    def test_error_message_falls_back_to_type(self, transcript_goal):
        record = FailureRecord(goal=transcript_goal, transcript=(), error=TimeoutError())
        assert record.error_message == "TimeoutError"


class TestRunReport:
    """Tests for RunReport markdown rendering."""

    def test_render_markdown(self, transcript_goal, sample_entries):
        record = FailureRecord(
            goal=transcript_goal,
            transcript=sample_entries[:2],
            error=VerdictFailure("Goal not achieved.", path="transcript"),
            stage=GoalStage.JUDGING,
        )
        report = RunReport(failures=(record,))
        assert report.render_markdown() == (
            "# Accessibility Test Failures\n\n"
            "\n---\n\n"
            "## Failed Goal: List the headings on the home page\n\n"
            "### Screen Reader Log\n"
            "```\nWelcome to the Test Site, heading, level 1\nbutton, Discover\n```\n\n"
            "### Error\n"
            "```\nGoal not achieved.\n```\n"
        )

    def test_one_section_per_failure(self, sample_goal, transcript_goal):
        report = RunReport(
            failures=(
                FailureRecord(goal=sample_goal, transcript=(), error=RuntimeError("first")),
                FailureRecord(goal=transcript_goal, transcript=(), error=RuntimeError("second")),
            )
        )
        markdown = report.render_markdown()
        assert len(report) == 2
        assert markdown.count("## Failed Goal:") == 2
        assert markdown.index("first") < markdown.index("second")

    def test_default_labels(self):
        report = RunReport(failures=())
        assert report.labels == ("bug", "accessibility")


class TestGoalResult:
    """Tests for GoalResult."""

    def test_duration(self, sample_goal_result):
        assert sample_goal_result.duration_seconds == 30.0
        assert sample_goal_result.status == "passed"

    def test_failed_status(self, failed_goal_result):
        assert failed_goal_result.status == "failed"
        assert failed_goal_result.stage == GoalStage.JUDGING
        assert failed_goal_result.failure.stage == GoalStage.JUDGING

    def test_stages(self):
        assert [stage.value for stage in GoalStage] == ["setup", "reasoning", "judging", "passed"]


class TestRunOutcome:
    """Tests for RunOutcome aggregation."""

    def test_counts(self, sample_outcome):
        assert sample_outcome.total == 2
        assert sample_outcome.passed == 1
        assert sample_outcome.failed == 1
        assert sample_outcome.pass_rate == 50.0
        assert sample_outcome.duration_seconds == 70.0

    def test_success_requires_empty_report(self, sample_outcome):
        assert not sample_outcome.success

    def test_success_without_report(self, sample_goal_result):
        outcome = RunOutcome(
            results=[sample_goal_result],
            started_at=datetime(2024, 1, 1),
            finished_at=datetime(2024, 1, 1),
        )
        assert outcome.success
        assert outcome.failed_goals == []
        assert outcome.passed_goals == [sample_goal_result]

    def test_empty_run(self):
        outcome = RunOutcome(results=[], started_at=datetime(2024, 1, 1), finished_at=datetime(2024, 1, 1))
        assert outcome.pass_rate == 0.0
        assert outcome.success

    def test_entries_are_frozen(self):
        entry = TranscriptEntry("next_item_function", "text", datetime(2024, 1, 1))
        with pytest.raises(AttributeError):
            entry.observation = "changed"
