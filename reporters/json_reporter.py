"""JSON report generator for screen-reader goal runs."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from goal_types import GoalResult, RunOutcome, TranscriptEntry
from reporters.base import BaseReporter, ReportFormat


class JSONReporter(BaseReporter):
    """Generate machine-readable JSON reports."""

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.JSON

    def _entry_to_dict(self, entry: TranscriptEntry) -> Dict[str, Any]:
        return {
            "capability": entry.capability,
            "observation": entry.observation,
            "timestamp": entry.timestamp.isoformat(),
        }

    def _result_to_dict(self, result: GoalResult) -> Dict[str, Any]:
        """Convert GoalResult to JSON-serializable dict."""
        verdict = None
        if result.verdict is not None:
            verdict = {
                "conclusion": result.verdict.conclusion,
                "path": result.verdict.path,
            }
        return {
            "goal": {
                "id": result.goal.id,
                "description": result.goal.description,
                "expectation": result.goal.expectation,
            },
            "result": {
                "status": result.status,
                "stage": result.stage.value,
                "reason": result.reason,
                "started_at": result.started_at.isoformat(),
                "finished_at": result.finished_at.isoformat(),
                "duration_seconds": result.duration_seconds,
                "steps": result.steps,
                "agent_output": result.agent_output,
                "verdict": verdict,
            },
            "transcript": [self._entry_to_dict(e) for e in result.transcript],
        }

    def generate(self, outcome: RunOutcome, output_dir: Path) -> Path:
        """Generate combined JSON report for a run."""
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        target = output_dir / f"run-{timestamp}.json"

        durations = [r.duration_seconds for r in outcome.results]
        report_data = {
            "generated_at": datetime.utcnow().isoformat(),
            "report_version": "1.0",
            "goals": [self._result_to_dict(r) for r in outcome.results],
            "summary": {
                "total": outcome.total,
                "passed": outcome.passed,
                "failed": outcome.failed,
                "pass_rate": round(outcome.pass_rate, 2),
                "success": outcome.success,
                "total_duration_seconds": round(outcome.duration_seconds, 2),
                "max_goal_duration_seconds": round(max(durations), 2) if durations else 0,
            },
            "failed_goals": [
                {"goal": r.goal.description, "stage": r.stage.value, "reason": r.reason}
                for r in outcome.failed_goals
            ],
        }

        target.write_text(json.dumps(report_data, indent=2), encoding="utf-8")
        return target
