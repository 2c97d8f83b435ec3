"""JUnit XML report generator for CI integration."""
from __future__ import annotations

import html
from datetime import datetime
from pathlib import Path

from goal_types import GoalResult, RunOutcome
from reporters.base import BaseReporter, ReportFormat


class JUnitReporter(BaseReporter):
    """Generate JUnit XML reports for CI/CD integration."""

    @property
    def format(self) -> ReportFormat:
        return ReportFormat.JUNIT

    def _escape_xml(self, text: str) -> str:
        """Escape special XML characters."""
        return html.escape(str(text), quote=True)

    def _cdata(self, text: str) -> str:
        return str(text).replace("]]>", "]]]]><![CDATA[>")

    def _is_negative_verdict(self, result: GoalResult) -> bool:
        return result.verdict is not None and not result.verdict.conclusion

    def _format_timestamp(self, dt: datetime) -> str:
        """Format datetime for JUnit XML."""
        return dt.strftime("%Y-%m-%dT%H:%M:%S")

    def _build_testcase_xml(self, result: GoalResult) -> str:
        """Build XML for a single goal."""
        lines = []

        classname = "a11y.goals"
        name = self._escape_xml(result.goal.label)
        time_sec = f"{result.duration_seconds:.3f}"
        lines.append(f'    <testcase classname="{classname}" name="{name}" time="{time_sec}">')

        transcript = [f"  [{e.capability}] {e.observation[:150]}" for e in result.transcript]
        if result.passed:
            lines.append("      <system-out><![CDATA[")
            lines.append(self._cdata(f"Goal: {result.goal.description}"))
            lines.append(f"Steps: {result.steps}")
            lines.extend(self._cdata(line) for line in transcript[-5:])
            lines.append("]]></system-out>")
        else:
            # A negative verdict is a failure; anything else broke the attempt
            tag = "failure" if self._is_negative_verdict(result) else "error"
            message = self._escape_xml(result.reason)
            lines.append(f'      <{tag} message="{message}" type="{result.stage.value}"><![CDATA[')
            lines.append(self._cdata(f"Goal: {result.goal.description}"))
            if result.goal.expectation:
                lines.append(self._cdata(f"Expectation: {result.goal.expectation}"))
            lines.append(self._cdata(f"Reason: {result.reason}"))
            if result.agent_output:
                lines.append(self._cdata(f"Agent output: {result.agent_output[:500]}"))
            lines.append("")
            lines.append("Screen Reader Log:")
            lines.extend(self._cdata(line) for line in transcript)
            lines.append(f"]]></{tag}>")

        lines.append("    </testcase>")
        return "\n".join(lines)

    def generate(self, outcome: RunOutcome, output_dir: Path) -> Path:
        """Generate JUnit XML report for a run."""
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        target = output_dir / f"junit-{timestamp}.xml"

        xml_cases = [self._build_testcase_xml(r) for r in outcome.results]
        failures = sum(1 for r in outcome.failed_goals if self._is_negative_verdict(r))
        errors = outcome.failed - failures

        lines = ['<?xml version="1.0" encoding="UTF-8"?>']
        lines.append(
            f'<testsuite name="Screen Reader Accessibility Goals" '
            f'tests="{outcome.total}" '
            f'failures="{failures}" '
            f'errors="{errors}" '
            f'skipped="0" '
            f'time="{outcome.duration_seconds:.3f}" '
            f'timestamp="{self._format_timestamp(outcome.started_at)}">'
        )
        lines.extend(xml_cases)
        lines.append("</testsuite>")

        target.write_text("\n".join(lines), encoding="utf-8")
        return target
