"""Batch controller: runs an ordered goal list against one screen-reader session."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from agent import ReasoningModel, ScreenReaderAgent
from capabilities import CapabilityAdapter
from config import A11yConfig, load_config
from exceptions import A11yAgentError, ConfigurationError, GoalTimeoutError, IssueSinkError, SetupError
from goal_loader import load_goals
from goal_types import (
    AgentResult,
    FailureRecord,
    Goal,
    GoalResult,
    GoalStage,
    JudgeVerdict,
    RunOutcome,
    RunReport,
    Transcript,
)
from issue_sink import IssueSink, build_issue_sink
from judge import JudgeModel, OutcomeJudge, verdict_failure
from llm import ChatModel
from reporters import JSONReporter, JUnitReporter, ReportFormat
from session import ScreenReaderSession

SessionFactory = Callable[[], ScreenReaderSession]


class GoalModel(ReasoningModel, JudgeModel, Protocol):
    """A model usable both by the reasoning loop and by the judge."""


@dataclass
class _Attempt:
    """Mutable progress of one goal attempt, readable after a timeout."""

    stage: GoalStage = GoalStage.SETUP
    agent_result: Optional[AgentResult] = None
    verdict: Optional[JudgeVerdict] = None


class A11yTestRunner:
    """Drives every goal through Setup, Reasoning and Judging in input order.

    The browser and screen reader are started once for the whole run and
    shared by reference; a failure to start them aborts the run before any
    goal. Anything raised while a goal is in progress becomes a
    FailureRecord for that goal and the batch moves on.
    """

    def __init__(
        self,
        config: A11yConfig,
        model: GoalModel,
        sink: IssueSink,
        session_factory: Optional[SessionFactory] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.model = model
        self.sink = sink
        self.logger = logger or logging.getLogger("a11y_runner")
        self.session_factory = session_factory or (
            lambda: ScreenReaderSession.from_config(config.browser, logger=self.logger)
        )
        self.judge = OutcomeJudge(model, logger=self.logger)
        self.transcript = Transcript()

    async def run_goal(self, goal: Goal, session: ScreenReaderSession) -> GoalResult:
        """Attempt one goal; never raises for faults inside the attempt."""
        self.transcript.clear()
        attempt = _Attempt()
        timeout = self.config.agent.goal_timeout
        start = datetime.utcnow()

        try:
            error = await asyncio.wait_for(self._guarded_attempt(goal, session, attempt), timeout=timeout)
        except asyncio.TimeoutError:
            error = GoalTimeoutError(timeout)

        end = datetime.utcnow()
        agent_result = attempt.agent_result
        common = dict(
            goal=goal,
            started_at=start,
            finished_at=end,
            transcript=self.transcript.snapshot(),
            agent_output=agent_result.output if agent_result else None,
            verdict=attempt.verdict,
            steps=agent_result.steps if agent_result else len(self.transcript),
        )

        if error is None:
            self.logger.info(f"PASSED: {goal.description}")
            return GoalResult(passed=True, stage=GoalStage.PASSED, reason="Goal achieved.", **common)

        failure = FailureRecord(
            goal=goal,
            transcript=self.transcript.snapshot(),
            error=error,
            stage=attempt.stage,
        )
        if attempt.verdict is not None and not attempt.verdict.conclusion:
            self.logger.warning(f"FAILED ({attempt.stage.value}): {goal.description}: {failure.error_message}")
        else:
            self.logger.error(
                f"Goal {goal.label!r} errored during {attempt.stage.value}: {failure.error_message}",
                exc_info=error,
            )
        return GoalResult(
            passed=False,
            stage=attempt.stage,
            reason=failure.error_message,
            failure=failure,
            **common,
        )

    async def _guarded_attempt(
        self, goal: Goal, session: ScreenReaderSession, attempt: _Attempt
    ) -> Optional[Exception]:
        """Return the attempt's own error, so only the goal deadline surfaces as a timeout."""
        try:
            await self._attempt(goal, session, attempt)
        except Exception as exc:
            return exc
        return None

    async def _attempt(self, goal: Goal, session: ScreenReaderSession, attempt: _Attempt) -> None:
        attempt.stage = GoalStage.SETUP
        await session.reset(self.config.test_url)

        attempt.stage = GoalStage.REASONING
        adapter = CapabilityAdapter(
            session.screen_reader,
            self.transcript,
            timeout=self.config.agent.capability_timeout,
            logger=self.logger,
        )
        agent = ScreenReaderAgent(
            self.model,
            adapter,
            max_steps=self.config.agent.max_steps,
            logger=self.logger,
        )
        attempt.agent_result = await agent.run(goal.description)

        attempt.stage = GoalStage.JUDGING
        attempt.verdict = await self.judge.judge(
            goal,
            attempt.agent_result,
            self.transcript.observations,
        )
        if not attempt.verdict.conclusion:
            raise verdict_failure(attempt.verdict)

    async def run(self, goals: Sequence[Goal]) -> RunOutcome:
        """Run every goal once, in order, and hand failures to the issue sink."""
        if not self.config.test_url:
            raise ConfigurationError("No target URL configured (use --url or test_url)")

        start_time = datetime.utcnow()
        results: List[GoalResult] = []

        session = self.session_factory()
        await session.start()
        try:
            for i, goal in enumerate(goals, 1):
                self.logger.info(f"=== Goal {i}/{len(goals)}: {goal.description} ===")
                results.append(await self.run_goal(goal, session))
        finally:
            await self._release(session)

        failures = tuple(r.failure for r in results if r.failure is not None)
        report = self._build_report(failures) if failures else None
        outcome = RunOutcome(
            results=results,
            started_at=start_time,
            finished_at=datetime.utcnow(),
            report=report,
        )

        self._generate_reports(outcome)
        if report is not None:
            outcome.issue_reference = await self._file_report(report)
        return outcome

    async def _release(self, session: ScreenReaderSession) -> None:
        try:
            await session.release()
        except Exception as exc:
            # Goal results are already recorded; a dead browser must not discard them
            self.logger.error(f"Failed to release screen reader session: {exc}", exc_info=exc)

    def _build_report(self, failures: Sequence[FailureRecord]) -> RunReport:
        revision = self.config.reporting.revision or "local"
        return RunReport(
            failures=tuple(failures),
            title=f"Accessibility Test Failed: {revision}",
            labels=tuple(self.config.reporting.issue_labels),
        )

    async def _file_report(self, report: RunReport) -> Optional[str]:
        self.logger.info(f"Filing report for {len(report)} failed goal(s)")
        try:
            return await self.sink.create_issue(report.title, report.render_markdown(), report.labels)
        except IssueSinkError as exc:
            # The run already fails on the report itself
            self.logger.error(f"Could not file failure report: {exc}")
            return None

    def _generate_reports(self, outcome: RunOutcome) -> None:
        """Write result reports in the configured format."""
        output_dir = self.config.reporting.reports_folder
        output_format = self.config.reporting.output_format

        if output_format in (ReportFormat.JSON, ReportFormat.ALL):
            path = JSONReporter().generate(outcome, output_dir)
            self.logger.info(f"JSON report: {path}")

        if output_format in (ReportFormat.JUNIT, ReportFormat.ALL):
            path = JUnitReporter().generate(outcome, output_dir)
            self.logger.info(f"JUnit report: {path}")


def print_outcome(outcome: RunOutcome) -> None:
    """Summary table followed by one section per failure."""
    print("\n" + "=" * 60)
    print("ACCESSIBILITY GOALS SUMMARY")
    print("=" * 60)
    print(f"Total:  {outcome.total}")
    print(f"Passed: {outcome.passed}")
    print(f"Failed: {outcome.failed}")
    print(f"Pass Rate: {outcome.pass_rate:.1f}%")
    print(f"Duration: {outcome.duration_seconds:.1f}s")
    print("=" * 60)

    if outcome.report:
        for failure in outcome.report.failures:
            print(f"\nFailed Goal: {failure.goal.description}")
            print(f"  Stage: {failure.stage.value}")
            print(f"  Error: {failure.error_message}")
            if failure.transcript:
                print("  Screen Reader Log:")
                for entry in failure.transcript:
                    print(f"    {entry.observation}")
        if outcome.issue_reference:
            print(f"\nFailure report: {outcome.issue_reference}")


async def run_from_cli_args(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Entry point shared by the CLI script."""
    config_path = Path(args.config) if args.config else None
    cli_overrides = {
        "url": args.url,
        "goals": args.goals,
        "provider": args.provider,
        "model": args.model,
        "judge_model": args.judge_model,
        "base_url": args.base_url,
        "browser": args.browser,
        "headful": args.headful,
        "max_steps": args.max_steps,
        "goal_timeout": args.goal_timeout,
        "reports_dir": args.reports_dir,
        "output_format": args.output_format,
        "repository": args.repository,
        "revision": args.revision,
        "verbose": args.verbose or None,
    }
    # Remove None values
    cli_overrides = {k: v for k, v in cli_overrides.items() if v is not None}

    try:
        config = load_config(config_path, cli_overrides)
        if config.goals_path is None:
            raise ConfigurationError("No goal file configured (use --goals or goals_path)")
        goals = load_goals(config.goals_path)
    except SetupError as exc:
        logger.error(str(exc))
        return 1

    if not goals:
        logger.warning("Goal file contains no goals")
        return 0

    logger.info(f"Loaded {len(goals)} goal(s) from {config.goals_path}")
    if config.verbose:
        logger.info(f"Target: {config.test_url}")
        logger.info(f"Provider: {config.agent.provider}, Model: {config.agent.model}")
        logger.info(f"Browser: {config.browser.browser}, Headless: {config.browser.headless}")

    runner = A11yTestRunner(
        config=config,
        model=ChatModel(config.agent, logger=logger),
        sink=build_issue_sink(config.reporting, logger=logger),
        logger=logger,
    )
    outcome = await runner.run(goals)
    print_outcome(outcome)

    return 0 if outcome.success else 1


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Check that a page can be used through a screen reader, goal by goal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --url http://localhost:3000 --goals goals.json
  %(prog)s --url http://localhost:3000 --goals goals.yaml --provider openai --model gpt-4o
  %(prog)s --config a11y.config.json --output-format junit
        """,
    )

    target_group = parser.add_argument_group("Target")
    target_group.add_argument("--url", help="Page every goal starts from")
    target_group.add_argument("--goals", help="JSON or YAML file with the goal list")
    target_group.add_argument(
        "--config",
        help="Path to config file (default: a11y.config.json if exists)",
    )

    model_group = parser.add_argument_group("Model Options")
    model_group.add_argument("--provider", choices=["groq", "openai"], help="Model provider (default: groq)")
    model_group.add_argument("--model", help="Model name for the agent (and the judge unless --judge-model)")
    model_group.add_argument("--judge-model", help="Model name for the outcome judge")
    model_group.add_argument("--base-url", help="OpenAI-compatible API base URL")
    model_group.add_argument(
        "--max-steps",
        type=int,
        metavar="N",
        help="Maximum capability invocations per goal (default: 15)",
    )
    model_group.add_argument(
        "--goal-timeout",
        type=float,
        metavar="SECONDS",
        help="Wall-clock budget for one goal (default: 600)",
    )

    browser_group = parser.add_argument_group("Browser Options")
    browser_group.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        help="Browser engine to use (default: chromium)",
    )
    browser_group.add_argument(
        "--headful",
        action="store_true",
        default=None,
        help="Run browser in headful mode (show GUI)",
    )

    output_group = parser.add_argument_group("Output Options")
    output_group.add_argument("--reports-dir", help="Directory for saving reports (default: reports)")
    output_group.add_argument(
        "--output-format",
        choices=["json", "junit", "all", "none"],
        help="Result report output format (default: none)",
    )
    output_group.add_argument("--repository", help="owner/repo that receives the failure issue")
    output_group.add_argument("--revision", help="Revision under test (default: $GITHUB_SHA)")
    output_group.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    output_group.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-essential output",
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main entry point."""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    # Configure logging based on verbosity
    if args.quiet:
        log_level = logging.WARNING
    elif args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] %(message)s" if not args.verbose else "[%(levelname)s] %(name)s: %(message)s",
    )
    logger = logging.getLogger("a11y_runner")

    try:
        exit_code = asyncio.run(run_from_cli_args(args, logger))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = 130
    except A11yAgentError as exc:
        logger.error(f"Error: {exc}")
        exit_code = 1
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
