"""Outcome judge: turns agent behaviour into a strict boolean verdict."""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, ValidationError

from exceptions import JudgeParseError, VerdictFailure
from goal_types import AgentResult, Goal, JudgeVerdict
from prompts import get_expectation_judge_prompt, get_transcript_judge_prompt

EXPECTATION_NOT_MET = "Expected condition not met."
GOAL_NOT_ACHIEVED = "Goal not achieved."


class JudgeModel(Protocol):
    async def invoke_json(self, prompt: str) -> str:
        ...


class _JudgeResponse(BaseModel):
    """Expected shape of the judge's JSON answer."""

    model_config = ConfigDict(strict=True, extra="ignore")

    conclusion: bool


def parse_verdict(raw: str) -> bool:
    """Parse ``{"conclusion": true|false}``; anything else is a JudgeParseError."""
    try:
        return _JudgeResponse.model_validate_json(raw).conclusion
    except ValidationError as exc:
        raise JudgeParseError(
            f"Judge response is not an object with a boolean 'conclusion': {exc.error_count()} error(s)",
            raw_response=raw,
        ) from exc


class OutcomeJudge:
    """Single source of truth for goal pass/fail."""

    def __init__(self, model: JudgeModel, logger: Optional[logging.Logger] = None):
        self.model = model
        self.logger = logger or logging.getLogger("judge")

    async def judge_expectation(self, expectation: str, agent_output: str) -> JudgeVerdict:
        raw = await self.model.invoke_json(get_expectation_judge_prompt(expectation, agent_output))
        return JudgeVerdict(conclusion=parse_verdict(raw), path="expectation", raw=raw)

    async def judge_transcript(self, goal: str, observations: Iterable[str]) -> JudgeVerdict:
        raw = await self.model.invoke_json(get_transcript_judge_prompt(goal, observations))
        return JudgeVerdict(conclusion=parse_verdict(raw), path="transcript", raw=raw)

    async def judge(
        self,
        goal: Goal,
        agent_result: AgentResult,
        observations: Iterable[str],
    ) -> JudgeVerdict:
        """Use the explicit expectation when the goal has one, else the transcript."""
        if goal.has_expectation:
            verdict = await self.judge_expectation(goal.expectation, agent_result.output)
        else:
            verdict = await self.judge_transcript(goal.description, observations)
        self.logger.info(f"Verdict ({verdict.path}): {verdict.conclusion}")
        return verdict


def verdict_failure(verdict: JudgeVerdict) -> VerdictFailure:
    """Negative verdict expressed as a goal failure."""
    reason = EXPECTATION_NOT_MET if verdict.path == "expectation" else GOAL_NOT_ACHIEVED
    return VerdictFailure(reason, path=verdict.path)
