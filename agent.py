"""Tool-calling reasoning loop that works a page through the screen reader."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

from capabilities import CapabilityAdapter
from exceptions import StepBudgetExceededError
from goal_types import AgentResult
from llm import ModelTurn
from prompts import get_agent_messages


class ReasoningModel(Protocol):
    async def invoke(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelTurn:
        ...


class ScreenReaderAgent:
    """Sequences capabilities toward a natural-language goal.

    Every step presents the goal and the history so far to the model. A
    tool call is executed through the capability adapter, and its
    Observation is fed back before the next step; a plain message ends the
    loop. Capability errors are not caught here.
    """

    def __init__(
        self,
        model: ReasoningModel,
        adapter: CapabilityAdapter,
        max_steps: int = 15,
        logger: Optional[logging.Logger] = None,
    ):
        self.model = model
        self.adapter = adapter
        self.max_steps = max_steps
        self.logger = logger or logging.getLogger("a11y_agent")

    async def run(self, goal: str) -> AgentResult:
        """Drive the model until it answers; returns its final message."""
        messages: List[Dict[str, Any]] = get_agent_messages(goal)
        tools = self.adapter.tools()
        steps = 0

        while True:
            turn = await self.model.invoke(messages, tools)
            if turn.is_final:
                self.logger.info(f"Agent finished after {steps} step(s): {turn.content[:200]}")
                messages.append(turn.to_message())
                return AgentResult(output=turn.content, steps=steps, messages=messages)

            messages.append(turn.to_message())
            # Tool calls from one turn still run strictly one after another
            for call in turn.tool_calls:
                if steps >= self.max_steps:
                    raise StepBudgetExceededError(self.max_steps)
                steps += 1
                self.logger.info(f"Step {steps}: {call.name} {call.arguments}")
                observation = await self.adapter.invoke(call.name, call.arguments)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": observation,
                    }
                )
