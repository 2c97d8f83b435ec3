"""OpenAI-compatible chat model used by the reasoning loop and the judge."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from config import AgentConfig
from exceptions import LLMError, LLMResponseError, ModelTimeoutError


@dataclass(frozen=True)
class ToolCall:
    """One capability selected by the model."""

    id: str
    name: str
    arguments: str


@dataclass
class ModelTurn:
    """Either tool calls or a final message."""

    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return not self.tool_calls

    def to_message(self) -> Dict[str, Any]:
        """Assistant message to append to the chat history."""
        message: Dict[str, Any] = {"role": "assistant", "content": self.content or None}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self.tool_calls
            ]
        return message


class ChatModel:
    """Thin wrapper around ``AsyncOpenAI`` chat completions.

    Groq is reached through its OpenAI-compatible endpoint, so one client
    covers both providers. Calls are never retried here; a failed call fails
    the goal attempt.
    """

    def __init__(
        self,
        config: AgentConfig,
        client: Optional[AsyncOpenAI] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("llm")
        self.client = client or AsyncOpenAI(
            api_key=config.effective_api_key or "missing-api-key",
            base_url=config.effective_base_url,
        )

    async def _create(self, **create_kwargs: Any) -> Any:
        timeout = self.config.request_timeout
        try:
            return await asyncio.wait_for(
                self.client.chat.completions.create(**create_kwargs),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            raise ModelTimeoutError(timeout) from None
        except Exception as e:
            raise LLMError(f"Model call failed: {e}") from e

    async def invoke(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelTurn:
        """Ask the model for its next step."""
        create_kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if tools:
            create_kwargs["tools"] = tools
            create_kwargs["tool_choice"] = "auto"

        response = await self._create(**create_kwargs)
        if not response.choices:
            raise LLMResponseError("Model returned no choices")
        message = response.choices[0].message

        tool_calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=call.function.arguments or "{}",
            )
            for call in (message.tool_calls or [])
        ]
        content = message.content or ""
        if not tool_calls and not content.strip():
            raise LLMResponseError("Empty response from model")
        return ModelTurn(content=content, tool_calls=tool_calls)

    async def invoke_json(self, prompt: str) -> str:
        """Zero-temperature call constrained to a JSON object."""
        response = await self._create(
            model=self.config.effective_judge_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
            max_tokens=self.config.max_tokens,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            raise LLMResponseError("Judge model returned no choices")
        return response.choices[0].message.content or ""
