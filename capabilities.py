"""Screen-reader capabilities exposed to the reasoning model as tools."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from exceptions import CapabilityInputError, CapabilityTimeoutError, UnknownCapabilityError
from goal_types import Transcript
from screen_reader import ScreenReader, ScreenReaderCommand


class CapabilityName(str, Enum):
    """Closed set of capability names offered to the model."""
    NEXT_ITEM = "next_item_function"
    REPORT_DATE_TIME = "report_date_time_function"
    REPORT_CURRENT_FOCUS = "report_current_focus_function"
    REPORT_TITLE = "report_title_function"
    READ_ACTIVE_WINDOW = "read_active_window_function"
    READ_LINE = "read_line_function"
    MOVE_TO_NEXT_HEADING = "move_to_next_heading_function"
    MOVE_TO_PREVIOUS_HEADING = "move_to_previous_heading_function"
    MOVE_TO_NEXT_LINK = "move_to_next_link_function"
    MOVE_TO_PREVIOUS_LINK = "move_to_previous_link_function"
    MOVE_TO_NEXT_BUTTON = "move_to_next_button_function"
    MOVE_TO_PREVIOUS_BUTTON = "move_to_previous_button_function"
    MOVE_TO_NEXT_FORM_FIELD = "move_to_next_form_field_function"
    MOVE_TO_PREVIOUS_FORM_FIELD = "move_to_previous_form_field_function"
    MOVE_TO_NEXT_LANDMARK = "move_to_next_landmark_function"
    MOVE_TO_PREVIOUS_LANDMARK = "move_to_previous_landmark_function"
    MOVE_TO_NEXT_TABLE = "move_to_next_table_function"
    MOVE_TO_PREVIOUS_TABLE = "move_to_previous_table_function"
    MOVE_TO_NEXT_LIST = "move_to_next_list_function"
    MOVE_TO_PREVIOUS_LIST = "move_to_previous_list_function"
    MOVE_TO_NEXT_SEPARATOR = "move_to_next_separator_function"
    MOVE_TO_PREVIOUS_SEPARATOR = "move_to_previous_separator_function"
    MOVE_TO_NEXT = "move_to_next_function"
    MOVE_TO_PREVIOUS = "move_to_previous_function"
    PERFORM_DEFAULT_ACTION = "perform_default_action_for_item_function"
    LEFT_MOUSE_CLICK = "left_mouse_click_function"
    RIGHT_MOUSE_CLICK = "right_mouse_click_function"
    TYPE_TEXT = "keyboard_function"
    PRESS_ENTER = "keyboard_press_enter_function"


class NoInput(BaseModel):
    """Capabilities that take no arguments."""

    model_config = ConfigDict(extra="ignore")


class TypeTextInput(BaseModel):
    """Text to type into the browser."""

    model_config = ConfigDict(extra="forbid")

    input: str = Field(description="Text to type")


Handler = Callable[[ScreenReader, BaseModel], Awaitable[None]]


@dataclass(frozen=True)
class Capability:
    """A named, schema-described primitive action."""

    name: CapabilityName
    description: str
    handler: Handler
    input_model: Type[BaseModel] = NoInput

    @property
    def input_schema(self) -> Dict[str, Any]:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        schema.pop("description", None)
        schema.setdefault("properties", {})
        return schema

    def to_tool(self) -> Dict[str, Any]:
        """OpenAI function-tool definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.input_schema,
            },
        }


def _command(command: ScreenReaderCommand) -> Handler:
    async def handler(screen_reader: ScreenReader, _params: BaseModel) -> None:
        await screen_reader.perform(command)
    return handler


async def _next_item(screen_reader: ScreenReader, _params: BaseModel) -> None:
    await screen_reader.next()


async def _type_text(screen_reader: ScreenReader, params: BaseModel) -> None:
    await screen_reader.type(params.input)


async def _press_enter(screen_reader: ScreenReader, _params: BaseModel) -> None:
    await screen_reader.press("Enter")


def _build_capabilities() -> Dict[CapabilityName, Capability]:
    C, S = CapabilityName, ScreenReaderCommand
    specs = [
        Capability(C.NEXT_ITEM, "Move to the next item.", _next_item),
        Capability(C.REPORT_DATE_TIME, "Report the current date and time.", _command(S.REPORT_DATE_TIME)),
        Capability(C.REPORT_CURRENT_FOCUS, "Report the currently focused element.", _command(S.REPORT_CURRENT_FOCUS)),
        Capability(C.REPORT_TITLE, "Report the title of the current window.", _command(S.REPORT_TITLE)),
        Capability(C.READ_ACTIVE_WINDOW, "Read the content of the active window.", _command(S.READ_ACTIVE_WINDOW)),
        Capability(C.READ_LINE, "Read the current line.", _command(S.READ_LINE)),
        Capability(C.MOVE_TO_NEXT_HEADING, "Move to the next heading.", _command(S.MOVE_TO_NEXT_HEADING)),
        Capability(C.MOVE_TO_PREVIOUS_HEADING, "Move to the previous heading.", _command(S.MOVE_TO_PREVIOUS_HEADING)),
        Capability(C.MOVE_TO_NEXT_LINK, "Move to the next link.", _command(S.MOVE_TO_NEXT_LINK)),
        Capability(C.MOVE_TO_PREVIOUS_LINK, "Move to the previous link.", _command(S.MOVE_TO_PREVIOUS_LINK)),
        Capability(C.MOVE_TO_NEXT_BUTTON, "Move to the next button.", _command(S.MOVE_TO_NEXT_BUTTON)),
        Capability(C.MOVE_TO_PREVIOUS_BUTTON, "Move to the previous button.", _command(S.MOVE_TO_PREVIOUS_BUTTON)),
        Capability(C.MOVE_TO_NEXT_FORM_FIELD, "Move to the next form field.", _command(S.MOVE_TO_NEXT_FORM_FIELD)),
        Capability(C.MOVE_TO_PREVIOUS_FORM_FIELD, "Move to the previous form field.", _command(S.MOVE_TO_PREVIOUS_FORM_FIELD)),
        Capability(C.MOVE_TO_NEXT_LANDMARK, "Move to the next landmark.", _command(S.MOVE_TO_NEXT_LANDMARK)),
        Capability(C.MOVE_TO_PREVIOUS_LANDMARK, "Move to the previous landmark.", _command(S.MOVE_TO_PREVIOUS_LANDMARK)),
        Capability(C.MOVE_TO_NEXT_TABLE, "Move to the next table.", _command(S.MOVE_TO_NEXT_TABLE)),
        Capability(C.MOVE_TO_PREVIOUS_TABLE, "Move to the previous table.", _command(S.MOVE_TO_PREVIOUS_TABLE)),
        Capability(C.MOVE_TO_NEXT_LIST, "Move to the next list.", _command(S.MOVE_TO_NEXT_LIST)),
        Capability(C.MOVE_TO_PREVIOUS_LIST, "Move to the previous list.", _command(S.MOVE_TO_PREVIOUS_LIST)),
        Capability(C.MOVE_TO_NEXT_SEPARATOR, "Move to the next separator.", _command(S.MOVE_TO_NEXT_SEPARATOR)),
        Capability(C.MOVE_TO_PREVIOUS_SEPARATOR, "Move to the previous separator.", _command(S.MOVE_TO_PREVIOUS_SEPARATOR)),
        Capability(C.MOVE_TO_NEXT, "Move to the next item.", _command(S.MOVE_TO_NEXT)),
        Capability(C.MOVE_TO_PREVIOUS, "Move to the previous item.", _command(S.MOVE_TO_PREVIOUS)),
        Capability(
            C.PERFORM_DEFAULT_ACTION,
            "Perform the default action for the current item.",
            _command(S.PERFORM_DEFAULT_ACTION_FOR_ITEM),
        ),
        Capability(C.LEFT_MOUSE_CLICK, "Perform a left mouse click.", _command(S.LEFT_MOUSE_CLICK)),
        Capability(C.RIGHT_MOUSE_CLICK, "Perform a right mouse click.", _command(S.RIGHT_MOUSE_CLICK)),
        Capability(C.TYPE_TEXT, "Type in the given text to browser.", _type_text, TypeTextInput),
        Capability(C.PRESS_ENTER, "Press enter on keyboard.", _press_enter),
    ]
    return {spec.name: spec for spec in specs}


CAPABILITIES: Dict[CapabilityName, Capability] = _build_capabilities()


class CapabilityAdapter:
    """Invokes capabilities against the shared screen-reader session.

    Each invocation performs one primitive action, reads the latest
    utterance and appends it to the current goal's transcript. Errors raised
    by the screen reader or browser propagate unchanged.
    """

    def __init__(
        self,
        screen_reader: ScreenReader,
        transcript: Transcript,
        timeout: Optional[float] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.screen_reader = screen_reader
        self.transcript = transcript
        self.timeout = timeout
        self.logger = logger or logging.getLogger("capabilities")

    @property
    def capabilities(self) -> List[Capability]:
        return list(CAPABILITIES.values())

    def tools(self) -> List[Dict[str, Any]]:
        return [capability.to_tool() for capability in self.capabilities]

    def resolve(self, name: str) -> Capability:
        """Look a capability up by name, failing closed on unknown names."""
        try:
            return CAPABILITIES[CapabilityName(name)]
        except ValueError:
            raise UnknownCapabilityError(name) from None

    def _parse_arguments(self, capability: Capability, arguments: Any) -> BaseModel:
        if arguments is None or arguments == "":
            arguments = {}
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as exc:
                raise CapabilityInputError(
                    f"Arguments for {capability.name.value} are not valid JSON: {exc}",
                    name=capability.name.value,
                    arguments=arguments,
                ) from exc
        if not isinstance(arguments, Mapping):
            raise CapabilityInputError(
                f"Arguments for {capability.name.value} must be an object",
                name=capability.name.value,
                arguments=arguments,
            )
        try:
            return capability.input_model.model_validate(dict(arguments))
        except ValidationError as exc:
            raise CapabilityInputError(
                f"Invalid arguments for {capability.name.value}: {exc.errors(include_url=False)}",
                name=capability.name.value,
                arguments=arguments,
            ) from exc

    async def invoke(self, name: str, arguments: Any = None) -> str:
        """Run one capability and return the Observation it produced."""
        capability = self.resolve(name)
        params = self._parse_arguments(capability, arguments)

        self.logger.info(f"Invoking {capability.name.value}")
        action = capability.handler(self.screen_reader, params)
        if self.timeout:
            try:
                await asyncio.wait_for(action, timeout=self.timeout)
            except asyncio.TimeoutError:
                raise CapabilityTimeoutError(capability.name.value, self.timeout) from None
        else:
            await action

        observation = await self.screen_reader.last_spoken_phrase() or ""
        self.transcript.append(capability.name.value, observation)
        self.logger.info(f"Observation: {observation[:200]}")
        return observation
