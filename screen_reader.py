"""Screen-reader drivers.

``ScreenReader`` is the primitive surface the capability adapter talks to:
browse-mode navigation, NVDA-style keyboard commands, keyboard input and the
spoken phrase log. ``VirtualScreenReader`` implements it on top of the
accessibility tree Playwright exposes as an aria snapshot, so a run needs no
platform screen reader. A native driver can be plugged in by implementing
the same interface.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

import yaml

from browser import SimpleBrowser
from exceptions import ScreenReaderError


class ScreenReaderCommand(str, Enum):
    """Keyboard commands understood by every screen-reader driver."""
    REPORT_DATE_TIME = "reportDateTime"
    REPORT_CURRENT_FOCUS = "reportCurrentFocus"
    REPORT_TITLE = "reportTitle"
    READ_ACTIVE_WINDOW = "readActiveWindow"
    READ_LINE = "readLine"
    MOVE_TO_NEXT_HEADING = "moveToNextHeading"
    MOVE_TO_PREVIOUS_HEADING = "moveToPreviousHeading"
    MOVE_TO_NEXT_LINK = "moveToNextLink"
    MOVE_TO_PREVIOUS_LINK = "moveToPreviousLink"
    MOVE_TO_NEXT_BUTTON = "moveToNextButton"
    MOVE_TO_PREVIOUS_BUTTON = "moveToPreviousButton"
    MOVE_TO_NEXT_FORM_FIELD = "moveToNextFormField"
    MOVE_TO_PREVIOUS_FORM_FIELD = "moveToPreviousFormField"
    MOVE_TO_NEXT_LANDMARK = "moveToNextLandmark"
    MOVE_TO_PREVIOUS_LANDMARK = "moveToPreviousLandmark"
    MOVE_TO_NEXT_TABLE = "moveToNextTable"
    MOVE_TO_PREVIOUS_TABLE = "moveToPreviousTable"
    MOVE_TO_NEXT_LIST = "moveToNextList"
    MOVE_TO_PREVIOUS_LIST = "moveToPreviousList"
    MOVE_TO_NEXT_SEPARATOR = "moveToNextSeparator"
    MOVE_TO_PREVIOUS_SEPARATOR = "moveToPreviousSeparator"
    MOVE_TO_NEXT = "moveToNext"
    MOVE_TO_PREVIOUS = "moveToPrevious"
    PERFORM_DEFAULT_ACTION_FOR_ITEM = "performDefaultActionForItem"
    LEFT_MOUSE_CLICK = "leftMouseClick"
    RIGHT_MOUSE_CLICK = "rightMouseClick"


HEADING_ROLES = frozenset({"heading"})
LINK_ROLES = frozenset({"link"})
BUTTON_ROLES = frozenset({"button"})
FORM_FIELD_ROLES = frozenset({
    "textbox", "searchbox", "combobox", "checkbox", "radio",
    "spinbutton", "slider", "switch", "listbox",
})
LANDMARK_ROLES = frozenset({
    "banner", "main", "navigation", "contentinfo",
    "complementary", "region", "form", "search",
})
TABLE_ROLES = frozenset({"table", "grid"})
LIST_ROLES = frozenset({"list"})
SEPARATOR_ROLES = frozenset({"separator"})

# command -> (direction, roles, quick-nav noun)
_QUICK_NAV: Dict[ScreenReaderCommand, tuple[int, FrozenSet[str], str]] = {
    ScreenReaderCommand.MOVE_TO_NEXT_HEADING: (1, HEADING_ROLES, "heading"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_HEADING: (-1, HEADING_ROLES, "heading"),
    ScreenReaderCommand.MOVE_TO_NEXT_LINK: (1, LINK_ROLES, "link"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_LINK: (-1, LINK_ROLES, "link"),
    ScreenReaderCommand.MOVE_TO_NEXT_BUTTON: (1, BUTTON_ROLES, "button"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_BUTTON: (-1, BUTTON_ROLES, "button"),
    ScreenReaderCommand.MOVE_TO_NEXT_FORM_FIELD: (1, FORM_FIELD_ROLES, "form field"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_FORM_FIELD: (-1, FORM_FIELD_ROLES, "form field"),
    ScreenReaderCommand.MOVE_TO_NEXT_LANDMARK: (1, LANDMARK_ROLES, "landmark"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_LANDMARK: (-1, LANDMARK_ROLES, "landmark"),
    ScreenReaderCommand.MOVE_TO_NEXT_TABLE: (1, TABLE_ROLES, "table"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_TABLE: (-1, TABLE_ROLES, "table"),
    ScreenReaderCommand.MOVE_TO_NEXT_LIST: (1, LIST_ROLES, "list"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_LIST: (-1, LIST_ROLES, "list"),
    ScreenReaderCommand.MOVE_TO_NEXT_SEPARATOR: (1, SEPARATOR_ROLES, "separator"),
    ScreenReaderCommand.MOVE_TO_PREVIOUS_SEPARATOR: (-1, SEPARATOR_ROLES, "separator"),
}

_FOCUS_ROLE_LABELS = {
    "a": "link",
    "button": "button",
    "textarea": "edit",
    "select": "combo box",
}

_ENTRY_RE = re.compile(
    r'^(?P<role>[A-Za-z][\w-]*)'
    r'(?:\s+"(?P<name>(?:[^"\\]|\\.)*)")?'
    r'(?P<attrs>(?:\s*\[[^\]]*\])*)\s*$'
)
_ATTR_RE = re.compile(r"\[([^\]=]+)(?:=([^\]]*))?\]")


@dataclass(frozen=True)
class AccessibleNode:
    """One reading position in the flattened accessibility tree."""

    role: str
    name: str = ""
    text: str = ""
    depth: int = 0
    attributes: Dict[str, Any] = field(default_factory=dict)
    child_count: int = 0

    @property
    def label(self) -> str:
        return self.name or self.text

    @property
    def speech(self) -> str:
        """Phrase spoken when the reading cursor lands on this node."""
        if self.role in ("text", "paragraph", "StaticText"):
            return self.label
        parts: List[str] = []
        if self.role == "heading":
            parts = [self.label, "heading"]
            if "level" in self.attributes:
                parts.append(f"level {self.attributes['level']}")
        elif self.role in LANDMARK_ROLES:
            parts = [self.label, f"{self.role} landmark"]
        elif self.role == "list":
            parts = [f"list with {self.child_count} items", self.label]
        else:
            parts = [self.role, self.label]
        for state in ("checked", "expanded", "pressed", "selected", "disabled"):
            value = self.attributes.get(state)
            if value is True or value == "true":
                parts.append(state)
            elif value == "false" and state in ("checked", "expanded", "pressed"):
                parts.append(f"not {state}")
        return ", ".join(p for p in parts if p)


def _parse_attributes(raw: str) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {}
    for key, value in _ATTR_RE.findall(raw or ""):
        attributes[key.strip()] = value.strip() if value else True
    return attributes


def _add_entry(key: str, value: Any, depth: int, out: List[AccessibleNode]) -> None:
    match = _ENTRY_RE.match(key.strip())
    if not match:
        out.append(AccessibleNode(role="text", text=key.strip(), depth=depth))
        return

    role = match.group("role")
    name = (match.group("name") or "").replace('\\"', '"')
    attributes = _parse_attributes(match.group("attrs"))

    text = ""
    children: List[Any] = []
    if isinstance(value, list):
        children = value
    elif value is not None:
        text = str(value).strip()

    for child in children:
        if isinstance(child, dict):
            for child_key, child_value in child.items():
                if str(child_key).startswith("/"):
                    attributes[str(child_key)[1:]] = child_value

    child_count = sum(
        1 for child in children
        if (isinstance(child, str) and child.startswith("listitem"))
        or (isinstance(child, dict) and any(str(k).startswith("listitem") for k in child))
    )
    out.append(
        AccessibleNode(
            role=role,
            name=name,
            text=text,
            depth=depth,
            attributes=attributes,
            child_count=child_count,
        )
    )
    _walk(children, depth + 1, out)


def _walk(items: Any, depth: int, out: List[AccessibleNode]) -> None:
    for item in items or []:
        if isinstance(item, str):
            _add_entry(item, None, depth, out)
        elif isinstance(item, dict):
            for key, value in item.items():
                if str(key).startswith("/"):
                    continue
                _add_entry(str(key), value, depth, out)


def parse_aria_snapshot(snapshot: str) -> List[AccessibleNode]:
    """Flatten a Playwright aria snapshot into document-ordered nodes."""
    try:
        data = yaml.safe_load(snapshot) if snapshot else []
    except yaml.YAMLError as exc:
        raise ScreenReaderError(f"Unreadable accessibility snapshot: {exc}") from exc
    if data is None:
        return []
    if not isinstance(data, list):
        data = [data]
    nodes: List[AccessibleNode] = []
    _walk(data, 0, nodes)
    return nodes


def format_date_time(now: datetime) -> str:
    """Spoken form of the current time and date."""
    clock = now.strftime("%I:%M %p").lstrip("0")
    return f"{clock}, {now:%A}, {now:%B} {now.day}, {now.year}"


class ScreenReader(ABC):
    """Primitive screen-reader surface."""

    @abstractmethod
    async def start(self) -> None:
        """Start the screen-reader session."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the screen-reader session."""

    @abstractmethod
    async def navigate_to_web_content(self) -> None:
        """Move the reading cursor to the start of the page content."""

    @abstractmethod
    async def next(self) -> None:
        """Move to the next item."""

    @abstractmethod
    async def perform(self, command: ScreenReaderCommand) -> None:
        """Perform a keyboard command."""

    @abstractmethod
    async def type(self, text: str) -> None:
        """Type text into the focused element."""

    @abstractmethod
    async def press(self, key: str) -> None:
        """Press a key."""

    @abstractmethod
    async def last_spoken_phrase(self) -> str:
        """Most recent utterance, possibly empty."""


class VirtualScreenReader(ScreenReader):
    """Browse-mode screen reader driven by the page's accessibility tree."""

    def __init__(
        self,
        browser: SimpleBrowser,
        logger: Optional[logging.Logger] = None,
    ):
        self.browser = browser
        self.logger = logger or logging.getLogger("screen_reader")
        self._nodes: List[AccessibleNode] = []
        self._cursor = -1
        self._last_phrase = ""
        self._running = False

    # ─────────────────────────────────────────────────────────────────────────
    # Session lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def start(self) -> None:
        if not self.browser.is_started:
            raise ScreenReaderError("Screen reader needs a started browser")
        self._running = True
        self.logger.info("Virtual screen reader started")

    async def stop(self) -> None:
        self._running = False
        self._nodes = []
        self._cursor = -1
        self.logger.info("Virtual screen reader stopped")

    def _ensure_running(self) -> None:
        if not self._running:
            raise ScreenReaderError("Screen reader has not been started. Call start() first.")

    # ─────────────────────────────────────────────────────────────────────────
    # Speech
    # ─────────────────────────────────────────────────────────────────────────

    def _speak(self, phrase: str) -> None:
        self._last_phrase = phrase
        self.logger.debug("Spoken: %s", phrase)

    async def last_spoken_phrase(self) -> str:
        return self._last_phrase

    # ─────────────────────────────────────────────────────────────────────────
    # Reading cursor
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def current_node(self) -> Optional[AccessibleNode]:
        if 0 <= self._cursor < len(self._nodes):
            return self._nodes[self._cursor]
        return None

    async def _refresh(self) -> None:
        """Re-read the accessibility tree, keeping the cursor position."""
        snapshot = await self.browser.aria_snapshot()
        self._nodes = parse_aria_snapshot(snapshot)
        if self._cursor >= len(self._nodes):
            self._cursor = len(self._nodes) - 1

    async def _document_phrase(self) -> str:
        title = await self.browser.get_title()
        return f"{title}, document" if title else "document"

    async def navigate_to_web_content(self) -> None:
        self._ensure_running()
        self._cursor = -1
        await self._refresh()
        self._speak(await self._document_phrase())

    async def _step(self, direction: int) -> None:
        await self._refresh()
        target = self._cursor + direction
        if target >= len(self._nodes):
            self._speak("bottom")
            return
        if target < 0:
            self._speak("top")
            return
        self._cursor = target
        self._speak(self._nodes[target].speech)

    async def next(self) -> None:
        self._ensure_running()
        await self._step(1)

    async def _quick_nav(self, direction: int, roles: FrozenSet[str], noun: str) -> None:
        await self._refresh()
        indices = range(self._cursor + 1, len(self._nodes)) if direction > 0 else range(self._cursor - 1, -1, -1)
        for index in indices:
            if self._nodes[index].role in roles:
                self._cursor = index
                self._speak(self._nodes[index].speech)
                return
        self._speak(f"no {'next' if direction > 0 else 'previous'} {noun}")

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    async def perform(self, command: ScreenReaderCommand) -> None:
        self._ensure_running()
        command = ScreenReaderCommand(command)

        if command in _QUICK_NAV:
            direction, roles, noun = _QUICK_NAV[command]
            await self._quick_nav(direction, roles, noun)
        elif command == ScreenReaderCommand.MOVE_TO_NEXT:
            await self._step(1)
        elif command == ScreenReaderCommand.MOVE_TO_PREVIOUS:
            await self._step(-1)
        elif command == ScreenReaderCommand.REPORT_DATE_TIME:
            self._speak(format_date_time(datetime.now()))
        elif command == ScreenReaderCommand.REPORT_TITLE:
            self._speak(await self.browser.get_title())
        elif command == ScreenReaderCommand.REPORT_CURRENT_FOCUS:
            self._speak(await self._focus_phrase())
        elif command == ScreenReaderCommand.READ_LINE:
            await self._refresh()
            node = self.current_node or (self._nodes[0] if self._nodes else None)
            self._speak(node.speech if node else "blank")
        elif command == ScreenReaderCommand.READ_ACTIVE_WINDOW:
            await self._refresh()
            phrases = [await self._document_phrase()]
            phrases.extend(node.speech for node in self._nodes if node.speech)
            self._speak(" ".join(phrases))
        elif command == ScreenReaderCommand.PERFORM_DEFAULT_ACTION_FOR_ITEM:
            await self._activate(button="left", default_action=True)
        elif command == ScreenReaderCommand.LEFT_MOUSE_CLICK:
            await self._activate(button="left")
        elif command == ScreenReaderCommand.RIGHT_MOUSE_CLICK:
            await self._activate(button="right")
        else:
            raise ScreenReaderError(f"Unsupported screen reader command: {command.value}")

    async def _focus_phrase(self) -> str:
        focus = await self.browser.describe_focus()
        if not focus:
            return await self._document_phrase()
        role = focus.get("role") or _FOCUS_ROLE_LABELS.get(focus.get("tag", ""), "")
        if not role and focus.get("tag") == "input":
            input_type = focus.get("type") or "text"
            role = input_type if input_type in ("checkbox", "radio", "button") else "edit"
        parts = [focus.get("name", ""), role or focus.get("tag", "")]
        if focus.get("value") and role == "edit":
            parts.append(focus["value"])
        return ", ".join(p for p in parts if p)

    def _occurrence(self, node: AccessibleNode) -> int:
        """How many earlier nodes share this node's role and label."""
        return sum(
            1 for other in self._nodes[: self._cursor]
            if other.role == node.role and other.label == node.label
        )

    async def _activate(self, button: str, default_action: bool = False) -> None:
        await self._refresh()
        node = self.current_node
        if node is None:
            self._speak("no item")
            return

        before_url = self.browser.get_url()
        nth = self._occurrence(node)
        if default_action and node.role in FORM_FIELD_ROLES - {"checkbox", "radio", "switch"}:
            await self.browser.focus_by_role(node.role, node.label, nth)
        else:
            await self.browser.click_by_role(node.role, node.label, nth, button=button)
        await self.browser.settle()

        if self.browser.get_url() != before_url:
            self.logger.info(f"Page changed to {self.browser.get_url()}")
            self._cursor = -1
            await self._refresh()
            self._speak(await self._document_phrase())
        else:
            self._speak(await self._focus_phrase())

    # ─────────────────────────────────────────────────────────────────────────
    # Keyboard
    # ─────────────────────────────────────────────────────────────────────────

    async def type(self, text: str) -> None:
        self._ensure_running()
        await self.browser.type_text(text)
        self._speak(text)

    async def press(self, key: str) -> None:
        self._ensure_running()
        before_url = self.browser.get_url()
        await self.browser.press_key(key)
        await self.browser.settle()
        if self.browser.get_url() != before_url:
            self._cursor = -1
            await self._refresh()
            self._speak(await self._document_phrase())
        else:
            self._speak(await self._focus_phrase())
