"""Custom exception hierarchy for the screen-reader goal agent."""
from __future__ import annotations

from typing import Any, Optional


class A11yAgentError(Exception):
    """Base exception for all agent-related errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Run setup exceptions (fatal for the whole run)
class SetupError(A11yAgentError):
    """Raised when the run cannot start; no goal is attempted."""

    pass


class SessionStartError(SetupError):
    """Raised when the browser or screen-reader session fails to launch."""

    def __init__(self, message: str, component: Optional[str] = None):
        details = {"component": component} if component else {}
        super().__init__(message, details)
        self.component = component


class GoalLoadError(SetupError):
    """Raised when a goal file cannot be loaded or parsed."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        details = {"file_path": file_path} if file_path else {}
        super().__init__(message, details)
        self.file_path = file_path


class GoalValidationError(SetupError):
    """Raised when a goal definition is invalid."""

    def __init__(self, message: str, index: Optional[int] = None, field: Optional[str] = None):
        details: dict[str, Any] = {}
        if index is not None:
            details["index"] = index
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.index = index
        self.field = field


class ConfigurationError(SetupError):
    """Raised when configuration is invalid."""

    pass


# Browser / screen reader exceptions
class BrowserError(A11yAgentError):
    """Base exception for browser automation errors."""

    pass


class BrowserNotStartedError(BrowserError):
    """Raised when attempting to use browser before starting."""

    def __init__(self):
        super().__init__("Browser has not been started. Call start() first.")


class NavigationError(BrowserError):
    """Raised when page navigation fails."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        details = {}
        if url:
            details["url"] = url
        if timeout:
            details["timeout"] = timeout
        super().__init__(message, details)
        self.url = url
        self.timeout = timeout


class ScreenReaderError(BrowserError):
    """Raised when the screen reader cannot read or act on the page."""

    pass


# Capability exceptions
class CapabilityError(A11yAgentError):
    """Base exception for capability dispatch faults during a goal attempt."""

    pass


class UnknownCapabilityError(CapabilityError):
    """Raised when the model selects a capability that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown capability: {name}", {"name": name})
        self.name = name


class CapabilityInputError(CapabilityError):
    """Raised when capability arguments do not match the input schema."""

    def __init__(self, message: str, name: str, arguments: Any = None):
        details: dict[str, Any] = {"name": name}
        if arguments is not None:
            details["arguments"] = str(arguments)[:200]
        super().__init__(message, details)
        self.name = name
        self.arguments = arguments


class CapabilityTimeoutError(CapabilityError):
    """Raised when a capability invocation exceeds its time budget."""

    def __init__(self, name: str, timeout: float):
        super().__init__(
            f"Capability {name} timed out after {timeout}s",
            {"name": name, "timeout": timeout},
        )
        self.name = name
        self.timeout = timeout


# LLM-related exceptions
class LLMError(A11yAgentError):
    """Base exception for LLM/model-related errors."""

    pass


class LLMResponseError(LLMError):
    """Raised when LLM returns an invalid or empty response."""

    def __init__(self, message: str, response: Optional[str] = None):
        details = {"response_preview": response[:200] if response else None}
        super().__init__(message, details)
        self.response = response


class ModelTimeoutError(LLMError):
    """Raised when model call times out."""

    def __init__(self, timeout: float):
        super().__init__(f"Model call timed out after {timeout}s", {"timeout": timeout})
        self.timeout = timeout


class JudgeParseError(LLMError):
    """Raised when the judge response is not an object with a boolean conclusion."""

    def __init__(self, message: str, raw_response: Optional[str] = None):
        details = {"raw_response": raw_response[:500] if raw_response else None}
        super().__init__(message, details)
        self.raw_response = raw_response


# Goal execution exceptions
class GoalExecutionError(A11yAgentError):
    """Base exception for goal execution errors."""

    pass


class StepBudgetExceededError(GoalExecutionError):
    """Raised when the reasoning loop exceeds its step budget."""

    def __init__(self, max_steps: int):
        super().__init__(
            f"Agent exceeded maximum steps ({max_steps})",
            {"max_steps": max_steps},
        )
        self.max_steps = max_steps


class GoalTimeoutError(GoalExecutionError):
    """Raised when a goal attempt exceeds its wall-clock budget."""

    def __init__(self, timeout: float):
        super().__init__(f"Goal attempt timed out after {timeout}s", {"timeout": timeout})
        self.timeout = timeout


class VerdictFailure(A11yAgentError):
    """The judge concluded that the goal was not satisfied."""

    def __init__(self, reason: str, path: str):
        super().__init__(reason)
        self.reason = reason
        self.path = path


# Reporting exceptions
class IssueSinkError(A11yAgentError):
    """Raised when the run report cannot be delivered to the issue tracker."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        details = {"status_code": status_code} if status_code else {}
        super().__init__(message, details)
        self.status_code = status_code
