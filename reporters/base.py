"""Base reporter interface for screen-reader goal runs."""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from goal_types import RunOutcome


class ReportFormat(str, Enum):
    """Supported report formats."""
    JSON = "json"
    JUNIT = "junit"
    ALL = "all"
    NONE = "none"


class BaseReporter(ABC):
    """Abstract base class for report generators."""

    @abstractmethod
    def generate(self, outcome: RunOutcome, output_dir: Path) -> Path:
        """
        Generate a report for a finished run.

        Args:
            outcome: Per-goal results of the run
            output_dir: Directory to write report to

        Returns:
            Path to the generated report file
        """
        pass

    @property
    @abstractmethod
    def format(self) -> ReportFormat:
        """Return the report format this reporter generates."""
        pass
