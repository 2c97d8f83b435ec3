"""Configuration module for the screen-reader goal agent."""
from config.models import (
    A11yConfig,
    AgentConfig,
    BrowserConfig,
    ReportingConfig,
    load_config,
)

__all__ = [
    "A11yConfig",
    "AgentConfig",
    "BrowserConfig",
    "ReportingConfig",
    "load_config",
]
