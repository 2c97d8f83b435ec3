"""Pydantic configuration models for the screen-reader goal agent."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from exceptions import ConfigurationError


# Load .env file if present
load_dotenv()

GROQ_BASE_URL = "https://api.groq.com/openai/v1"

ProviderName = Literal["openai", "groq"]


class AgentConfig(BaseModel):
    """LLM agent and judge configuration."""

    provider: ProviderName = Field(
        default="groq",
        description="Model provider (any OpenAI-compatible endpoint)",
    )
    model: str = Field(
        default="llama-3.1-70b-versatile",
        description="Model used by the reasoning loop",
    )
    judge_model: Optional[str] = Field(
        default=None,
        description="Model used by the outcome judge (defaults to model)",
    )
    base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the LLM API endpoint",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key for the LLM service",
    )
    temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the reasoning loop",
    )
    max_steps: int = Field(
        default=15,
        ge=1,
        le=200,
        description="Maximum number of capability invocations per goal",
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens for model response",
    )
    request_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Timeout in seconds for a single model call",
    )
    capability_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single capability invocation",
    )
    goal_timeout: float = Field(
        default=600.0,
        gt=0,
        description="Wall-clock budget in seconds for one goal attempt",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Ensure base_url doesn't have trailing slash."""
        return v.rstrip("/") if v else v

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Load values from environment variables if not explicitly set."""
        env_mapping = {
            "provider": "A11Y_PROVIDER",
            "model": "A11Y_MODEL",
            "base_url": "A11Y_BASE_URL",
            "api_key": "A11Y_API_KEY",
        }
        for field_name, env_var in env_mapping.items():
            if field_name not in data or data[field_name] is None:
                env_value = os.getenv(env_var)
                if env_value:
                    data[field_name] = env_value
        return data

    @model_validator(mode="after")
    def resolve_provider(self) -> "AgentConfig":
        """Use OpenAI when a non-Groq base URL is configured."""
        if self.base_url and "groq.com" not in self.base_url:
            object.__setattr__(self, "provider", "openai")
        return self

    @property
    def effective_api_key(self) -> Optional[str]:
        """Explicit key, else the provider's own env var at use time."""
        if self.api_key:
            return self.api_key
        return os.getenv("GROQ_API_KEY" if self.provider == "groq" else "OPENAI_API_KEY")

    @property
    def effective_base_url(self) -> Optional[str]:
        if self.base_url:
            return self.base_url
        return GROQ_BASE_URL if self.provider == "groq" else None

    @property
    def effective_judge_model(self) -> str:
        return self.judge_model or self.model


class BrowserConfig(BaseModel):
    """Browser automation configuration."""

    browser: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use",
    )
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    viewport_width: int = Field(
        default=1280,
        ge=800,
        le=3840,
        description="Browser viewport width",
    )
    viewport_height: int = Field(
        default=720,
        ge=600,
        le=2160,
        description="Browser viewport height",
    )
    slow_mo: int = Field(
        default=0,
        ge=0,
        le=5000,
        description="Slow down browser operations by this many ms",
    )
    ready_selector: str = Field(
        default="body",
        description="Selector that signals the page is ready",
    )
    navigation_timeout: float = Field(
        default=30000,
        ge=1000,
        description="Navigation timeout in milliseconds",
    )


class ReportingConfig(BaseModel):
    """Reporting and issue-tracker configuration."""

    reports_folder: Path = Field(
        default=Path("./reports"),
        description="Directory for saving reports",
    )
    output_format: Literal["json", "junit", "all", "none"] = Field(
        default="none",
        description="Result report output format",
    )
    github_repository: Optional[str] = Field(
        default=None,
        description="owner/repo that receives the failure issue",
    )
    github_token: Optional[str] = Field(
        default=None,
        description="Token used to create the failure issue",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    revision: Optional[str] = Field(
        default=None,
        description="Revision under test, used in the issue title",
    )
    issue_labels: list[str] = Field(
        default_factory=lambda: ["bug", "accessibility"],
        description="Labels attached to the failure issue",
    )

    @field_validator("reports_folder", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("github_repository")
    @classmethod
    def validate_repository(cls, v: Optional[str]) -> Optional[str]:
        if v and v.count("/") != 1:
            raise ValueError("github_repository must look like 'owner/repo'")
        return v

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Pick up the GitHub Actions environment when not explicitly set."""
        env_mapping = {
            "github_repository": "GITHUB_REPOSITORY",
            "github_token": "GITHUB_TOKEN",
            "github_api_url": "GITHUB_API_URL",
            "revision": "GITHUB_SHA",
        }
        for field_name, env_var in env_mapping.items():
            if field_name not in data or data[field_name] is None:
                env_value = os.getenv(env_var)
                if env_value:
                    data[field_name] = env_value
        return data


class A11yConfig(BaseModel):
    """Root configuration model combining all config sections."""

    agent: AgentConfig = Field(default_factory=AgentConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)

    test_url: Optional[str] = Field(
        default=None,
        description="Page every goal starts from",
    )
    goals_path: Optional[Path] = Field(
        default=None,
        description="JSON/YAML file with the ordered goal list",
    )
    verbose: bool = Field(
        default=False,
        description="Enable verbose logging",
    )

    @classmethod
    def from_flat_dict(cls, data: dict[str, Any]) -> "A11yConfig":
        """Create config from a flat dictionary (legacy format compatibility)."""
        agent_keys = set(AgentConfig.model_fields)
        browser_keys = set(BrowserConfig.model_fields)
        reporting_keys = set(ReportingConfig.model_fields)
        root_keys = {"test_url", "goals_path", "verbose"}

        nested: dict[str, Any] = {
            "agent": {},
            "browser": {},
            "reporting": {},
        }

        for key, value in data.items():
            if key in agent_keys:
                nested["agent"][key] = value
            elif key in browser_keys:
                nested["browser"][key] = value
            elif key in reporting_keys:
                nested["reporting"][key] = value
            elif key in root_keys:
                nested[key] = value

        return cls.model_validate(nested)


def load_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> A11yConfig:
    """
    Load configuration from file with CLI overrides.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults
    """
    config_data: dict[str, Any] = {}

    # Load from file if provided or default exists
    if config_path is None:
        config_path = Path("a11y.config.json")

    try:
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.suffix in {".yaml", ".yml"}:
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)

        # Check if it's flat or nested format
        is_flat = any(key in config_data for key in ["model", "base_url", "api_key", "provider"])

        if is_flat:
            config = A11yConfig.from_flat_dict(config_data)
        else:
            config = A11yConfig.model_validate(config_data)

        # Apply CLI overrides
        if cli_overrides:
            config_dict = config.model_dump()
            _apply_overrides(config_dict, cli_overrides)
            config = A11yConfig.model_validate(config_dict)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"Failed to read configuration: {exc}",
            {"file_path": str(config_path)},
        ) from exc

    return config


def _apply_overrides(config_dict: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Apply CLI overrides to config dictionary."""
    override_mapping = {
        "url": ("test_url", None),
        "goals": ("goals_path", None),
        "verbose": ("verbose", None),
        "provider": ("agent", "provider"),
        "model": ("agent", "model"),
        "judge_model": ("agent", "judge_model"),
        "base_url": ("agent", "base_url"),
        "max_steps": ("agent", "max_steps"),
        "goal_timeout": ("agent", "goal_timeout"),
        "browser": ("browser", "browser"),
        "headful": ("browser", "headless"),  # inverted
        "reports_dir": ("reporting", "reports_folder"),
        "output_format": ("reporting", "output_format"),
        "repository": ("reporting", "github_repository"),
        "revision": ("reporting", "revision"),
    }

    for key, value in overrides.items():
        if value is None:
            continue

        if key == "headful":
            config_dict["browser"]["headless"] = not value
            continue

        mapping = override_mapping.get(key)
        if mapping:
            section, field = mapping
            if field is None:
                config_dict[section] = value
            else:
                config_dict[section][field] = value
