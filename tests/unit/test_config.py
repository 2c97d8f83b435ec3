"""Unit tests for config module."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from config import A11yConfig, AgentConfig, BrowserConfig, ReportingConfig, load_config
from config.models import GROQ_BASE_URL
from exceptions import ConfigurationError

_ENV_VARS = [
    "A11Y_PROVIDER",
    "A11Y_MODEL",
    "A11Y_BASE_URL",
    "A11Y_API_KEY",
    "GROQ_API_KEY",
    "OPENAI_API_KEY",
    "GITHUB_REPOSITORY",
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "GITHUB_SHA",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestAgentConfig:
    """Tests for AgentConfig model."""

    def test_default_values(self):
        config = AgentConfig()
        assert config.provider == "groq"
        assert config.model == "llama-3.1-70b-versatile"
        assert config.temperature == 0.3
        assert config.max_steps == 15
        assert config.effective_base_url == GROQ_BASE_URL
        assert config.effective_judge_model == "llama-3.1-70b-versatile"

    def test_custom_values(self):
        config = AgentConfig(
            provider="openai",
            model="gpt-4o-mini",
            judge_model="gpt-4o",
            temperature=0.5,
            max_steps=30,
        )
        assert config.model == "gpt-4o-mini"
        assert config.effective_judge_model == "gpt-4o"
        assert config.effective_base_url is None
        assert config.max_steps == 30

    def test_base_url_trailing_slash_stripped(self):
        config = AgentConfig(base_url="http://localhost:1234/v1/")
        assert config.base_url == "http://localhost:1234/v1"

    def test_non_groq_base_url_selects_openai(self):
        config = AgentConfig(base_url="http://localhost:1234/v1")
        assert config.provider == "openai"
        assert config.effective_base_url == "http://localhost:1234/v1"

    def test_temperature_validation(self):
        with pytest.raises(ValueError):
            AgentConfig(temperature=-0.1)
        with pytest.raises(ValueError):
            AgentConfig(temperature=2.5)

    def test_max_steps_validation(self):
        with pytest.raises(ValueError):
            AgentConfig(max_steps=0)
        with pytest.raises(ValueError):
            AgentConfig(max_steps=201)

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValueError):
            AgentConfig(goal_timeout=0)
        with pytest.raises(ValueError):
            AgentConfig(capability_timeout=-1)

    def test_env_var_loading(self, monkeypatch):
        monkeypatch.setenv("A11Y_MODEL", "env-model")
        monkeypatch.setenv("A11Y_API_KEY", "env-api-key")

        config = AgentConfig()
        assert config.model == "env-model"
        assert config.api_key == "env-api-key"

    def test_provider_api_key_fallback(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "groq-key")
        monkeypatch.setenv("OPENAI_API_KEY", "openai-key")

        assert AgentConfig().api_key is None
        assert AgentConfig().effective_api_key == "groq-key"
        assert AgentConfig(provider="openai").effective_api_key == "openai-key"

    def test_explicit_api_key_wins(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "groq-key")
        assert AgentConfig(api_key="own-key").effective_api_key == "own-key"


class TestBrowserConfig:
    """Tests for BrowserConfig model."""

    def test_default_values(self):
        config = BrowserConfig()
        assert config.browser == "chromium"
        assert config.headless is True
        assert config.viewport_width == 1280
        assert config.viewport_height == 720
        assert config.ready_selector == "body"

    def test_browser_choices(self):
        for browser in ["chromium", "firefox", "webkit"]:
            config = BrowserConfig(browser=browser)
            assert config.browser == browser

    def test_invalid_browser_rejected(self):
        with pytest.raises(ValueError):
            BrowserConfig(browser="invalid")

    def test_viewport_validation(self):
        with pytest.raises(ValueError):
            BrowserConfig(viewport_width=100)  # Too small
        with pytest.raises(ValueError):
            BrowserConfig(viewport_height=100)  # Too small


class TestReportingConfig:
    """Tests for ReportingConfig model."""

    def test_default_values(self):
        config = ReportingConfig()
        assert config.output_format == "none"
        assert config.github_repository is None
        assert config.issue_labels == ["bug", "accessibility"]

    def test_path_conversion(self):
        config = ReportingConfig(reports_folder="./custom/reports")
        assert isinstance(config.reports_folder, Path)

    def test_output_format_choices(self):
        for fmt in ["json", "junit", "all", "none"]:
            config = ReportingConfig(output_format=fmt)
            assert config.output_format == fmt

    def test_repository_must_be_owner_slash_repo(self):
        with pytest.raises(ValueError):
            ReportingConfig(github_repository="just-a-name")

    def test_github_actions_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_REPOSITORY", "octo/site")
        monkeypatch.setenv("GITHUB_TOKEN", "ghs_token")
        monkeypatch.setenv("GITHUB_SHA", "abc123")

        config = ReportingConfig()
        assert config.github_repository == "octo/site"
        assert config.github_token == "ghs_token"
        assert config.revision == "abc123"


class TestA11yConfig:
    """Tests for root A11yConfig model."""

    def test_default_nested_configs(self):
        config = A11yConfig()
        assert isinstance(config.agent, AgentConfig)
        assert isinstance(config.browser, BrowserConfig)
        assert isinstance(config.reporting, ReportingConfig)
        assert config.test_url is None

    def test_from_flat_dict(self):
        flat_data = {
            "model": "custom-model",
            "browser": "firefox",
            "headless": False,
            "output_format": "junit",
            "test_url": "http://localhost:3456",
        }
        config = A11yConfig.from_flat_dict(flat_data)

        assert config.agent.model == "custom-model"
        assert config.browser.browser == "firefox"
        assert config.browser.headless is False
        assert config.reporting.output_format == "junit"
        assert config.test_url == "http://localhost:3456"


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_from_json_file(self, temp_dir: Path):
        config_data = {
            "agent": {
                "model": "test-model",
                "temperature": 0.5,
            },
            "browser": {
                "browser": "firefox",
            },
            "test_url": "http://localhost:3456",
        }
        config_file = temp_dir / "config.json"
        config_file.write_text(json.dumps(config_data))

        config = load_config(config_file)
        assert config.agent.model == "test-model"
        assert config.agent.temperature == 0.5
        assert config.browser.browser == "firefox"
        assert config.test_url == "http://localhost:3456"

    def test_loads_flat_json(self, temp_dir: Path):
        config_data = {
            "model": "flat-model",
            "base_url": "http://flat:8000/v1",
            "browser": "webkit",
        }
        config_file = temp_dir / "config.json"
        config_file.write_text(json.dumps(config_data))

        config = load_config(config_file)
        assert config.agent.model == "flat-model"
        assert config.agent.provider == "openai"
        assert config.browser.browser == "webkit"

    def test_cli_overrides(self, temp_dir: Path):
        config_data = {
            "agent": {"model": "file-model"},
            "browser": {"browser": "firefox"},
        }
        config_file = temp_dir / "config.json"
        config_file.write_text(json.dumps(config_data))

        overrides = {
            "url": "http://localhost:3456",
            "goals": "goals.json",
            "browser": "chromium",
            "headful": True,
            "max_steps": 5,
            "reports_dir": "out",
            "repository": "octo/site",
            "revision": "deadbeef",
            "judge_model": "judge-model",
        }

        config = load_config(config_file, cli_overrides=overrides)
        assert config.test_url == "http://localhost:3456"
        assert config.goals_path == Path("goals.json")
        assert config.browser.browser == "chromium"
        assert config.browser.headless is False
        assert config.agent.model == "file-model"
        assert config.agent.max_steps == 5
        assert config.reporting.reports_folder == Path("out")
        assert config.reporting.github_repository == "octo/site"
        assert config.reporting.revision == "deadbeef"
        assert config.agent.effective_judge_model == "judge-model"

    @pytest.mark.parametrize(
        "overrides",
        [{"provider": "openai"}, {"base_url": "https://api.openai.com/v1"}],
    )
    def test_provider_override_uses_matching_key(self, temp_dir: Path, monkeypatch, overrides):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("GROQ_API_KEY", "groq-key")
        monkeypatch.setenv("OPENAI_API_KEY", "openai-key")

        config = load_config(None, cli_overrides=overrides)
        assert config.agent.provider == "openai"
        assert config.agent.effective_api_key == "openai-key"

    def test_none_overrides_are_ignored(self, temp_dir: Path):
        config_file = temp_dir / "config.json"
        config_file.write_text(json.dumps({"agent": {"model": "file-model"}}))

        config = load_config(config_file, cli_overrides={"model": None})
        assert config.agent.model == "file-model"

    def test_default_config_path(self, temp_dir: Path, monkeypatch):
        # Change to temp dir where a11y.config.json doesn't exist
        monkeypatch.chdir(temp_dir)

        config = load_config()
        assert config.agent.model == "llama-3.1-70b-versatile"

    def test_yaml_config(self, temp_dir: Path):
        config_yaml = """
agent:
  model: yaml-model
  temperature: 0.3
browser:
  browser: webkit
  headless: false
"""
        config_file = temp_dir / "config.yaml"
        config_file.write_text(config_yaml)

        config = load_config(config_file)
        assert config.agent.model == "yaml-model"
        assert config.browser.browser == "webkit"
        assert config.browser.headless is False

    def test_invalid_values_raise_configuration_error(self, temp_dir: Path):
        config_file = temp_dir / "config.json"
        config_file.write_text(json.dumps({"agent": {"max_steps": 0}}))

        with pytest.raises(ConfigurationError):
            load_config(config_file)

    def test_unreadable_file_raises_configuration_error(self, temp_dir: Path):
        config_file = temp_dir / "config.json"
        config_file.write_text("{broken")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)
        assert exc_info.value.details["file_path"] == str(config_file)
