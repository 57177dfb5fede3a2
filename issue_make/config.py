"""Global settings from ~/.issue-make/settings.yaml and environment.

The AI credential can also come from ISSUE_MAKE_API_KEY or from a file
named by ISSUE_MAKE_API_KEY_FILE. Values written as ${VAR} or $VAR in the
YAML file are replaced from the environment.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_DIR = ".issue-make"
CONFIG_FILE = "settings.yaml"


def default_config_path() -> Path:
    """~/.issue-make/settings.yaml."""
    return Path.home() / CONFIG_DIR / CONFIG_FILE


def _read_secret(env: dict[str, str], env_key: str, file_env_key: str) -> str | None:
    """Secret from env var or from the file whose path is in file_env_key."""
    value = env.get(env_key)
    if value:
        return value.strip()
    file_path = env.get(file_env_key)
    if file_path:
        return Path(file_path).read_text(encoding="utf-8").strip()
    return None


class AISettings(BaseSettings):
    """OpenAI-compatible endpoint used for title generation."""

    model_config = SettingsConfigDict(env_prefix="ISSUE_MAKE_AI_", extra="ignore")

    url: str = Field(default="", description="Base URL, e.g. https://api.openai.com/v1")
    api: str = Field(default="", description="API key; prefer env or secret file")
    model: str = Field(default="", description="Chat model name")
    timeout: int = Field(default=30, ge=1, le=600, description="Request timeout in seconds")

    @property
    def api_resolved(self) -> str:
        """API key from settings, else ISSUE_MAKE_API_KEY(_FILE)."""
        if self.api and not self.api.startswith("$"):
            return self.api
        return _read_secret(dict(os.environ), "ISSUE_MAKE_API_KEY", "ISSUE_MAKE_API_KEY_FILE") or ""


class ProjectConfig(BaseSettings):
    """Where issues and the brief live inside a project."""

    model_config = SettingsConfigDict(env_prefix="ISSUE_MAKE_PROJECT_", extra="ignore")

    issues_dir: str = Field(default=".issues", description="Issue tree relative to the project root")
    brief_file: str = Field(default="AGENTS_BRIEF.md", description="Collaborator brief relative to the root")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="WARNING", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root settings: ai, project, logging."""

    model_config = SettingsConfigDict(extra="ignore")

    ai: AISettings = Field(default_factory=AISettings)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _substitute_env(value: Any, env: dict[str, str]) -> Any:
    """Replace ${VAR} and $VAR strings with values from env."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            return env.get(value[2:-1].strip(), value)
        if value.startswith("$") and not value.startswith("${"):
            return env.get(value[1:].strip(), value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v, env) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v, env) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load settings; a missing file gives defaults (plus env overrides)."""
    path = config_path or default_config_path()
    if not path.is_file():
        return AppConfig()
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Settings file is not valid YAML: {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Settings must be a mapping: {path}")
    raw = _substitute_env(raw, dict(os.environ))
    return AppConfig(
        ai=AISettings(**(raw.get("ai") or {})),
        project=ProjectConfig(**(raw.get("project") or {})),
        logging=LoggingConfig(**(raw.get("logging") or {})),
    )


def save_config(config: AppConfig, config_path: Path | None = None) -> Path:
    """Write settings as YAML, creating the directory. Returns the path."""
    path = config_path or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    raw = yaml.dump(
        config.model_dump(mode="json"),
        default_flow_style=False,
        allow_unicode=True,
        sort_keys=False,
        width=1000,
    )
    path.write_text(raw, encoding="utf-8")
    return path


def config_exists(config_path: Path | None = None) -> bool:
    return (config_path or default_config_path()).is_file()
