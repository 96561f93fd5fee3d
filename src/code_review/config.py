"""Configuration management for code-review.

Settings come from, highest priority first: command-line options, the YAML
config file written by ``code-review set`` (``~/.code-review.yaml``), and
environment variables (a ``.env`` file in the reviewed repository, or the
working directory, is loaded into the environment first). Configuration is
immutable once loaded.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from code_review.reviewers.openai_reviewer import DEFAULT_MAX_TOKENS, DEFAULT_MODEL

CONFIG_FILE_NAME = ".code-review.yaml"

API_KEY_FIELD = "openai_api_key"
MODEL_FIELD = "openai_model"


class ConfigError(Exception):
    """Raised when the config file cannot be read or written."""

    pass


def default_config_path() -> Path:
    """Return the config file location, honoring CODE_REVIEW_CONFIG."""
    override = os.getenv("CODE_REVIEW_CONFIG")
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_FILE_NAME


def load_config_file(path: Path) -> dict[str, str]:
    """Read the YAML config file.

    Args:
        path: Config file location.

    Returns:
        Mapping of stored settings; empty if the file does not exist.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigError(f"error reading config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")

    return {str(key): str(value) for key, value in data.items() if value is not None}


def save_config_file(path: Path, data: dict[str, str]) -> None:
    """Write settings to the YAML config file, readable only by the owner.

    Raises:
        ConfigError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Created owner-only; an existing file is tightened before the key is written
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            path.chmod(0o600)
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
    except OSError as e:
        raise ConfigError(f"error writing config file {path}: {e}") from e


def update_config_file(
    path: Path, api_key: str | None = None, model: str | None = None
) -> dict[str, str]:
    """Merge new settings into the config file.

    Args:
        path: Config file location.
        api_key: New OpenAI API key, or None to keep the stored one.
        model: New model name, or None to keep the stored one.

    Returns:
        The settings as saved.

    Raises:
        ConfigError: If the file cannot be read or written.
    """
    data = load_config_file(path)
    if api_key:
        data[API_KEY_FIELD] = api_key
    if model:
        data[MODEL_FIELD] = model
    save_config_file(path, data)
    return data


def _optional_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class ReviewConfig:
    """Configuration for a code-review run.

    All configuration is immutable (frozen dataclass) to ensure consistent
    behavior throughout a run. Configuration is loaded once at startup.
    """

    openai_api_key: str | None
    model: str
    config_path: Path

    max_tokens: int = DEFAULT_MAX_TOKENS

    # Seconds allowed per git invocation and for the review call (None = no limit)
    git_timeout: float | None = None
    review_timeout: float | None = None

    @classmethod
    def load(
        cls,
        config_path: Path | None = None,
        file_data: dict[str, str] | None = None,
    ) -> ReviewConfig:
        """Load configuration from the config file and environment.

        Args:
            config_path: Config file location. Defaults to default_config_path().
            file_data: Already-loaded config file contents. Read from
                config_path when None.

        Returns:
            Immutable ReviewConfig instance.

        Raises:
            ConfigError: If the config file cannot be read.
            ValueError: If a numeric environment variable is not a number.
        """
        path = config_path or default_config_path()
        data = file_data if file_data is not None else load_config_file(path)

        api_key = data.get(API_KEY_FIELD) or os.getenv("OPENAI_API_KEY") or None
        model = data.get(MODEL_FIELD) or os.getenv("CODE_REVIEW_MODEL") or DEFAULT_MODEL

        max_tokens = int(os.getenv("CODE_REVIEW_MAX_TOKENS", str(DEFAULT_MAX_TOKENS)))
        git_timeout = _optional_float(os.getenv("CODE_REVIEW_GIT_TIMEOUT"))
        review_timeout = _optional_float(os.getenv("CODE_REVIEW_REVIEW_TIMEOUT"))

        return cls(
            openai_api_key=api_key,
            model=model,
            config_path=path,
            max_tokens=max_tokens,
            git_timeout=git_timeout,
            review_timeout=review_timeout,
        )

    def with_overrides(self, **changes: Any) -> ReviewConfig:
        """Return a copy with the given non-None fields replaced."""
        return replace(self, **{key: value for key, value in changes.items() if value is not None})

    def validate(self, require_api_key: bool = True) -> None:
        """Validate configuration values.

        Args:
            require_api_key: Whether a missing API key is an error.

        Raises:
            ValueError: If any configuration value is invalid
        """
        if require_api_key and not self.openai_api_key:
            raise ValueError(
                "OPENAI_API_KEY is not set. Please set it using "
                "'code-review set --openai-api-key YOUR_API_KEY' or as an environment variable."
            )

        if not self.model:
            raise ValueError("model must not be empty")

        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be > 0, got {self.max_tokens}")

        if self.git_timeout is not None and self.git_timeout <= 0:
            raise ValueError(f"git_timeout must be > 0, got {self.git_timeout}")

        if self.review_timeout is not None and self.review_timeout <= 0:
            raise ValueError(f"review_timeout must be > 0, got {self.review_timeout}")


def load_environment(dotenv_path: Path | None = None) -> bool:
    """Load a .env file into the process environment without overriding it.

    Args:
        dotenv_path: File to load. Defaults to .env in the working directory.

    Returns:
        True if a .env file was found and loaded.
    """
    if dotenv_path is None:
        dotenv_path = Path.cwd() / ".env"
    return load_dotenv(dotenv_path, override=False)
