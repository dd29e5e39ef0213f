"""Configuration loading and persistence for Bookvault."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError, InvalidPolicy
from .models import BookvaultConfig, RetentionPolicy
from .resolver import env_overrides as collect_env_overrides
from .resolver import flatten_for_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.bookvault/config.yaml")

_HEADER_LINES = (
    "# Bookvault configuration file",
    "# Manage via `bookvault config edit` or `bookvault config set KEY --value VALUE`.",
)


def _render(data: Mapping[str, Any]) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    body = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
    return "\n".join((*_HEADER_LINES, f"# Last updated: {stamp}", body))


class ConfigManager:
    """Read and write the YAML config file and resolve the effective settings.

    Args:
        config_path: Location of the YAML file; defaults to
            ``~/.bookvault/config.yaml``.
        env: Environment consulted for ``BOOKVAULT__`` overrides.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> BookvaultConfig:
        """Return the effective configuration.

        Args:
            cli_overrides: Dotted-key overrides from command-line flags.
            include_env: Whether ``BOOKVAULT__`` variables are applied.
            ensure_file: Create the config file with defaults when missing.
            env_overrides: Environment to use instead of the manager's own.

        Raises:
            ConfigError: If the file is invalid or the merged values fail validation.
        """
        if ensure_file:
            self.ensure_exists()
        environment = None
        if include_env:
            source = env_overrides if env_overrides is not None else self._env
            environment = collect_env_overrides(source) or None
        return resolve_with_precedence(
            defaults=BookvaultConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=environment,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the mapping stored in the config file, or an empty one.

        Raises:
            ConfigError: If the file is not valid YAML or not a mapping.
        """
        text = self.read_text()
        if not text:
            return {}
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {self._config_path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self._config_path} must contain a mapping at the top level.")
        return data

    def save(self, config: BookvaultConfig | Mapping[str, Any]) -> None:
        if isinstance(config, BookvaultConfig):
            config = config.model_dump(mode="python")
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        self._config_path.write_text(_render(config), encoding="utf-8")

    def ensure_exists(self) -> Path:
        """Write a defaults file if none exists and return its path."""
        if not self._config_path.exists():
            self.save(BookvaultConfig())
        return self._config_path

    def read_text(self) -> str:
        try:
            return self._config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "BookvaultConfig",
    "RetentionPolicy",
    "resolve_with_precedence",
    "flatten_for_env",
    "ConfigError",
    "InvalidPolicy",
]
