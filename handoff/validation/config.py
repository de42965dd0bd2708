"""
handoff Configuration - Configuration loading and validation.

This module provides the Config class for resolving the store root and the
selection/composition tunables from a YAML file
(~/.config/handoff/config.yaml by default).

Root resolution order: --root flag > HANDOFF_ROOT > config file.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from handoff.core.project_files import MAX_FILE_SIZE
from handoff.core.selector import SelectionPolicy
from handoff.core.templates import DEFAULT_FOCUS_ITEMS, DEFAULT_INSTRUCTIONS, DEFAULT_NOTES
from handoff.errors import ConfigError

CONFIG_ENV_VAR = "HANDOFF_CONFIG"
ROOT_ENV_VAR = "HANDOFF_ROOT"


class SelectionConfig(BaseModel):
    """Recency limits for artifact selection."""

    report_window_days: float = Field(default=3, gt=0)
    max_reports: int = Field(default=10, ge=1)


class ContextConfig(BaseModel):
    """Configuration for the composed context document."""

    budget_chars: int = Field(default=24000, gt=0)
    report_tail_lines: int = Field(default=50, ge=0)
    instructions: List[str] = Field(default_factory=lambda: list(DEFAULT_INSTRUCTIONS))
    include_patterns: List[str] = Field(default_factory=list)
    max_include_bytes: int = Field(default=MAX_FILE_SIZE, gt=0)


class SessionConfig(BaseModel):
    """Defaults for new daily briefs."""

    focus_items: List[str] = Field(default_factory=lambda: list(DEFAULT_FOCUS_ITEMS))
    notes: List[str] = Field(default_factory=lambda: list(DEFAULT_NOTES))


class HandoffConfig(BaseModel):
    """Complete handoff configuration schema."""

    root: Optional[str] = None
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)


class Config:
    """
    handoff configuration manager.

    Example:
        >>> config = Config.load()
        >>> root = config.resolve_root(None)
        >>> config.set_root("~/Drive/Context")
        >>> config.save()
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None, path: Optional[Path] = None):
        """
        Initialize Config.

        Args:
            data: Raw configuration dictionary (as read from YAML).
            path: File the configuration was loaded from / is saved to.
        """
        self._data = data or {}
        self.path = Path(path) if path else self.default_path()
        self._merged: Optional[HandoffConfig] = None

    @staticmethod
    def default_path() -> Path:
        """Config file location, honouring HANDOFF_CONFIG."""
        override = os.environ.get(CONFIG_ENV_VAR)
        if override:
            return Path(override).expanduser()
        return Path.home() / ".config" / "handoff" / "config.yaml"

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Config":
        """
        Load configuration from path or the default location.

        A missing file is not an error; it just yields defaults.
        """
        path = Path(path) if path else cls.default_path()
        return cls(data=cls._load_yaml(path), path=path)

    @classmethod
    def _load_yaml(cls, path: Path) -> Dict[str, Any]:
        """Load YAML file if it exists."""
        if not path.exists():
            return {}

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}")

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    @property
    def merged(self) -> HandoffConfig:
        """Get the validated configuration."""
        if self._merged is None:
            try:
                self._merged = HandoffConfig(**self._data)
            except ValidationError as e:
                raise ConfigError(f"Invalid configuration in {self.path}: {e}")
        return self._merged

    def resolve_root(self, flag: Optional[str] = None) -> Path:
        """
        Determine the store root.

        Args:
            flag: Value of an explicit --root option, if any.

        Returns:
            An existing, accessible directory.

        Raises:
            ConfigError: If no source names a root, or the root is unusable.
        """
        sources = [
            ("--root", flag),
            (ROOT_ENV_VAR, os.environ.get(ROOT_ENV_VAR)),
            (str(self.path), self.merged.root),
        ]
        origin, value = next(((o, v) for o, v in sources if v), (None, None))
        if not value:
            raise ConfigError(
                "No store root configured. Pass --root, set "
                f"{ROOT_ENV_VAR}, or run `handoff init --root PATH`."
            )

        root = Path(value).expanduser()
        if not root.exists():
            raise ConfigError(f"Store root from {origin} does not exist: {root}")
        if not root.is_dir():
            raise ConfigError(f"Store root from {origin} is not a directory: {root}")
        if not os.access(root, os.R_OK | os.W_OK | os.X_OK):
            raise ConfigError(f"Store root from {origin} is not accessible: {root}")
        return root

    def selection_policy(self) -> SelectionPolicy:
        selection = self.merged.selection
        return SelectionPolicy(
            report_window_days=selection.report_window_days,
            max_reports=selection.max_reports,
        )

    def set_root(self, root: str) -> None:
        """Set the store root (call save() to persist)."""
        self._data["root"] = str(Path(root).expanduser())
        self._merged = None  # Reset cache

    def save(self) -> Path:
        """Save configuration to its file."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                yaml.dump(self._data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Failed to save config to {self.path}: {e}")

        return self.path
