import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_REFRESH_INTERVAL,
    LOCAL_CONFIG_NAME,
)

logger = logging.getLogger(APP_NAME)


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '10s', '1m') to seconds."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


@dataclass
class CoreConfig:
    """Core application settings.

    Attributes:
        binary_path (str): Absolute path override for the TUI executable.
            An empty string means "search for it".
    """

    binary_path: str = ""


@dataclass
class ThemeConfig:
    """Display settings.

    Attributes:
        primary (str): Accent colour used by the command-line renderer.
    """

    primary: str = DEFAULT_PRIMARY_COLOR


@dataclass
class TerminalConfig:
    """Launch settings.

    Attributes:
        integrated (bool): Run the TUI attached to the host (True) or in a
            separate OS terminal window (False).
    """

    integrated: bool = True


@dataclass
class RefreshConfig:
    """Refresh scheduler settings.

    Attributes:
        interval (int): Seconds between timer-driven refreshes.
    """

    interval: int = DEFAULT_REFRESH_INTERVAL


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Core settings.
        theme (ThemeConfig): Display settings.
        terminal (TerminalConfig): Launch mode settings.
        refresh (RefreshConfig): Refresh scheduler settings.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)

    # Cache for the base global configuration
    _global_cache: "Config | None" = None

    @classmethod
    def load(cls, repo_path: Path | None = None) -> "Config":
        """Loads and merges configuration from defaults, global, and local sources.

        Args:
            repo_path (Path | None): The repository root to search for local config.

        Returns:
            Config: The fully merged configuration object.
        """
        # 1. Load or Retrieve Global Config
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        instance = replace(
            cls._global_cache,
            core=replace(cls._global_cache.core),
            theme=replace(cls._global_cache.theme),
            terminal=replace(cls._global_cache.terminal),
            refresh=replace(cls._global_cache.refresh),
        )

        # 2. Load Local Config (if applicable)
        if repo_path:
            local_toml = repo_path / LOCAL_CONFIG_NAME
            pyproject = repo_path / "pyproject.toml"

            if local_toml.exists():
                instance._merge_from_file(local_toml)
            elif pyproject.exists():
                instance._merge_from_file(pyproject, section=f"tool.{APP_NAME}")

        return instance

    @classmethod
    def reload(cls, repo_path: Path | None = None) -> "Config":
        """Drops the cached global layer and loads the configuration again."""
        cls._global_cache = None
        return cls.load(repo_path)

    def _merge_from_file(self, path: Path, section: str | None = None) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated section path
                (e.g., 'tool.gitflow-bridge').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if section:
                for key in section.split("."):
                    data = data.get(key, {})

            if not data:
                return

            if "core" in data:
                self.core = self._update_dataclass("core", self.core, data["core"])
            if "theme" in data:
                self.theme = self._update_dataclass("theme", self.theme, data["theme"])
            if "terminal" in data:
                self.terminal = self._update_dataclass(
                    "terminal", self.terminal, data["terminal"]
                )
            if "refresh" in data:
                self.refresh = self._update_dataclass(
                    "refresh", self.refresh, data["refresh"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and bad values."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "interval":
                    seconds = parse_time(v)
                    if seconds <= 0:
                        raise ValueError("interval must be positive")
                    filtered_updates[k] = seconds
                elif k == "integrated":
                    if not isinstance(v, bool):
                        raise ValueError(f"expected true/false, got {v!r}")
                    filtered_updates[k] = v
                elif k in ["binary_path", "primary"]:
                    if not isinstance(v, str):
                        raise ValueError(f"expected a string, got {v!r}")
                    filtered_updates[k] = v.strip()
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
