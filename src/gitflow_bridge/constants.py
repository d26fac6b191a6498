import os
from pathlib import Path

"""Global constants and path definitions for gitflow-bridge.

This module defines the filesystem layout (adhering to XDG standards where
applicable), application identifiers, the names of the external TUI binary and
the limits applied to each section of a repository snapshot.
"""

# --- Identity ---
APP_NAME = "gitflow-bridge"
"""str: The human-readable application name, also used as the logger name."""

BINARY_NAME = "gitflow-tui"
"""str: The primary executable name of the external terminal application."""

BINARY_CANDIDATES = [BINARY_NAME, "gitflow"]
"""list[str]: Executable names searched on PATH, in priority order."""

ENV_MARKER = "GITFLOW_HOST"
"""str: Variable set to "1" in every launched TUI process."""

INSTALL_GUIDE_URL = "https://github.com/gitflow/tui#installation"
"""str: Where users are sent when the TUI binary cannot be found."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "gitflow-bridge"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "bridge.log"
"""Path: The file path for the bridge logs."""

CONFIG_DIR: Path = Path.home() / ".config/gitflow-bridge"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

LOCAL_CONFIG_NAME = ".gitflow.toml"
"""str: Per-repository configuration file name."""

# --- Snapshot Limits ---
STATUS_LIMIT = 10
COMMIT_LIMIT = 10
BRANCH_LIMIT = 10
STASH_LIMIT = 5

DEFAULT_REFRESH_INTERVAL = 10
"""int: Seconds between timer-driven snapshot refreshes."""

DEFAULT_PRIMARY_COLOR = "#00D9A5"
"""str: Accent colour used when rendering (display only)."""
