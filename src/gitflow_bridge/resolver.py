import logging
import os
import shutil
import sys
from pathlib import Path

from .constants import APP_NAME, BINARY_CANDIDATES, BINARY_NAME

logger = logging.getLogger(APP_NAME)


def common_install_paths() -> list[Path]:
    """Lists the fallback install locations for the current platform.

    Returns:
        list[Path]: Candidate executable paths, in priority order.
    """
    if sys.platform.startswith("win"):
        program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
        return [Path(program_files) / BINARY_NAME / f"{BINARY_NAME}.exe"]

    home = Path.home()
    return [
        home / ".local" / "bin" / BINARY_NAME,
        home / "bin" / BINARY_NAME,
        Path("/usr/local/bin") / BINARY_NAME,
        Path("/usr/bin") / BINARY_NAME,
    ]


class BinaryResolver:
    """Locates the external TUI executable.

    Resolution order (first match wins):
    1. The configured absolute path, if it exists on disk.
    2. Each candidate name found on PATH whose resolved path also exists.
    3. Common installation directories for the current platform.

    Attributes:
        configured_path (str): The user's `binary_path` setting ('' if unset).
    """

    def __init__(self, configured_path: str = ""):
        self.configured_path = configured_path

    def _from_config(self) -> Path | None:
        if not self.configured_path:
            return None
        path = Path(self.configured_path).expanduser()
        if path.exists():
            return path
        logger.warning(f"Configured binary_path does not exist: {path}")
        return None

    def _from_search_path(self) -> Path | None:
        for name in BINARY_CANDIDATES:
            found = shutil.which(name)
            # PATH lookups can return stale entries or dangling symlinks.
            if found and Path(found).exists():
                return Path(found)
        return None

    def _from_common_paths(self) -> Path | None:
        for path in common_install_paths():
            if path.exists():
                return path
        return None

    def resolve(self) -> Path | None:
        """Resolves the executable location.

        Returns:
            Path | None: The path to the executable, or None if not found.
        """
        steps = (self._from_config, self._from_search_path, self._from_common_paths)
        for step in steps:
            if found := step():
                logger.debug(f"Resolved {BINARY_NAME} via {step.__name__}: {found}")
                return found

        logger.info(f"{BINARY_NAME} not found in config, PATH or common locations.")
        return None
