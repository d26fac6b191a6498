import logging
import os
import subprocess
import sys
import webbrowser
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .config import Config
from .constants import (
    APP_NAME,
    BINARY_NAME,
    CONFIG_FILE,
    ENV_MARKER,
    INSTALL_GUIDE_URL,
)
from .git_wrapper import GitRepo
from .process import CommandResult, ProcessRunner
from .resolver import BinaryResolver
from .system import PreconditionFailed, SystemStrategy, get_system

logger = logging.getLogger(APP_NAME)


@dataclass
class RemediationAction:
    """An action offered to the user alongside a precondition failure.

    Attributes:
        label (str): The button or menu label (e.g. 'Configure').
        run (Callable[[], None]): Performs the action.
    """

    label: str
    run: Callable[[], None]


class NoWorkspace(PreconditionFailed):
    def __init__(self) -> None:
        super().__init__("No workspace folder open")


class BinaryNotFound(PreconditionFailed):
    def __init__(self) -> None:
        super().__init__(
            f"{BINARY_NAME} binary not found. Please install it or configure the path.",
            [
                RemediationAction("Configure", lambda: open_settings("binary_path")),
                RemediationAction("Install", open_install_guide),
            ],
        )


class NotARepository(PreconditionFailed):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"{path} is not a git repository")


def open_settings(setting: str | None = None) -> None:
    """Opens the global configuration file in the user's editor.

    The file is created with a commented template when missing, so the
    requested setting is there to be edited.

    Args:
        setting (str | None): The setting the user should look at.
    """
    if not CONFIG_FILE.exists():
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            f.write(
                "# gitflow-bridge Configuration\n\n"
                "[core]\n"
                f'# binary_path = "/usr/local/bin/{BINARY_NAME}"\n\n'
                "[terminal]\n"
                "# integrated = true\n"
            )

    editor = os.environ.get("EDITOR")
    if not editor:
        if sys.platform == "darwin":
            editor = "open"
        elif sys.platform.startswith("win"):
            editor = "notepad"
        else:
            editor = "nano"

    if setting:
        logger.info(f"Opening {CONFIG_FILE} at setting '{setting}'")
    try:
        subprocess.run([editor, str(CONFIG_FILE)])
    except OSError as e:
        logger.error(f"Could not open editor '{editor}': {e}")


def open_install_guide() -> None:
    """Opens the installation guide in the default web browser."""
    if not webbrowser.open(INSTALL_GUIDE_URL):
        logger.warning(f"No browser available. Install guide: {INSTALL_GUIDE_URL}")


class IntegratedSession:
    """Handle to the TUI process running attached to the host.

    Attributes:
        process (subprocess.Popen): The running TUI.
    """

    def __init__(self, process: subprocess.Popen):
        self.process = process

    def is_alive(self) -> bool:
        return self.process.poll() is None

    def close(self) -> None:
        if self.is_alive():
            self.process.terminate()


class Session:
    """Explicit owner of per-host launch state.

    Holds the workspace, the configuration, the cached binary location and the
    single integrated-session handle. Nothing here is process-global.

    Attributes:
        workspace (Path | None): The open workspace folder.
        config (Config): The active configuration.
        runner (ProcessRunner): Runner shared by git calls and launches.
        terminal (IntegratedSession | None): The live integrated session.
    """

    def __init__(
        self,
        workspace: Path | None,
        config: Config | None = None,
        runner: ProcessRunner | None = None,
    ):
        self.workspace = workspace
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.terminal: IntegratedSession | None = None
        self._binary: Path | None = None
        self._binary_resolved = False

    @property
    def binary(self) -> Path | None:
        """The TUI location, resolved once and cached until invalidated."""
        if not self._binary_resolved:
            self._binary = BinaryResolver(self.config.core.binary_path).resolve()
            self._binary_resolved = True
        return self._binary

    def invalidate_binary(self) -> None:
        self._binary = None
        self._binary_resolved = False

    def reconfigure(self, config: Config) -> None:
        """Applies a new configuration.

        The binary location is re-resolved on next use and any integrated
        session started under the old settings is closed.
        """
        self.config = config
        self.invalidate_binary()
        self.close_terminal()

    def close_terminal(self) -> None:
        if self.terminal is not None:
            self.terminal.close()
            self.terminal = None

    def terminal_closed(self) -> None:
        """Signals that the integrated session was closed from outside."""
        self.terminal = None

    def has_terminal(self) -> bool:
        if self.terminal is not None and not self.terminal.is_alive():
            self.terminal = None
        return self.terminal is not None

    def require_workspace(self) -> Path:
        """Returns the workspace path.

        Raises:
            NoWorkspace: If no workspace is set or the folder is missing.
        """
        if self.workspace is None or not self.workspace.is_dir():
            raise NoWorkspace()
        return self.workspace

    def repo(self) -> GitRepo:
        return GitRepo(self.require_workspace(), self.runner)


class TerminalLauncher:
    """Opens, toggles and closes the TUI and runs user git commands.

    Attributes:
        session (Session): The state this launcher operates on.
        system (SystemStrategy): The platform strategy for external windows.
        confirm (Callable[[str], bool]): Asks the user a yes/no question.
        on_refresh (Callable[[], None] | None): Called after a successful
            user command so views can refresh.
    """

    def __init__(
        self,
        session: Session,
        system: SystemStrategy | None = None,
        confirm: Callable[[str], bool] | None = None,
        on_refresh: Callable[[], None] | None = None,
    ):
        self.session = session
        self.system = system or get_system(session.runner)
        self.confirm = confirm or (lambda _question: False)
        self.on_refresh = on_refresh

    def launch_env(self) -> dict[str, str]:
        """The current environment plus the integration marker."""
        env = os.environ.copy()
        env[ENV_MARKER] = "1"
        return env

    def _ensure_repository(self, repo: GitRepo) -> None:
        """Offers to initialise the workspace when it is not a repository.

        Raises:
            NotARepository: If the user declines.
            CommandFailed: If `git init` fails.
        """
        if repo.is_repository():
            return

        if not self.confirm("Current folder is not a git repository. Initialize?"):
            raise NotARepository(repo.path)

        repo.init()
        logger.info(f"Git repository initialized in {repo.path}")

    def open(self) -> IntegratedSession | None:
        """Launches the TUI for the current workspace.

        Precondition order: binary, then workspace, then repository.

        Returns:
            IntegratedSession | None: The new session in integrated mode,
            None for an external window.

        Raises:
            BinaryNotFound: If the executable cannot be resolved.
            NoWorkspace: If no workspace is open.
            NotARepository: If the user declines to initialise one.
            NoTerminalAvailable: If no external terminal can be opened.
            CommandFailed: If `git init` or the launch itself fails.
        """
        binary = self.session.binary
        if binary is None:
            raise BinaryNotFound()

        workspace = self.session.require_workspace()
        self._ensure_repository(self.session.repo())

        if self.session.config.terminal.integrated:
            return self._open_integrated(workspace, binary)

        self.system.open_terminal(workspace, binary, self.launch_env())
        return None

    def _open_integrated(self, cwd: Path, binary: Path) -> IntegratedSession:
        self.session.close_terminal()

        process = self.session.runner.spawn(
            [str(binary)], cwd=cwd, env=self.launch_env()
        )
        self.session.terminal = IntegratedSession(process)
        logger.info(f"Started {binary.name} in {cwd} (pid {process.pid})")
        return self.session.terminal

    def close(self) -> None:
        self.session.close_terminal()

    def toggle(self) -> IntegratedSession | None:
        """Closes the live integrated session, or opens one if there is none."""
        if self.session.has_terminal():
            self.close()
            return None
        return self.open()

    def run_command(self, args: list[str]) -> CommandResult:
        """Runs a user-invoked git command in the workspace.

        Only the workspace is checked; a missing TUI binary does not matter
        here.

        Args:
            args (list[str]): Arguments following `git`.

        Returns:
            CommandResult: The command output.

        Raises:
            NoWorkspace: If no workspace is open.
            CommandFailed: With git's own error text if the command fails.
        """
        result = self.session.repo().run_command(args)
        if self.on_refresh is not None:
            self.on_refresh()
        return result
