import logging
import shlex
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME
from .process import ProcessRunner

logger = logging.getLogger(APP_NAME)

# Windows-only flag, spelled out so the module imports on every platform.
CREATE_NEW_CONSOLE = getattr(subprocess, "CREATE_NEW_CONSOLE", 0x00000010)


class PreconditionFailed(Exception):
    """Base class for failures that abort an operation before it starts.

    Attributes:
        message (str): The user-facing notice.
        actions (list): Remediation actions offered alongside the notice.
    """

    def __init__(self, message: str, actions: list | None = None):
        self.message = message
        self.actions = actions or []
        super().__init__(message)


class NoTerminalAvailable(PreconditionFailed):
    """Raised when no terminal emulator from the fallback chain is installed.

    Attributes:
        tried (list[str]): The emulator names that were probed.
    """

    def __init__(self, tried: list[str]):
        self.tried = list(tried)
        super().__init__(
            "No supported terminal emulator found (tried: "
            f"{', '.join(self.tried)}). Install one or enable integrated mode."
        )


def composite_command(cwd: Path, binary: Path) -> str:
    """Builds the POSIX shell line `cd <dir> && <binary>`."""
    return f"cd {shlex.quote(str(cwd))} && {shlex.quote(str(binary))}"


@dataclass(frozen=True)
class TerminalEmulator:
    """Capabilities of one Linux terminal emulator.

    Attributes:
        name (str): The executable name probed on PATH.
        exec_flag (str): The flag that precedes the program to run.
        workdir_flag (str | None): The working directory flag, or None when
            the emulator only inherits the working directory of its parent.
        workdir_joined (bool): Whether the flag takes `--flag=value` form
            instead of `--flag value`.
    """

    name: str
    exec_flag: str
    workdir_flag: str | None = None
    workdir_joined: bool = True

    def argv(self, executable: str, cwd: Path, binary: Path) -> list[str]:
        """Builds the launch command line for this emulator.

        Args:
            executable (str): The resolved path of the emulator.
            cwd (Path): The directory the TUI should start in.
            binary (Path): The TUI executable.
        """
        args = [executable]
        if self.workdir_flag:
            if self.workdir_joined:
                args.append(f"{self.workdir_flag}={cwd}")
            else:
                args.extend([self.workdir_flag, str(cwd)])
        args.extend([self.exec_flag, str(binary)])
        return args


TERMINAL_EMULATORS = [
    TerminalEmulator("gnome-terminal", "--", "--working-directory"),
    TerminalEmulator("konsole", "-e", "--workdir", workdir_joined=False),
    TerminalEmulator("xfce4-terminal", "-x", "--working-directory"),
    TerminalEmulator("xterm", "-e"),
    TerminalEmulator("alacritty", "-e", "--working-directory"),
    TerminalEmulator("kitty", "-e", "--directory"),
]
"""list[TerminalEmulator]: Emulators probed on Linux, in priority order."""


class SystemStrategy:
    """Base class defining how a separate terminal window is opened."""

    def __init__(self, runner: ProcessRunner | None = None):
        self.runner = runner or ProcessRunner()

    def open_terminal(self, cwd: Path, binary: Path, env: dict[str, str]) -> None:
        """Opens a new OS terminal window running the binary in `cwd`.

        The call returns as soon as the window is launched; it never waits for
        the TUI to exit.

        Args:
            cwd (Path): The repository root.
            binary (Path): The TUI executable.
            env (dict[str, str]): The environment for the new process.

        Raises:
            NoTerminalAvailable: If no way of opening a terminal exists.
            CommandFailed: If the terminal process cannot be started.
        """
        raise NoTerminalAvailable([])


class WindowsStrategy(SystemStrategy):
    """System strategy implementation for Windows."""

    def open_terminal(self, cwd: Path, binary: Path, env: dict[str, str]) -> None:
        """Opens a new console host running `cd /d <dir> && <binary>`."""
        command = f'cd /d "{cwd}" && "{binary}"'
        # cmd strips the outer pair of quotes after /k.
        self.runner.spawn(
            f'cmd /k "{command}"',
            cwd=cwd,
            env=env,
            creationflags=CREATE_NEW_CONSOLE,
        )


class MacOSStrategy(SystemStrategy):
    """System strategy implementation for macOS."""

    def open_terminal(self, cwd: Path, binary: Path, env: dict[str, str]) -> None:
        """Drives Terminal.app through AppleScript and brings it to the front."""
        command = composite_command(cwd, binary)
        # Escape for an AppleScript string literal.
        clean_cmd = command.replace("\\", "\\\\").replace('"', '\\"')
        self.runner.spawn(
            [
                "osascript",
                "-e",
                f'tell application "Terminal" to do script "{clean_cmd}"',
                "-e",
                'tell application "Terminal" to activate',
            ],
            env=env,
            detached=True,
        )


class LinuxStrategy(SystemStrategy):
    """System strategy implementation for Linux and other Unix-like systems."""

    def __init__(
        self,
        runner: ProcessRunner | None = None,
        emulators: list[TerminalEmulator] | None = None,
    ):
        super().__init__(runner)
        self.emulators = emulators if emulators is not None else TERMINAL_EMULATORS

    def find_emulator(self) -> tuple[TerminalEmulator, str] | None:
        """Returns the first installed emulator and its resolved path."""
        for emulator in self.emulators:
            if found := shutil.which(emulator.name):
                return emulator, found
        return None

    def open_terminal(self, cwd: Path, binary: Path, env: dict[str, str]) -> None:
        """Launches the first available emulator from the fallback chain."""
        match = self.find_emulator()
        if match is None:
            raise NoTerminalAvailable([e.name for e in self.emulators])

        emulator, executable = match
        logger.info(f"Opening {binary.name} in {emulator.name}")
        # cwd also covers emulators without a working directory flag.
        self.runner.spawn(
            emulator.argv(executable, cwd, binary), cwd=cwd, env=env, detached=True
        )


def get_system(runner: ProcessRunner | None = None) -> SystemStrategy:
    """Factory function to retrieve the platform-specific system strategy.

    Returns:
        SystemStrategy: An instance of WindowsStrategy, MacOSStrategy or
        LinuxStrategy depending on the operating system.
    """
    if sys.platform.startswith("win"):
        return WindowsStrategy(runner)
    elif sys.platform == "darwin":
        return MacOSStrategy(runner)
    else:
        return LinuxStrategy(runner)
