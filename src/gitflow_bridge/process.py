import logging
import subprocess
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class CommandResult:
    """The captured outcome of a finished external command.

    Attributes:
        stdout (str): Raw standard output. Not stripped, since leading
            whitespace is significant in porcelain formats.
        stderr (str): Raw standard error.
        exit_code (int): The process exit status.
    """

    stdout: str
    stderr: str
    exit_code: int = 0


class CommandFailed(Exception):
    """Raised when a command exits non-zero or cannot be launched at all.

    Attributes:
        args_list (list[str]): The command line that failed.
        stderr (str): The error text reported by the process (or the OS).
        exit_code (int | None): The exit status, or None if the process never ran.
    """

    def __init__(
        self, args_list: Sequence[str], stderr: str, exit_code: int | None = None
    ):
        self.args_list = list(args_list)
        self.stderr = stderr
        self.exit_code = exit_code
        super().__init__(stderr.strip() or f"Command failed: {' '.join(args_list)}")


class ProcessRunner:
    """Executes external commands and normalises their failures.

    Every OS-level error (missing executable, permission denied, bad working
    directory) is converted into a CommandFailed. There are no retries and no
    timeouts: a hung command blocks its caller until it exits.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Runs a command to completion and captures its output.

        Args:
            args (Sequence[str]): The command line.
            cwd (Path | None): Working directory. Defaults to the current one.
            env (dict[str, str] | None): Full environment for the child process.

        Returns:
            CommandResult: The captured stdout, stderr and exit status.

        Raises:
            CommandFailed: If the command exits non-zero or cannot be started.
        """
        try:
            res = subprocess.run(
                list(args),
                cwd=cwd,
                capture_output=True,
                text=True,
                env=env,
            )
        except OSError as e:
            raise CommandFailed(args, str(e)) from e

        if res.returncode != 0:
            raise CommandFailed(args, res.stderr or "", res.returncode)
        return CommandResult(res.stdout or "", res.stderr or "", res.returncode)

    def run_async(
        self,
        args: Sequence[str],
        on_complete: Callable[[CommandResult | CommandFailed], None],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> threading.Thread:
        """Runs a command on a background thread and signals completion.

        Args:
            args (Sequence[str]): The command line.
            on_complete (Callable): Receives either the CommandResult or the
                CommandFailed describing why the command did not succeed.
            cwd (Path | None): Working directory.
            env (dict[str, str] | None): Full environment for the child process.

        Returns:
            threading.Thread: The started worker thread.
        """

        def _worker() -> None:
            try:
                outcome: CommandResult | CommandFailed = self.run(args, cwd, env)
            except CommandFailed as e:
                outcome = e
            try:
                on_complete(outcome)
            except Exception:
                logger.exception(f"Completion callback failed for {list(args)}")

        thread = threading.Thread(target=_worker, daemon=True)
        thread.start()
        return thread

    def spawn(
        self,
        args: str | Sequence[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        detached: bool = False,
        creationflags: int = 0,
    ) -> subprocess.Popen:
        """Starts a process without waiting for it (fire-and-forget).

        Args:
            args (str | Sequence[str]): The command line. A string is passed
                through unsplit, which Windows console commands rely on.
            cwd (Path | None): Working directory.
            env (dict[str, str] | None): Full environment for the child process.
            detached (bool): Start the child in its own session with its
                standard streams closed, so it outlives the caller.
            creationflags (int): Windows-only process creation flags.

        Returns:
            subprocess.Popen: The handle of the started process.

        Raises:
            CommandFailed: If the process cannot be started.
        """
        kwargs: dict = {"cwd": cwd, "env": env}
        if detached:
            kwargs.update(
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        if creationflags:
            kwargs["creationflags"] = creationflags
        cmd = args if isinstance(args, str) else list(args)
        try:
            proc = subprocess.Popen(cmd, **kwargs)
        except OSError as e:
            failed = [args] if isinstance(args, str) else args
            raise CommandFailed(failed, str(e)) from e
        logger.debug(f"Spawned {cmd!r} (pid {proc.pid})")
        return proc
