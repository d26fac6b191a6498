import logging
from pathlib import Path

from .constants import APP_NAME
from .process import CommandFailed, CommandResult, ProcessRunner

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific directory.

    Each method maps to one fixed git argument list. Unlike a mutating
    client, this class does not validate the directory up front: callers ask
    `is_repository()` when they need to know, and every other query reports
    "not a repository" as a CommandFailed like any other git error.

    Attributes:
        path (Path): The working directory git is run in.
        runner (ProcessRunner): The process runner used for every call.
    """

    def __init__(self, path: Path, runner: ProcessRunner | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The working directory (normally the workspace root).
            runner (ProcessRunner | None): Runner to use. Defaults to a new one.
        """
        self.path = path
        self.runner = runner or ProcessRunner()

    def _run(self, args: list[str]) -> CommandResult:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.

        Returns:
            CommandResult: The raw captured output.

        Raises:
            CommandFailed: If the git command fails or git is not installed.
        """
        return self.runner.run(["git", *args], cwd=self.path)

    def _output(self, args: list[str]) -> str:
        return self._run(args).stdout

    # --- Snapshot Queries ---

    def status_porcelain(self) -> str:
        """Returns the raw output of `git status --porcelain`."""
        return self._output(["status", "--porcelain"])

    def log_oneline(self, limit: int) -> str:
        """Returns `<7-char hash> <subject>` lines, most recent first.

        Args:
            limit (int): The maximum number of commits to list.
        """
        return self._output(["log", "--format=%h %s", "--abbrev=7", f"-{limit}"])

    def branches_all(self) -> str:
        """Returns the raw output of `git branch -a` (local and remote branches)."""
        return self._output(["branch", "-a"])

    def remotes_verbose(self) -> str:
        """Returns the raw output of `git remote -v` (fetch and push URLs)."""
        return self._output(["remote", "-v"])

    def stash_list(self) -> str:
        """Returns the raw output of `git stash list`."""
        return self._output(["stash", "list"])

    def ahead_behind(self) -> str:
        """Returns `<ahead>\\t<behind>` relative to the configured upstream.

        Raises:
            CommandFailed: If the current branch has no upstream.
        """
        return self._output(
            ["rev-list", "--left-right", "--count", "HEAD...@{upstream}"]
        )

    def current_branch(self) -> str:
        """Retrieves the name of the currently checked-out branch.

        Returns:
            str: The branch name, or an empty string on a detached HEAD.
        """
        return self._output(["branch", "--show-current"]).strip()

    # --- Repository Lifecycle ---

    def is_repository(self) -> bool:
        """Checks whether the working directory is inside a git repository."""
        try:
            self._run(["rev-parse", "--git-dir"])
            return True
        except CommandFailed as e:
            logger.debug(f"rev-parse failed in {self.path}: {e}")
            return False

    def init(self) -> None:
        """Initializes a new repository in the working directory.

        Raises:
            CommandFailed: If `git init` fails.
        """
        self._run(["init"])

    # --- User Commands ---

    def run_command(self, args: list[str]) -> CommandResult:
        """Runs an arbitrary user-requested git command.

        The error text of a failing command is propagated untouched inside
        the CommandFailed.

        Args:
            args (list[str]): Arguments following `git`.

        Returns:
            CommandResult: The captured output.
        """
        logger.info(f"git {' '.join(args)} (in {self.path})")
        return self._run(args)
