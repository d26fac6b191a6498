import logging
from dataclasses import dataclass

from .constants import APP_NAME
from .git_wrapper import GitRepo
from .process import CommandFailed
from .snapshot import SyncState, parse_sync

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class StatusLine:
    """Compact one-line repository summary.

    Attributes:
        branch (str): The current branch ('' on a detached HEAD).
        staged (int): Files with changes in the index.
        unstaged (int): Files with changes in the working tree.
        untracked (int): Files unknown to git.
        sync (SyncState | None): Upstream counts, if an upstream exists.
    """

    branch: str
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    sync: SyncState | None = None

    @property
    def dirty(self) -> bool:
        return bool(self.staged or self.unstaged or self.untracked)

    def render(self) -> str:
        """Formats the summary, e.g. 'main +1 ~2 ?3 ↑1↓0'."""
        parts = [self.branch]
        if self.staged:
            parts.append(f"+{self.staged}")
        if self.unstaged:
            parts.append(f"~{self.unstaged}")
        if self.untracked:
            parts.append(f"?{self.untracked}")
        if self.sync is not None and self.sync.has_changes:
            parts.append(f"↑{self.sync.ahead}↓{self.sync.behind}")
        return " ".join(parts)


def count_changes(porcelain: str) -> tuple[int, int, int]:
    """Counts (staged, unstaged, untracked) files in porcelain status output."""
    lines = [line for line in porcelain.splitlines() if line.strip()]
    staged = sum(1 for line in lines if line[0] not in (" ", "?"))
    unstaged = sum(1 for line in lines if len(line) > 1 and line[1] not in (" ", "?"))
    untracked = sum(1 for line in lines if line[0] == "?")
    return staged, unstaged, untracked


def read_status_line(repo: GitRepo) -> StatusLine | None:
    """Builds the status line for a repository.

    Args:
        repo (GitRepo): The repository to summarise.

    Returns:
        StatusLine | None: The summary, or None when the directory is not a
        repository (the status line should then be hidden).
    """
    try:
        branch = repo.current_branch()
    except CommandFailed as e:
        logger.debug(f"No status line for {repo.path}: {e}")
        return None

    staged = unstaged = untracked = 0
    try:
        staged, unstaged, untracked = count_changes(repo.status_porcelain())
    except CommandFailed as e:
        logger.debug(f"Status query failed in {repo.path}: {e}")

    sync = None
    try:
        sync = parse_sync(repo.ahead_behind())
    except CommandFailed:
        pass  # No upstream.

    return StatusLine(branch, staged, unstaged, untracked, sync)
