import logging
from dataclasses import dataclass, field
from enum import Enum

from .constants import (
    APP_NAME,
    BRANCH_LIMIT,
    COMMIT_LIMIT,
    STASH_LIMIT,
    STATUS_LIMIT,
)
from .git_wrapper import GitRepo
from .process import CommandFailed

logger = logging.getLogger(APP_NAME)


class StatusKind(Enum):
    """Distinguishes real status lines from the synthetic marker entries."""

    FILE = "file"
    CLEAN = "clean"
    ERROR = "error"
    OVERFLOW = "overflow"


@dataclass(frozen=True)
class StatusEntry:
    """One line of the working tree status.

    Attributes:
        code (str): The two-character porcelain code (e.g. 'M ', '??').
            Empty for marker entries.
        path (str): The file path, or a human-readable label for markers.
        kind (StatusKind): Whether this is a file or a marker.
        overflow (int): For OVERFLOW markers, the number of hidden files.
    """

    code: str
    path: str
    kind: StatusKind = StatusKind.FILE
    overflow: int = 0

    @classmethod
    def clean(cls) -> "StatusEntry":
        return cls("", "Working tree clean", StatusKind.CLEAN)

    @classmethod
    def error(cls) -> "StatusEntry":
        return cls("", "Not a git repository", StatusKind.ERROR)

    @classmethod
    def more(cls, count: int) -> "StatusEntry":
        return cls("", f"+{count} more", StatusKind.OVERFLOW, count)


@dataclass(frozen=True)
class CommitEntry:
    short_hash: str
    subject: str


@dataclass(frozen=True)
class BranchEntry:
    name: str
    is_current: bool = False


@dataclass(frozen=True)
class RemoteEntry:
    name: str
    url: str


@dataclass(frozen=True)
class StashEntry:
    description: str


@dataclass(frozen=True)
class SyncState:
    """Commit counts relative to the configured upstream.

    Attributes:
        ahead (int): Commits on HEAD that the upstream lacks.
        behind (int): Commits on the upstream that HEAD lacks.
    """

    ahead: int
    behind: int

    @property
    def has_changes(self) -> bool:
        """False for a 0/0 state, which is displayed like "no upstream"."""
        return self.ahead > 0 or self.behind > 0


@dataclass(frozen=True)
class Snapshot:
    """An immutable aggregated view of repository state at one point in time."""

    status: tuple[StatusEntry, ...] = field(default_factory=tuple)
    commits: tuple[CommitEntry, ...] = field(default_factory=tuple)
    branches: tuple[BranchEntry, ...] = field(default_factory=tuple)
    remotes: tuple[RemoteEntry, ...] = field(default_factory=tuple)
    stashes: tuple[StashEntry, ...] = field(default_factory=tuple)
    sync: SyncState | None = None


def _lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


def parse_status(output: str, limit: int = STATUS_LIMIT) -> tuple[StatusEntry, ...]:
    """Parses `git status --porcelain` output.

    Args:
        output (str): Raw command output (must not be stripped).
        limit (int): Maximum number of file entries to keep.

    Returns:
        tuple[StatusEntry, ...]: The file entries, a trailing OVERFLOW marker
        when lines were dropped, or a single CLEAN marker for no changes.
    """
    lines = _lines(output)
    if not lines:
        return (StatusEntry.clean(),)

    entries = [StatusEntry(line[:2], line[3:]) for line in lines[:limit]]
    if len(lines) > limit:
        entries.append(StatusEntry.more(len(lines) - limit))
    return tuple(entries)


def parse_commits(output: str, limit: int = COMMIT_LIMIT) -> tuple[CommitEntry, ...]:
    """Parses `<hash> <subject>` log lines, preserving git's order."""
    entries = []
    for line in _lines(output)[:limit]:
        short_hash, _, subject = line.partition(" ")
        entries.append(CommitEntry(short_hash[:7], subject))
    return tuple(entries)


def parse_branches(output: str, limit: int = BRANCH_LIMIT) -> tuple[BranchEntry, ...]:
    """Parses `git branch -a` output.

    The line starting with '*' is the checked-out branch. Only the first such
    line is honoured, so at most one entry is ever marked current. When the
    current branch sorts past the limit it takes the last visible slot.
    """
    entries = []
    seen_current = False
    for line in _lines(output):
        is_current = line.startswith("*") and not seen_current
        seen_current = seen_current or is_current
        # Both the marker column and its padding are dropped.
        entries.append(BranchEntry(line[2:].strip(), is_current))

    visible = entries[:limit]
    if limit > 0 and seen_current and not any(b.is_current for b in visible):
        current = next(b for b in entries if b.is_current)
        visible[-1] = current
    return tuple(visible)


def parse_remotes(output: str) -> tuple[RemoteEntry, ...]:
    """Parses `git remote -v` output, keeping the first URL seen per remote."""
    remotes: dict[str, str] = {}
    for line in _lines(output):
        parts = line.split()
        if len(parts) < 2:
            continue
        remotes.setdefault(parts[0], parts[1])
    return tuple(RemoteEntry(name, url) for name, url in remotes.items())


def parse_stashes(output: str, limit: int = STASH_LIMIT) -> tuple[StashEntry, ...]:
    return tuple(StashEntry(line) for line in _lines(output)[:limit])


def parse_sync(output: str) -> SyncState | None:
    """Parses `git rev-list --left-right --count` output ("<ahead>\\t<behind>").

    Returns:
        SyncState | None: The counts, or None if the output is malformed.
    """
    parts = output.strip().split("\t")
    if len(parts) != 2:
        parts = output.split()
    try:
        ahead, behind = (int(p) for p in parts)
    except ValueError:
        logger.debug(f"Unparseable ahead/behind output: {output!r}")
        return None
    if ahead < 0 or behind < 0:
        return None
    return SyncState(ahead, behind)


class SnapshotService:
    """Builds a Snapshot from six independent git queries.

    A failing query only empties its own section; it never prevents the other
    sections from populating and never raises to the caller.
    """

    def __init__(self, repo: GitRepo):
        self.repo = repo

    def _status(self) -> tuple[StatusEntry, ...]:
        try:
            return parse_status(self.repo.status_porcelain())
        except CommandFailed as e:
            logger.debug(f"Status query failed in {self.repo.path}: {e}")
            return (StatusEntry.error(),)

    def _commits(self) -> tuple[CommitEntry, ...]:
        try:
            return parse_commits(self.repo.log_oneline(COMMIT_LIMIT))
        except CommandFailed as e:
            # No commits yet or not a git repo.
            logger.debug(f"Log query failed in {self.repo.path}: {e}")
            return ()

    def _branches(self) -> tuple[BranchEntry, ...]:
        try:
            return parse_branches(self.repo.branches_all())
        except CommandFailed as e:
            logger.debug(f"Branch query failed in {self.repo.path}: {e}")
            return ()

    def _remotes(self) -> tuple[RemoteEntry, ...]:
        try:
            return parse_remotes(self.repo.remotes_verbose())
        except CommandFailed as e:
            logger.debug(f"Remote query failed in {self.repo.path}: {e}")
            return ()

    def _stashes(self) -> tuple[StashEntry, ...]:
        try:
            return parse_stashes(self.repo.stash_list())
        except CommandFailed as e:
            logger.debug(f"Stash query failed in {self.repo.path}: {e}")
            return ()

    def _sync(self) -> SyncState | None:
        try:
            return parse_sync(self.repo.ahead_behind())
        except CommandFailed as e:
            # No upstream configured.
            logger.debug(f"Ahead/behind query failed in {self.repo.path}: {e}")
            return None

    def snapshot(self) -> Snapshot:
        """Runs every query and assembles a fresh Snapshot.

        Returns:
            Snapshot: The aggregated repository state.
        """
        return Snapshot(
            status=self._status(),
            commits=self._commits(),
            branches=self._branches(),
            remotes=self._remotes(),
            stashes=self._stashes(),
            sync=self._sync(),
        )
