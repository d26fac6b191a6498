"""gitflow-bridge: repository snapshots and GitFlow TUI launching for editor hosts.

This package derives immutable snapshots of git repository state from the git
command-line tool, resolves the external GitFlow TUI executable, and launches
it either attached to the host or in a separate OS terminal window.
"""

from . import (
    cli,
    config,
    constants,
    git_wrapper,
    launcher,
    process,
    resolver,
    scheduler,
    snapshot,
    statusline,
    system,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "git_wrapper",
    "launcher",
    "process",
    "resolver",
    "scheduler",
    "snapshot",
    "statusline",
    "system",
]
