import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.color import Color, ColorParseError
from rich.console import Console, Group
from rich.live import Live
from rich.prompt import Confirm, Prompt
from rich.text import Text
from rich.tree import Tree

from .config import Config
from .constants import APP_NAME, DEFAULT_PRIMARY_COLOR, LOG_FILE
from .launcher import IntegratedSession, Session, TerminalLauncher, open_settings
from .process import CommandFailed
from .scheduler import RefreshScheduler
from .snapshot import Snapshot, SnapshotService, StatusKind
from .statusline import StatusLine, read_status_line
from .system import PreconditionFailed

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {"M": "yellow", "A": "green", "D": "red", "?": "cyan", "R": "blue"}

USER_COMMANDS = {
    "status": ["status"],
    "log": ["log", "--oneline", "-20"],
    "branch": ["branch", "-a"],
    "push": ["push"],
    "pull": ["pull"],
    "stash": ["stash"],
}
"""dict[str, list[str]]: Fixed git argument lists for passthrough commands."""

WATCH_HINT = "Enter refresh | t toggle TUI | c close TUI | r reload config | ^C quit"


def setup_logging(verbose: bool = False) -> None:
    """Configures the logging subsystem.

    Warnings go to stderr; everything at INFO (DEBUG with --verbose) is also
    written to a rotating log file.

    Args:
        verbose (bool): Enables debug-level logging.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(stream_handler)

    try:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=5
        )
    except OSError as e:
        logger.warning(f"Could not open log file {LOG_FILE}: {e}")
        return
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)


def _primary_color(config: Config) -> str:
    """Returns the configured accent colour, or the default if rich rejects it."""
    try:
        Color.parse(config.theme.primary)
        return config.theme.primary
    except ColorParseError:
        logger.warning(
            f"Invalid theme.primary '{config.theme.primary}'. Using default."
        )
        return DEFAULT_PRIMARY_COLOR


def _status_style(code: str) -> str:
    for char in code:
        if char in STATUS_STYLES:
            return STATUS_STYLES[char]
    return "white"


def render_snapshot(snapshot: Snapshot, primary: str = DEFAULT_PRIMARY_COLOR) -> Tree:
    """Builds a rich tree with one branch per snapshot section."""
    root = Tree(Text("GitFlow", style=f"bold {primary}"))

    status = root.add("[bold]Status[/bold]")
    for entry in snapshot.status:
        if entry.kind is StatusKind.FILE:
            style = _status_style(entry.code)
            status.add(Text(f"{entry.code} {entry.path}", style=style))
        elif entry.kind is StatusKind.CLEAN:
            status.add(Text(f"✔ {entry.path}", style="green"))
        elif entry.kind is StatusKind.ERROR:
            status.add(Text(f"✘ {entry.path}", style="red"))
        else:
            status.add(Text(f"... and {entry.overflow} more files", style="dim"))

    commits = root.add("[bold]Recent Commits[/bold]")
    for commit in snapshot.commits:
        commits.add(Text.assemble((commit.short_hash, primary), " ", commit.subject))

    branches = root.add("[bold]Branches[/bold]")
    for branch in snapshot.branches:
        if branch.is_current:
            branches.add(Text(f"* {branch.name}", style=f"bold {primary}"))
        else:
            branches.add(Text(f"  {branch.name}"))

    remotes = root.add("[bold]Remotes[/bold]")
    for remote in snapshot.remotes:
        remotes.add(Text(f"{remote.name}: {remote.url}"))

    stash = root.add("[bold]Stash[/bold]")
    if not snapshot.stashes:
        stash.add(Text("No stashes", style="dim"))
    for entry in snapshot.stashes:
        stash.add(Text(entry.description))

    if snapshot.sync is not None and snapshot.sync.has_changes:
        sync = snapshot.sync
        root.add(f"[bold]Sync[/bold] ↑{sync.ahead} ↓{sync.behind}")

    return root


def render_status_line(line: StatusLine | None, primary: str) -> Text:
    if line is None:
        return Text("Not a git repository", style="dim")
    style = "bold yellow" if line.dirty else f"bold {primary}"
    return Text(f"⎇ {line.render()}", style=style)


def _report(error: PreconditionFailed) -> None:
    """Prints a precondition failure and offers its remediation actions."""
    err_console.print(Text.assemble(("ERROR: ", "bold red"), error.message))
    if not error.actions:
        return

    labels = [action.label for action in error.actions]
    choice = Prompt.ask(
        "   What now?", choices=[*labels, "Cancel"], default="Cancel", console=console
    )
    for action in error.actions:
        if action.label == choice:
            action.run()


def _report_command_failed(error: CommandFailed) -> None:
    detail = error.stderr.strip() or str(error)
    err_console.print(Text.assemble(("Git command failed: ", "bold red"), detail))


def show_snapshot(session: Session) -> None:
    """Prints one snapshot of the workspace repository."""
    service = SnapshotService(session.repo())
    primary = _primary_color(session.config)
    console.print(render_snapshot(service.snapshot(), primary))


def _wait_for_tui(launcher: TerminalLauncher, terminal: IntegratedSession) -> None:
    try:
        terminal.process.wait()
    except KeyboardInterrupt:
        launcher.close()
    finally:
        launcher.session.terminal_closed()


def watch(session: Session, launcher: TerminalLauncher) -> None:
    """Keeps a live snapshot on screen, refreshed on the configured interval.

    Each line typed on stdin is a key command: empty refreshes, `t` toggles
    the TUI, `c` closes it and `r` re-reads the configuration. Failures are
    reported and the loop keeps running.
    """
    repo = session.repo()
    service = SnapshotService(repo)
    primary = _primary_color(session.config)

    with Live(console=console, auto_refresh=False) as live:

        def _show(snapshot: Snapshot) -> None:
            line = render_status_line(read_status_line(repo), primary)
            hint = Text(WATCH_HINT, style="dim")
            live.update(
                Group(line, render_snapshot(snapshot, primary), hint), refresh=True
            )

        scheduler = RefreshScheduler(
            service.snapshot, _show, interval=session.config.refresh.interval
        )
        scheduler.user_refresh()
        scheduler.start()
        try:
            while True:
                key = console.input().strip().lower()
                try:
                    if key == "t":
                        terminal = launcher.toggle()
                        if terminal is not None:
                            # The integrated TUI owns the terminal until it exits.
                            scheduler.stop()
                            live.stop()
                            try:
                                _wait_for_tui(launcher, terminal)
                            finally:
                                live.start(refresh=True)
                                scheduler.start()
                    elif key == "c":
                        launcher.close()
                    elif key == "r":
                        session.reconfigure(Config.reload(session.workspace))
                        primary = _primary_color(session.config)
                        scheduler.interval = session.config.refresh.interval
                        logger.info("Configuration reloaded")
                except PreconditionFailed as e:
                    _report(e)
                except CommandFailed as e:
                    _report_command_failed(e)
                scheduler.user_refresh()
        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            scheduler.stop()


def open_tui(launcher: TerminalLauncher) -> None:
    """Launches the TUI and, in integrated mode, waits for it to exit."""
    terminal = launcher.open()
    if terminal is None:
        console.print(
            "[bold green]SUCCESS:[/bold green] Opened in a new terminal window."
        )
        return
    _wait_for_tui(launcher, terminal)


def run_git(launcher: TerminalLauncher, args: list[str]) -> None:
    """Runs a user git command, showing its output verbatim."""
    result = launcher.run_command(args)
    if result.stderr.strip():
        err_console.print(Text(result.stderr.rstrip(), style="yellow"))
    if result.stdout.strip():
        console.print(Text(result.stdout.rstrip()))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME, description="Inspect a git repository and launch GitFlow TUI."
    )
    parser.add_argument(
        "-C",
        "--workspace",
        type=Path,
        default=None,
        help="Workspace folder (default: current directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("snapshot", help="Show repository state once (default)")
    subparsers.add_parser("watch", help="Show repository state, refreshed live")
    subparsers.add_parser("statusline", help="Print a one-line summary")

    open_parser = subparsers.add_parser("open", help="Launch GitFlow TUI")
    mode = open_parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--external", action="store_true", help="Use a separate terminal window"
    )
    mode.add_argument(
        "--integrated", action="store_true", help="Run attached to this terminal"
    )

    for name, git_args in USER_COMMANDS.items():
        subparsers.add_parser(name, help=f"git {' '.join(git_args)}")

    commit_parser = subparsers.add_parser("commit", help="git commit -m <message>")
    commit_parser.add_argument("-m", "--message", help="Commit message")

    checkout_parser = subparsers.add_parser("checkout", help="git checkout <branch>")
    checkout_parser.add_argument("branch", nargs="?", help="Branch name")

    subparsers.add_parser("config", help="Open the global config file")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the gitflow-bridge CLI."""
    args = _build_parser().parse_args(argv)
    setup_logging(args.verbose)

    workspace = (args.workspace or Path.cwd()).resolve()
    config = Config.load(workspace if workspace.is_dir() else None)
    session = Session(workspace, config)
    launcher = TerminalLauncher(
        session, confirm=lambda question: Confirm.ask(question, console=console)
    )

    try:
        if args.command == "open":
            if args.external or args.integrated:
                config.terminal.integrated = args.integrated
            open_tui(launcher)
        elif args.command == "watch":
            watch(session, launcher)
        elif args.command == "statusline":
            line = read_status_line(session.repo())
            console.print(render_status_line(line, _primary_color(config)))
        elif args.command in USER_COMMANDS:
            run_git(launcher, USER_COMMANDS[args.command])
        elif args.command == "commit":
            message = args.message or Prompt.ask(
                "Enter commit message", console=console
            )
            if not message:
                return 0
            run_git(launcher, ["commit", "-m", message])
        elif args.command == "checkout":
            branch = args.branch or Prompt.ask("Enter branch name", console=console)
            if not branch:
                return 0
            run_git(launcher, ["checkout", branch])
        elif args.command == "config":
            open_settings()
        else:
            show_snapshot(session)
    except PreconditionFailed as e:
        _report(e)
        return 1
    except CommandFailed as e:
        _report_command_failed(e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
