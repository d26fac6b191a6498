"""Tests for the session state and the TUI launcher."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitflow_bridge.config import Config
from gitflow_bridge.launcher import (
    BinaryNotFound,
    IntegratedSession,
    NoWorkspace,
    NotARepository,
    Session,
    TerminalLauncher,
)
from gitflow_bridge.process import CommandFailed, CommandResult
from gitflow_bridge.system import NoTerminalAvailable

BINARY = Path("/usr/local/bin/gitflow-tui")


@pytest.fixture
def runner() -> MagicMock:
    """A ProcessRunner double whose git calls succeed."""
    mock = MagicMock()
    mock.run.return_value = CommandResult(".git\n", "", 0)
    mock.spawn.return_value.poll.return_value = None
    mock.spawn.return_value.pid = 4242
    return mock


@pytest.fixture
def resolve(mocker: MagicMock) -> MagicMock:
    """Patches binary resolution to find BINARY."""
    return mocker.patch(
        "gitflow_bridge.launcher.BinaryResolver.resolve", return_value=BINARY
    )


def _launcher(
    workspace: Path | None, runner: MagicMock, **kwargs: object
) -> TerminalLauncher:
    session = Session(workspace, Config(), runner)
    return TerminalLauncher(session, system=kwargs.pop("system", MagicMock()), **kwargs)  # type: ignore[arg-type]


def test_open_integrated_spawns_with_marker(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    launcher = _launcher(tmp_path, runner)

    terminal = launcher.open()

    assert isinstance(terminal, IntegratedSession)
    args, kwargs = runner.spawn.call_args
    assert args[0] == [str(BINARY)]
    assert kwargs["cwd"] == tmp_path
    assert kwargs["env"]["GITFLOW_HOST"] == "1"
    assert launcher.session.has_terminal()


def test_open_integrated_replaces_previous_session(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    """Verifies that only one integrated session is live at a time."""
    launcher = _launcher(tmp_path, runner)
    first = launcher.open()
    assert first is not None
    first_process = first.process

    launcher.open()

    first_process.terminate.assert_called_once()
    assert runner.spawn.call_count == 2


def test_open_external_delegates_to_system_strategy(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    strategy = MagicMock()
    launcher = _launcher(tmp_path, runner, system=strategy)
    launcher.session.config.terminal.integrated = False

    assert launcher.open() is None

    cwd, binary, env = strategy.open_terminal.call_args.args
    assert (cwd, binary, env["GITFLOW_HOST"]) == (tmp_path, BINARY, "1")
    runner.spawn.assert_not_called()


def test_open_external_propagates_missing_terminal(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    strategy = MagicMock()
    strategy.open_terminal.side_effect = NoTerminalAvailable(["xterm"])
    launcher = _launcher(tmp_path, runner, system=strategy)
    launcher.session.config.terminal.integrated = False

    with pytest.raises(NoTerminalAvailable):
        launcher.open()


def test_open_without_binary_offers_remediation(
    tmp_path: Path, runner: MagicMock, mocker: MagicMock
) -> None:
    mocker.patch("gitflow_bridge.launcher.BinaryResolver.resolve", return_value=None)
    launcher = _launcher(tmp_path, runner)

    with pytest.raises(BinaryNotFound) as excinfo:
        launcher.open()

    assert [a.label for a in excinfo.value.actions] == ["Configure", "Install"]


def test_remediation_actions_open_settings_and_guide(mocker: MagicMock) -> None:
    mock_settings = mocker.patch("gitflow_bridge.launcher.open_settings")
    mock_browser = mocker.patch("webbrowser.open", return_value=True)

    configure, install = BinaryNotFound().actions
    configure.run()
    install.run()

    mock_settings.assert_called_once_with("binary_path")
    mock_browser.assert_called_once_with("https://github.com/gitflow/tui#installation")


def test_missing_binary_and_workspace_reported_per_operation(
    runner: MagicMock, mocker: MagicMock
) -> None:
    """Verifies that open() reports the binary while run_command() reports the workspace."""
    mocker.patch("gitflow_bridge.launcher.BinaryResolver.resolve", return_value=None)
    launcher = _launcher(None, runner)

    with pytest.raises(BinaryNotFound):
        launcher.open()
    with pytest.raises(NoWorkspace):
        launcher.run_command(["status"])


def test_open_without_workspace(runner: MagicMock, resolve: MagicMock) -> None:
    with pytest.raises(NoWorkspace) as excinfo:
        _launcher(None, runner).open()

    assert excinfo.value.message == "No workspace folder open"
    assert excinfo.value.actions == []


def test_open_declined_init_has_no_side_effects(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    runner.run.side_effect = CommandFailed(["git"], "fatal: not a git repository", 128)
    confirm = MagicMock(return_value=False)
    launcher = _launcher(tmp_path, runner, confirm=confirm)

    with pytest.raises(NotARepository):
        launcher.open()

    confirm.assert_called_once()
    issued = [c.args[0] for c in runner.run.call_args_list]
    assert ["git", "init"] not in issued
    runner.spawn.assert_not_called()


def test_open_accepted_init_then_launches(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    runner.run.side_effect = [
        CommandFailed(["git"], "fatal: not a git repository", 128),
        CommandResult("Initialized empty Git repository\n", "", 0),
    ]
    launcher = _launcher(tmp_path, runner, confirm=lambda _q: True)

    launcher.open()

    assert runner.run.call_args_list[1].args[0] == ["git", "init"]
    runner.spawn.assert_called_once()


def test_toggle_closes_live_session_then_reopens(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    launcher = _launcher(tmp_path, runner)

    opened = launcher.toggle()
    assert opened is not None

    assert launcher.toggle() is None
    opened.process.terminate.assert_called_once()
    assert not launcher.session.has_terminal()

    launcher.toggle()
    assert runner.spawn.call_count == 2


def test_exited_session_counts_as_no_session(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    launcher = _launcher(tmp_path, runner)
    launcher.open()
    runner.spawn.return_value.poll.return_value = 0  # TUI exited

    assert launcher.session.has_terminal() is False


def test_terminal_closed_signal_clears_handle(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    launcher = _launcher(tmp_path, runner)
    launcher.open()

    launcher.session.terminal_closed()

    assert launcher.session.terminal is None


def test_binary_cached_until_invalidated(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    session = Session(tmp_path, Config(), runner)

    assert session.binary == BINARY
    assert session.binary == BINARY
    assert resolve.call_count == 1

    session.invalidate_binary()
    assert session.binary == BINARY
    assert resolve.call_count == 2


def test_reconfigure_invalidates_and_closes(
    tmp_path: Path, runner: MagicMock, resolve: MagicMock
) -> None:
    launcher = _launcher(tmp_path, runner)
    terminal = launcher.open()
    assert terminal is not None
    new_config = Config()
    new_config.core.binary_path = "/opt/other"

    launcher.session.reconfigure(new_config)

    terminal.process.terminate.assert_called_once()
    assert launcher.session.terminal is None
    assert launcher.session.config is new_config
    launcher.session.binary
    assert resolve.call_count == 2


def test_run_command_returns_output_and_refreshes(
    tmp_path: Path, runner: MagicMock
) -> None:
    runner.run.return_value = CommandResult("On branch main\n", "", 0)
    on_refresh = MagicMock()
    launcher = _launcher(tmp_path, runner, on_refresh=on_refresh)

    result = launcher.run_command(["status"])

    assert result.stdout == "On branch main\n"
    runner.run.assert_called_once_with(["git", "status"], cwd=tmp_path)
    on_refresh.assert_called_once()


def test_run_command_failure_is_verbatim_and_skips_refresh(
    tmp_path: Path, runner: MagicMock
) -> None:
    runner.run.side_effect = CommandFailed(
        ["git", "checkout", "nope"], "error: pathspec 'nope' did not match\n", 1
    )
    on_refresh = MagicMock()
    launcher = _launcher(tmp_path, runner, on_refresh=on_refresh)

    with pytest.raises(CommandFailed) as excinfo:
        launcher.run_command(["checkout", "nope"])

    assert excinfo.value.stderr == "error: pathspec 'nope' did not match\n"
    on_refresh.assert_not_called()


def test_open_settings_creates_template(tmp_path: Path, mocker: MagicMock) -> None:
    from gitflow_bridge import launcher

    config_file = tmp_path / "cfg" / "config.toml"
    mocker.patch("gitflow_bridge.launcher.CONFIG_FILE", config_file)
    mocker.patch.dict("os.environ", {"EDITOR": "vim"})
    mock_run = mocker.patch("subprocess.run")

    launcher.open_settings("binary_path")

    assert "binary_path" in config_file.read_text()
    mock_run.assert_called_once_with(["vim", str(config_file)])
