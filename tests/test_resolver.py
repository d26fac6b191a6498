"""Tests for the TUI executable resolution chain."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gitflow_bridge import resolver
from gitflow_bridge.resolver import BinaryResolver


@pytest.fixture
def no_common_paths(mocker: MagicMock, tmp_path: Path) -> None:
    """Points the common-path fallback at locations that do not exist."""
    mocker.patch(
        "gitflow_bridge.resolver.common_install_paths",
        return_value=[tmp_path / "nowhere" / "gitflow-tui"],
    )


def _make_exe(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n")
    return path


def test_configured_path_wins_over_search_path(
    tmp_path: Path, mocker: MagicMock, no_common_paths: None
) -> None:
    configured = _make_exe(tmp_path / "custom" / "gitflow-tui")
    on_path = _make_exe(tmp_path / "bin" / "gitflow-tui")
    mocker.patch("shutil.which", return_value=str(on_path))

    assert BinaryResolver(str(configured)).resolve() == configured


def test_missing_configured_path_falls_through(
    tmp_path: Path, mocker: MagicMock, no_common_paths: None
) -> None:
    on_path = _make_exe(tmp_path / "bin" / "gitflow-tui")
    mocker.patch("shutil.which", return_value=str(on_path))

    assert BinaryResolver(str(tmp_path / "gone")).resolve() == on_path


def test_search_path_tries_candidates_in_order(
    tmp_path: Path, mocker: MagicMock, no_common_paths: None
) -> None:
    """Verifies that 'gitflow' is used only when 'gitflow-tui' is absent."""
    fallback = _make_exe(tmp_path / "bin" / "gitflow")
    mock_which = mocker.patch(
        "shutil.which", side_effect=lambda name: str(fallback) if name == "gitflow" else None
    )

    assert BinaryResolver().resolve() == fallback
    assert [c.args[0] for c in mock_which.call_args_list] == ["gitflow-tui", "gitflow"]


def test_stale_search_path_entry_is_rejected(
    tmp_path: Path, mocker: MagicMock, no_common_paths: None
) -> None:
    """Verifies that a PATH hit that does not exist on disk is ignored."""
    mocker.patch("shutil.which", return_value=str(tmp_path / "dangling"))

    assert BinaryResolver().resolve() is None


def test_search_path_wins_over_common_paths(tmp_path: Path, mocker: MagicMock) -> None:
    on_path = _make_exe(tmp_path / "bin" / "gitflow-tui")
    common = _make_exe(tmp_path / "local" / "gitflow-tui")
    mocker.patch("shutil.which", return_value=str(on_path))
    mocker.patch("gitflow_bridge.resolver.common_install_paths", return_value=[common])

    assert BinaryResolver().resolve() == on_path


def test_common_paths_checked_in_order(tmp_path: Path, mocker: MagicMock) -> None:
    second = _make_exe(tmp_path / "usr" / "bin" / "gitflow-tui")
    mocker.patch("shutil.which", return_value=None)
    mocker.patch(
        "gitflow_bridge.resolver.common_install_paths",
        return_value=[tmp_path / "missing" / "gitflow-tui", second],
    )

    assert BinaryResolver().resolve() == second


def test_resolve_is_deterministic(tmp_path: Path, mocker: MagicMock) -> None:
    mocker.patch("shutil.which", return_value=None)
    exe = _make_exe(tmp_path / "gitflow-tui")
    mocker.patch("gitflow_bridge.resolver.common_install_paths", return_value=[exe])
    binary_resolver = BinaryResolver()

    assert binary_resolver.resolve() == binary_resolver.resolve() == exe


def test_common_install_paths_unix(mocker: MagicMock, tmp_path: Path) -> None:
    mocker.patch("sys.platform", "linux")
    mocker.patch.object(Path, "home", return_value=tmp_path)

    assert resolver.common_install_paths() == [
        tmp_path / ".local" / "bin" / "gitflow-tui",
        tmp_path / "bin" / "gitflow-tui",
        Path("/usr/local/bin/gitflow-tui"),
        Path("/usr/bin/gitflow-tui"),
    ]


def test_common_install_paths_windows(mocker: MagicMock) -> None:
    mocker.patch("sys.platform", "win32")
    mocker.patch.dict("os.environ", {"ProgramFiles": "/pf"})

    assert resolver.common_install_paths() == [
        Path("/pf") / "gitflow-tui" / "gitflow-tui.exe"
    ]
