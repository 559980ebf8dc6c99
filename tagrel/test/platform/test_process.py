"""Tests for tagrel.platform.process module."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tagrel.core.result import Err, Ok
from tagrel.platform.process import ProcessError, run, which


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(
            command=("git", "status"),
            returncode=1,
            stdout="",
            stderr="fatal: not a git repository",
        )
        assert str(error) == "git status failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("git", "-C", "/repo", "push", "origin", "v1"),
            returncode=1,
            stdout="",
            stderr="rejected",
        )
        assert str(error) == "git -C /repo ... failed (exit 1)"

    def test_str_timed_out(self) -> None:
        error = ProcessError(("git", "fetch"), -1, "", "", timed_out=True)
        assert str(error) == "git fetch timed out"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestRun:
    @patch("subprocess.run")
    def test_success_returns_stdout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["git"], 0, "hello\n", "")

        result = run(["git", "status"], cwd=tmp_path, timeout=5.0)

        assert result == Ok("hello\n")
        kwargs = mock_run.call_args.kwargs
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["timeout"] == 5.0
        assert kwargs["capture_output"] is True
        assert kwargs["check"] is False

    @patch("subprocess.run")
    def test_failure_returns_error(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = subprocess.CompletedProcess(["git"], 128, "", "fatal: nope")

        result = run(["git", "status"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == 128
        assert result.error.stderr == "fatal: nope"
        assert result.error.command == ("git", "status")
        assert result.error.timed_out is False

    @patch("subprocess.run")
    def test_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(
            cmd=["git", "fetch"], timeout=1.5, output=b"partial"
        )

        result = run(["git", "fetch"], cwd=tmp_path, timeout=1.5)

        assert isinstance(result, Err)
        assert result.error.timed_out is True
        assert result.error.stdout == "partial"
        assert "timed out after 1.5s" in result.error.stderr

    @patch("subprocess.run")
    def test_missing_executable(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "git")

        result = run(["git", "status"], cwd=tmp_path)

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert "No such file" in result.error.stderr


class TestWhich:
    def test_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        assert which("git") == Path("/usr/bin/git")

    def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("shutil.which", lambda name: None)
        assert which("git") is None
