"""Tests for git/repository.py."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

from tagrel.core.config import GitTimeouts
from tagrel.core.result import Err, Ok
from tagrel.git.repository import GitStatus, Repository, StatusEntry, parse_remote_tags


def make_completed_process(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    """Create a mock CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"],
        returncode=returncode,
        stdout=stdout,
        stderr=stderr,
    )


def git_args(mock_run: MagicMock) -> list[str]:
    """Arguments after `git -C <path>` of the last call."""
    cmd = mock_run.call_args.args[0]
    assert cmd[:2] == ["git", "-C"]
    return cmd[3:]


# =============================================================================
# GitStatus / StatusEntry
# =============================================================================


class TestGitStatus:
    def test_clean(self) -> None:
        status = GitStatus(branch="main")
        assert status.is_clean is True
        assert status.describe() == "clean"

    def test_describe_counts_tracked_and_untracked(self) -> None:
        entries = (
            StatusEntry(xy="M ", path="staged.py"),
            StatusEntry(xy=" M", path="unstaged.py"),
            StatusEntry(xy="??", path="new.py"),
        )
        status = GitStatus(branch="main", entries=entries)

        assert status.is_clean is False
        assert status.tracked_count == 2
        assert status.untracked_count == 1
        assert status.describe() == "2 changed, 1 untracked"

    def test_only_untracked(self) -> None:
        status = GitStatus(branch="main", entries=(StatusEntry(xy="??", path="a"),))
        assert status.describe() == "1 untracked"


# =============================================================================
# parse_remote_tags
# =============================================================================


class TestParseRemoteTags:
    def test_lightweight_and_annotated(self) -> None:
        output = (
            "1111111111111111111111111111111111111111\trefs/tags/v1.0.0\n"
            "2222222222222222222222222222222222222222\trefs/tags/v1.1.0\n"
            "3333333333333333333333333333333333333333\trefs/tags/v1.1.0^{}\n"
        )
        assert parse_remote_tags(output) == frozenset({"v1.0.0", "v1.1.0"})

    def test_tags_with_slashes(self) -> None:
        output = "abc\trefs/tags/release/2024.1\n"
        assert parse_remote_tags(output) == frozenset({"release/2024.1"})

    def test_ignores_noise(self) -> None:
        output = "\nabc\trefs/heads/main\nwarning: redirecting\n"
        assert parse_remote_tags(output) == frozenset()

    def test_no_prefix_matching(self) -> None:
        tags = parse_remote_tags("abc\trefs/tags/v1.0.0-rc1\n")
        assert "v1.0.0" not in tags


# =============================================================================
# Repository - mocked subprocess
# =============================================================================


class TestRepository:
    def test_is_work_tree_missing_dir(self, tmp_path: Path) -> None:
        with patch("subprocess.run") as mock_run:
            assert Repository(tmp_path / "missing").is_work_tree() is False
            mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_is_work_tree_true(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout=f"{tmp_path}\n")

        assert Repository(tmp_path).is_work_tree() is True
        assert git_args(mock_run) == ["rev-parse", "--show-toplevel"]

    @patch("subprocess.run")
    def test_is_work_tree_subdirectory_of_other_repo(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        nested = tmp_path / "not-a-repo"
        nested.mkdir()
        mock_run.return_value = make_completed_process(stdout=f"{tmp_path}\n")

        assert Repository(nested).is_work_tree() is False

    @patch("subprocess.run")
    def test_is_work_tree_empty_output(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="\n")

        assert Repository(tmp_path).is_work_tree() is False

    @patch("subprocess.run")
    def test_is_work_tree_not_a_repo(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            returncode=128, stderr="fatal: not a git repository"
        )

        assert Repository(tmp_path).is_work_tree() is False

    @patch("subprocess.run")
    def test_status_clean(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="## main...origin/main\n")

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.branch == "main"
        assert result.value.is_clean is True

    @patch("subprocess.run")
    def test_status_with_changes(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            stdout="## main...origin/main [behind 2]\nM  staged.py\n?? new.py\n"
        )

        result = Repository(tmp_path).status()

        assert isinstance(result, Ok)
        assert result.value.is_clean is False
        assert result.value.entries == (
            StatusEntry(xy="M ", path="staged.py"),
            StatusEntry(xy="??", path="new.py"),
        )

    @patch("subprocess.run")
    def test_status_error(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(
            returncode=128, stderr="fatal: not a git repository"
        )

        result = Repository(tmp_path).status()

        assert isinstance(result, Err)
        assert result.error.command == "status"
        assert "not a git repository" in result.error.message
        assert result.error.returncode == 128

    @patch("subprocess.run")
    def test_local_branches(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="develop\nmain\nfeature/x\n")

        result = Repository(tmp_path).local_branches()

        assert result == Ok(frozenset({"develop", "main", "feature/x"}))
        assert git_args(mock_run) == ["for-each-ref", "--format=%(refname:short)", "refs/heads/"]

    @patch("subprocess.run")
    def test_checkout_fetch_pull_commands(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path)

        repo.checkout("main")
        assert git_args(mock_run) == ["checkout", "main"]
        repo.fetch("origin")
        assert git_args(mock_run) == ["fetch", "origin"]
        repo.pull_ff()
        assert git_args(mock_run) == ["pull", "--ff-only"]

    @patch("subprocess.run")
    def test_remote_tags(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="abc\trefs/tags/v2.0.0\n")

        result = Repository(tmp_path).remote_tags("upstream")

        assert result == Ok(frozenset({"v2.0.0"}))
        assert git_args(mock_run) == ["ls-remote", "--tags", "upstream"]

    @patch("subprocess.run")
    def test_create_tag_checks_ref_format_then_tags(
        self, mock_run: MagicMock, tmp_path: Path
    ) -> None:
        mock_run.return_value = make_completed_process()

        result = Repository(tmp_path).create_tag("v1.0.0")

        assert isinstance(result, Ok)
        calls = [c.args[0][3:] for c in mock_run.call_args_list]
        assert calls == [["check-ref-format", "refs/tags/v1.0.0"], ["tag", "v1.0.0"]]

    @patch("subprocess.run")
    def test_create_tag_failure(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = [
            make_completed_process(),
            make_completed_process(returncode=128, stderr="fatal: tag 'v1.0.0' already exists\n"),
        ]

        result = Repository(tmp_path).create_tag("v1.0.0")

        assert isinstance(result, Err)
        assert result.error.command == "tag v1.0.0"
        assert result.error.message == "fatal: tag 'v1.0.0' already exists"

    @patch("subprocess.run")
    def test_create_tag_rejects_option_like_name(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(stdout="v0.9.0\n")

        result = Repository(tmp_path).create_tag("--list")

        assert isinstance(result, Err)
        assert result.error.message == "invalid tag name '--list'"
        mock_run.assert_not_called()

    @patch("subprocess.run")
    def test_create_tag_rejects_bad_ref_name(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)

        result = Repository(tmp_path).create_tag("v1..0")

        assert isinstance(result, Err)
        assert result.error.message == "invalid tag name 'v1..0'"
        assert git_args(mock_run) == ["check-ref-format", "refs/tags/v1..0"]
        assert mock_run.call_count == 1

    @patch("subprocess.run")
    def test_push_tag(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()

        result = Repository(tmp_path).push_tag("origin", "v1.0.0")

        assert isinstance(result, Ok)
        assert git_args(mock_run) == ["push", "origin", "refs/tags/v1.0.0"]

    @patch("subprocess.run")
    def test_failure_without_stderr_uses_fallback(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process(returncode=1)

        result = Repository(tmp_path).fetch("origin")

        assert isinstance(result, Err)
        assert result.error.message == "fetch origin failed"

    @patch("subprocess.run")
    def test_network_commands_use_network_timeout(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.return_value = make_completed_process()
        repo = Repository(tmp_path, timeouts=GitTimeouts(local=5.0, network=60.0))

        repo.fetch("origin")
        assert mock_run.call_args.kwargs["timeout"] == 60.0
        repo.push_tag("origin", "v1")
        assert mock_run.call_args.kwargs["timeout"] == 60.0
        repo.remote_tags("origin")
        assert mock_run.call_args.kwargs["timeout"] == 60.0
        repo.create_tag("v1")
        assert mock_run.call_args.kwargs["timeout"] == 5.0

    @patch("subprocess.run")
    def test_timeout_surfaces_as_error(self, mock_run: MagicMock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(cmd=["git"], timeout=60.0)

        result = Repository(tmp_path).pull_ff()

        assert isinstance(result, Err)
        assert "timed out" in result.error.message
        assert result.error.returncode == -1
