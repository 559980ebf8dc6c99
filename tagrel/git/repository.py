"""Git repository abstraction.

This module provides the Repository class: the git operations a release
needs on one working copy. All fallible operations return Result types.

Usage:
    repo = Repository(Path("~/projects/svc-a").expanduser())

    match repo.status():
        case Ok(status) if status.is_clean:
            print(f"{status.branch}: clean")
        case Ok(status):
            print(f"{len(status.entries)} uncommitted changes")
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tagrel.core.config import GitTimeouts
from tagrel.core.result import Err, Ok, Result
from tagrel.platform.process import ProcessError
from tagrel.platform.process import run as run_process

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "parse_remote_tags",
]

_NETWORK_COMMANDS = frozenset({"fetch", "pull", "push", "ls-remote"})
_TAG_REF_PREFIX = "refs/tags/"
_PEELED_SUFFIX = "^{}"


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1

    def __str__(self) -> str:
        return f"git {self.command}: {self.message}"


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """A single entry in git status.

    Attributes:
        xy: Two-character status code (e.g., "M ", " M", "??")
        path: File path
    """

    xy: str
    path: str

    @property
    def is_untracked(self) -> bool:
        return self.xy == "??"


@dataclass(frozen=True, slots=True)
class GitStatus:
    """Parsed `git status --porcelain=v1 -b` output.

    Attributes:
        branch: Current branch name
        entries: All status entries (staged, unstaged, untracked)
    """

    branch: str
    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)

    @property
    def is_clean(self) -> bool:
        """True if working tree has no tracked or untracked changes."""
        return len(self.entries) == 0

    @property
    def tracked_count(self) -> int:
        return sum(1 for e in self.entries if not e.is_untracked)

    @property
    def untracked_count(self) -> int:
        return sum(1 for e in self.entries if e.is_untracked)

    def describe(self) -> str:
        """Short summary like '2 changed, 1 untracked'."""
        parts: list[str] = []
        if self.tracked_count:
            parts.append(f"{self.tracked_count} changed")
        if self.untracked_count:
            parts.append(f"{self.untracked_count} untracked")
        return ", ".join(parts) or "clean"


def parse_remote_tags(output: str) -> frozenset[str]:
    """Extract tag names from `git ls-remote --tags` output.

    Peeled entries (`refs/tags/v1.0.0^{}`) of annotated tags fold into
    their tag name.
    """
    tags: set[str] = set()
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        ref = parts[1]
        if not ref.startswith(_TAG_REF_PREFIX):
            continue
        name = ref.removeprefix(_TAG_REF_PREFIX).removesuffix(_PEELED_SUFFIX)
        if name:
            tags.add(name)
    return frozenset(tags)


class Repository:
    """Git working copy abstraction.

    Provides the operations needed to validate, sync, tag and push one
    repository. Every command runs with a timeout: `timeouts.network` for
    commands that talk to a remote, `timeouts.local` otherwise.

    Attributes:
        path: Path to the working copy
        timeouts: Subprocess timeouts
    """

    def __init__(self, path: Path, *, timeouts: GitTimeouts | None = None) -> None:
        self.path = path
        self.timeouts = timeouts or GitTimeouts()

    def is_work_tree(self) -> bool:
        """Check if path is the top level of a git working copy.

        A subdirectory of some other working copy does not count. Returns
        False if the directory does not exist or git fails.
        """
        if not self.path.is_dir():
            return False
        match self._run(["rev-parse", "--show-toplevel"]):
            case Ok(stdout) if stdout.strip():
                return Path(stdout.strip()).resolve() == self.path.resolve()
            case _:
                return False

    def status(self) -> Result[GitStatus, GitError]:
        """Get working copy status.

        Returns:
            Ok(GitStatus) on success
            Err(GitError) on failure
        """
        return (
            self._run(["status", "--porcelain=v1", "-b"])
            .map(self._parse_status)
            .map_err(lambda e: _git_error("status", e, "git status failed"))
        )

    def local_branches(self) -> Result[frozenset[str], GitError]:
        """List local branch names."""
        return (
            self._run(["for-each-ref", "--format=%(refname:short)", "refs/heads/"])
            .map(lambda out: frozenset(ln.strip() for ln in out.splitlines() if ln.strip()))
            .map_err(lambda e: _git_error("for-each-ref", e, "listing branches failed"))
        )

    def checkout(self, branch: str) -> Result[str, GitError]:
        return self._simple(["checkout", branch], f"checkout {branch}")

    def fetch(self, remote: str) -> Result[str, GitError]:
        return self._simple(["fetch", remote], f"fetch {remote}")

    def pull_ff(self) -> Result[str, GitError]:
        """Pull with fast-forward only.

        Returns:
            Ok(output) on success
            Err(GitError) on failure (diverged, no upstream, network)
        """
        return self._simple(["pull", "--ff-only"], "pull --ff-only")

    def remote_tags(self, remote: str) -> Result[frozenset[str], GitError]:
        """List tag names that exist on the remote."""
        return (
            self._run(["ls-remote", "--tags", remote])
            .map(parse_remote_tags)
            .map_err(
                lambda e: _git_error(f"ls-remote --tags {remote}", e, "listing remote tags failed")
            )
        )

    def create_tag(self, tag: str) -> Result[str, GitError]:
        """Create a lightweight tag at HEAD.

        The name must pass `git check-ref-format` as a tag ref and must not
        start with "-", so `git tag` never parses it as an option.
        """
        command = f"tag {tag}"
        if tag.startswith("-"):
            return Err(GitError(command=command, message=f"invalid tag name '{tag}'"))
        match self._run(["check-ref-format", f"{_TAG_REF_PREFIX}{tag}"]):
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=f"invalid tag name '{tag}'",
                        returncode=e.returncode,
                    )
                )
            case Ok(_):
                pass
        return self._simple(["tag", tag], command)

    def push_tag(self, remote: str, tag: str) -> Result[str, GitError]:
        """Push exactly refs/tags/<tag> to the remote."""
        return self._simple(["push", remote, f"{_TAG_REF_PREFIX}{tag}"], f"push {remote} {tag}")

    def _simple(self, args: list[str], command: str) -> Result[str, GitError]:
        return (
            self._run(args)
            .map(str.strip)
            .map_err(lambda e: _git_error(command, e, f"{command} failed"))
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            self.timeouts.network if command in _NETWORK_COMMANDS else self.timeouts.local
        )
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)

    def _parse_status(self, output: str) -> GitStatus:
        lines = [ln for ln in output.splitlines() if ln.strip()]
        if not lines:
            return GitStatus(branch="")

        branch = ""
        if lines[0].startswith("##"):
            branch = self._parse_branch_line(lines.pop(0))

        entries = tuple(
            StatusEntry(xy=line[:2], path=line[3:]) for line in lines if len(line) >= 4
        )
        return GitStatus(branch=branch, entries=entries)

    def _parse_branch_line(self, line: str) -> str:
        """Parse branch line: ## branch...upstream [info]"""
        s = line[2:].strip()
        s = s.split(" [", 1)[0].strip()
        return s.split("...", 1)[0].strip()


def _git_error(command: str, error: ProcessError, fallback: str) -> GitError:
    message = error.stderr.strip() or error.stdout.strip() or fallback
    return GitError(command=command, message=message, returncode=error.returncode)
