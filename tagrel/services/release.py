"""Batch release tagging.

Each mapping entry goes through a fixed sequence of stages:

    VALIDATE -> SYNC_BRANCH -> TAG -> PUSH

VALIDATE requires a clean git working copy. SYNC_BRANCH checks out `main`
(or `master` when there is no `main`), fetches and fast-forwards it. TAG
skips tags that already exist on the remote and otherwise tags HEAD. PUSH
runs only when pushing is enabled. A failure at any stage finishes that
repository with a skip outcome; the run always moves on to the next entry.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum, StrEnum
from pathlib import Path
from typing import Protocol

from tagrel.core.config import RunConfig
from tagrel.core.errors import ErrorCode
from tagrel.core.mapping import ReleaseEntry, ReleaseMapping
from tagrel.core.result import Err, Ok, Result
from tagrel.git.repository import GitError, GitStatus, Repository
from tagrel.output.console import ConsoleProtocol, Style
from tagrel.services.fsm import StepOutcome, advance, finish, run_steps

__all__ = [
    "BRANCH_CANDIDATES",
    "Outcome",
    "ReleaseRepo",
    "ReleaseSummary",
    "RepoResult",
    "Stage",
    "print_summary",
    "release_all",
    "release_repo",
]

# Checked in order; the first existing branch wins.
BRANCH_CANDIDATES = ("main", "master")


class ReleaseRepo(Protocol):
    """Git operations needed to release one working copy."""

    def is_work_tree(self) -> bool: ...

    def status(self) -> Result[GitStatus, GitError]: ...

    def local_branches(self) -> Result[frozenset[str], GitError]: ...

    def checkout(self, branch: str) -> Result[str, GitError]: ...

    def fetch(self, remote: str) -> Result[str, GitError]: ...

    def pull_ff(self) -> Result[str, GitError]: ...

    def remote_tags(self, remote: str) -> Result[frozenset[str], GitError]: ...

    def create_tag(self, tag: str) -> Result[str, GitError]: ...

    def push_tag(self, remote: str, tag: str) -> Result[str, GitError]: ...


class Stage(StrEnum):
    VALIDATE = "validate"
    SYNC_BRANCH = "sync-branch"
    TAG = "tag"
    PUSH = "push"


class Outcome(Enum):
    """Final state of one mapping entry."""

    TAGGED_AND_PUSHED = "tagged-and-pushed"
    TAGGED_ONLY = "tagged-only"
    SKIPPED_ALREADY_TAGGED = "skipped-already-tagged"
    SKIPPED_DIRTY = "skipped-dirty"
    SKIPPED_NOT_A_REPO = "skipped-not-a-repo"
    SKIPPED_NO_BRANCH = "skipped-no-branch"
    SKIPPED_SYNC_FAILED = "skipped-sync-failed"
    SKIPPED_TAG_FAILED = "skipped-tag-failed"
    SKIPPED_PUSH_FAILED = "skipped-push-failed"
    SKIPPED_INVALID_ENTRY = "skipped-invalid-entry"

    def __str__(self) -> str:
        return self.value

    @property
    def is_success(self) -> bool:
        return self in (Outcome.TAGGED_AND_PUSHED, Outcome.TAGGED_ONLY)

    @property
    def is_failure(self) -> bool:
        """True for repository-level failures.

        Already-tagged repositories and invalid mapping entries are skips,
        not failures.
        """
        return not self.is_success and self not in (
            Outcome.SKIPPED_ALREADY_TAGGED,
            Outcome.SKIPPED_INVALID_ENTRY,
        )


@dataclass(frozen=True, slots=True)
class RepoResult:
    """What happened to one mapping entry.

    Attributes:
        entry: The mapping entry
        path: Resolved working copy path
        outcome: Final outcome
        stage: Stage that produced the outcome (None for invalid entries)
        branch: Branch that was synced, if any
        message: Detail for failures and skips
    """

    entry: ReleaseEntry
    path: Path
    outcome: Outcome
    stage: Stage | None = None
    branch: str | None = None
    message: str = ""


@dataclass(frozen=True, slots=True)
class ReleaseSummary:
    results: tuple[RepoResult, ...] = ()

    @property
    def succeeded(self) -> list[RepoResult]:
        return [r for r in self.results if r.outcome.is_success]

    @property
    def failed(self) -> list[RepoResult]:
        return [r for r in self.results if r.outcome.is_failure]

    @property
    def skipped(self) -> list[RepoResult]:
        """Entries skipped without counting as failures."""
        return [r for r in self.results if not r.outcome.is_success and not r.outcome.is_failure]

    def exit_code(self, *, strict: bool) -> ErrorCode:
        if strict and self.failed:
            return ErrorCode.RELEASE_INCOMPLETE
        return ErrorCode.OK


@dataclass(frozen=True, slots=True)
class _RepoState:
    entry: ReleaseEntry
    path: Path
    stage: Stage
    branch: str | None = None


type _Step = StepOutcome[_RepoState, RepoResult]


class _RepoRelease:
    """Stage handlers for one repository."""

    def __init__(self, repo: ReleaseRepo, config: RunConfig, console: ConsoleProtocol) -> None:
        self._repo = repo
        self._config = config
        self._console = console

    def handlers(self) -> dict[Stage, Callable[[_RepoState], _Step]]:
        return {
            Stage.VALIDATE: self._validate,
            Stage.SYNC_BRANCH: self._sync_branch,
            Stage.TAG: self._tag,
            Stage.PUSH: self._push,
        }

    def _validate(self, state: _RepoState) -> _Step:
        if not self._repo.is_work_tree():
            return self._fail(
                state,
                Outcome.SKIPPED_NOT_A_REPO,
                f"'{state.path}' is not a valid Git repository",
            )

        match self._repo.status():
            case Err(e):
                return self._fail(
                    state, Outcome.SKIPPED_DIRTY, f"cannot read status of '{state.path}': {e}"
                )
            case Ok(status) if not status.is_clean:
                return self._fail(
                    state,
                    Outcome.SKIPPED_DIRTY,
                    f"'{state.path}' is dirty ({status.describe()}), please clean and try again",
                )
            case Ok(_):
                return advance(replace(state, stage=Stage.SYNC_BRANCH))

    def _sync_branch(self, state: _RepoState) -> _Step:
        match self._repo.local_branches():
            case Err(e):
                return self._fail(state, Outcome.SKIPPED_NO_BRANCH, str(e))
            case Ok(branches):
                pass

        branch = next((b for b in BRANCH_CANDIDATES if b in branches), None)
        if branch is None:
            return self._fail(
                state,
                Outcome.SKIPPED_NO_BRANCH,
                f"No main or master branch found in '{state.path}'",
            )

        state = replace(state, branch=branch)
        self._console.info(f"Checking out {branch} branch for '{state.path}'")
        steps: tuple[Callable[[], Result[str, GitError]], ...] = (
            lambda: self._repo.checkout(branch),
            lambda: self._repo.fetch(self._config.remote),
            self._repo.pull_ff,
        )
        for step in steps:
            result = step()
            if isinstance(result, Err):
                return self._fail(state, Outcome.SKIPPED_SYNC_FAILED, str(result.error))

        return advance(replace(state, stage=Stage.TAG))

    def _tag(self, state: _RepoState) -> _Step:
        tag = state.entry.tag
        remote = self._config.remote

        match self._repo.remote_tags(remote):
            case Err(e):
                return self._fail(state, Outcome.SKIPPED_TAG_FAILED, str(e))
            case Ok(existing) if tag in existing:
                message = f"Tag '{tag}' already exists on {remote} for '{state.path}', skipping"
                self._console.print(message, Style.DIM)
                return finish(self._result(state, Outcome.SKIPPED_ALREADY_TAGGED, message))
            case Ok(_):
                pass

        self._console.info(f"Tagging '{tag}' for '{state.path}'")
        match self._repo.create_tag(tag):
            case Err(e):
                return self._fail(
                    state,
                    Outcome.SKIPPED_TAG_FAILED,
                    f"Failed to create tag '{tag}' in '{state.path}': {e.message}",
                )
            case Ok(_):
                pass

        if not self._config.push:
            self._console.success(f"Tagged '{tag}' for '{state.path}' (not pushed)")
            return finish(self._result(state, Outcome.TAGGED_ONLY))

        return advance(replace(state, stage=Stage.PUSH))

    def _push(self, state: _RepoState) -> _Step:
        tag = state.entry.tag
        remote = self._config.remote

        self._console.info(f"Pushing tag '{tag}' for '{state.path}'")
        match self._repo.push_tag(remote, tag):
            case Err(e):
                return self._fail(
                    state,
                    Outcome.SKIPPED_PUSH_FAILED,
                    f"Failed to push tag '{tag}' to {remote} for '{state.path}': {e.message}",
                )
            case Ok(_):
                self._console.success(f"Tagged and pushed '{tag}' for '{state.path}'")
                return finish(self._result(state, Outcome.TAGGED_AND_PUSHED))

    def _fail(self, state: _RepoState, outcome: Outcome, message: str) -> _Step:
        self._console.error(message)
        self._console.print(f"Skipping '{state.path}' ({outcome}, stage {state.stage})", Style.DIM)
        return finish(self._result(state, outcome, message))

    def _result(self, state: _RepoState, outcome: Outcome, message: str = "") -> RepoResult:
        return RepoResult(
            entry=state.entry,
            path=state.path,
            outcome=outcome,
            stage=state.stage,
            branch=state.branch,
            message=message,
        )


# Outcome reported when a stage has no handler.
_STAGE_FAILURES = {
    Stage.VALIDATE: Outcome.SKIPPED_NOT_A_REPO,
    Stage.SYNC_BRANCH: Outcome.SKIPPED_SYNC_FAILED,
    Stage.TAG: Outcome.SKIPPED_TAG_FAILED,
    Stage.PUSH: Outcome.SKIPPED_PUSH_FAILED,
}


def release_repo(
    entry: ReleaseEntry,
    repo: ReleaseRepo,
    config: RunConfig,
    console: ConsoleProtocol,
) -> RepoResult:
    """Validate, sync, tag and optionally push one repository."""
    path = config.repo_path(entry.repo)
    initial = _RepoState(entry=entry, path=path, stage=Stage.VALIDATE)
    match run_steps(
        initial_state=initial,
        get_step=lambda s: s.stage,
        handlers=_RepoRelease(repo, config, console).handlers(),
    ):
        case Ok(result):
            return result
        case Err(e):
            stage = Stage(e.step)
            message = f"Release of '{path}' stopped: {e.message}"
            console.error(message)
            return RepoResult(
                entry=entry,
                path=path,
                outcome=_STAGE_FAILURES[stage],
                stage=stage,
                message=message,
            )


def release_all(
    mapping: ReleaseMapping,
    config: RunConfig,
    console: ConsoleProtocol,
    *,
    open_repo: Callable[[Path], ReleaseRepo] | None = None,
) -> ReleaseSummary:
    """Process every mapping entry in order.

    Args:
        mapping: Entries to release, in file order
        config: Run configuration
        console: Progress output
        open_repo: Factory for the git collaborator of a path
            (defaults to Repository with the configured timeouts)

    Returns:
        ReleaseSummary with one RepoResult per entry
    """
    factory = open_repo or (lambda path: Repository(path, timeouts=config.timeouts))

    if config.push:
        console.info("Push mode enabled, will push tags to remote repositories.")
    else:
        console.info("Running in setup mode, will not push tags.")

    results: list[RepoResult] = []
    for entry in mapping:
        problem = entry.problem
        if problem is not None:
            console.warning(
                f"Invalid repo:tag pair {entry.repo!r}:{entry.tag!r} in "
                f"'{config.mapping_file}' ({problem}), skipping"
            )
            results.append(
                RepoResult(
                    entry=entry,
                    path=config.base_dir,
                    outcome=Outcome.SKIPPED_INVALID_ENTRY,
                    message=problem,
                )
            )
            continue

        path = config.repo_path(entry.repo)
        console.header(f"Processing repository: '{path}' with tag '{entry.tag}'")
        results.append(release_repo(entry, factory(path), config, console))

    return ReleaseSummary(results=tuple(results))


def print_summary(summary: ReleaseSummary, console: ConsoleProtocol) -> None:
    """Print a table of outcomes and a one-line count."""
    if not summary.results:
        console.warning("Mapping file has no entries")
        return

    rows = [
        (r.entry.repo or "-", r.entry.tag or "-", str(r.outcome), r.branch or "")
        for r in summary.results
    ]
    console.newline()
    console.table("Release summary", ("Repository", "Tag", "Outcome", "Branch"), rows)

    line = (
        f"{len(summary.succeeded)} tagged, "
        f"{len(summary.skipped)} skipped, "
        f"{len(summary.failed)} failed"
    )
    if summary.failed:
        console.warning(line)
    else:
        console.success(line)
