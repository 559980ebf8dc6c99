"""Service layer - release orchestration."""

from tagrel.services.release import (
    Outcome,
    ReleaseRepo,
    ReleaseSummary,
    RepoResult,
    Stage,
    print_summary,
    release_all,
    release_repo,
)

__all__ = [
    "Outcome",
    "ReleaseRepo",
    "ReleaseSummary",
    "RepoResult",
    "Stage",
    "print_summary",
    "release_all",
    "release_repo",
]
