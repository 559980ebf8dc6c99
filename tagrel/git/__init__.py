"""Git operations module.

Usage:
    from tagrel.git import Repository

    repo = Repository(Path("/path/to/repo"))
    if repo.is_work_tree():
        match repo.remote_tags("origin"):
            case Ok(tags):
                print(sorted(tags))
            case Err(e):
                print(e)
"""

from tagrel.git.repository import (
    GitError,
    GitStatus,
    Repository,
    StatusEntry,
    parse_remote_tags,
)

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "parse_remote_tags",
]
