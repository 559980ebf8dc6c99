"""Release mapping file loading.

The mapping file is a flat JSON object of repository name to release tag:

    {"repo-1": "v1.0.1", "repo-2": "v2.0.0"}

Structural problems (bad JSON, non-object root, duplicate keys, non-string
values) are fatal for the whole run. Empty names or tags, names that would
escape the base directory and option-like tags are kept as invalid entries
so the run can warn about them and move on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path, PurePath

from .result import Err, Ok, Result

__all__ = [
    "MappingError",
    "ReleaseEntry",
    "ReleaseMapping",
    "load_mapping",
    "parse_mapping",
]


@dataclass(frozen=True, slots=True)
class MappingError:
    """Error when the mapping file cannot be used."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ReleaseEntry:
    """One repository -> tag pair from the mapping file."""

    repo: str
    tag: str

    @property
    def problem(self) -> str | None:
        """Why this entry cannot be released, or None if it can.

        Repository names must stay under the base directory. Tags must not
        start with "-" so git never reads them as options.
        """
        if not self.repo.strip() or not self.tag.strip():
            return "empty repository name or tag"
        name = PurePath(self.repo)
        if name.is_absolute() or not name.parts or ".." in name.parts:
            return f"repository name '{self.repo}' must be a relative path under the base directory"
        if self.tag.startswith("-"):
            return f"tag '{self.tag}' must not start with '-'"
        return None

    @property
    def is_valid(self) -> bool:
        return self.problem is None


type ReleaseMapping = tuple[ReleaseEntry, ...]


class _DuplicateKey(ValueError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key


def _reject_duplicates(pairs: list[tuple[str, object]]) -> dict[str, object]:
    out: dict[str, object] = {}
    for key, value in pairs:
        if key in out:
            raise _DuplicateKey(key)
        out[key] = value
    return out


def parse_mapping(text: str, path: Path | None = None) -> Result[ReleaseMapping, MappingError]:
    """Parse mapping JSON text into ordered entries.

    Args:
        text: JSON document
        path: Source path, only used in error messages

    Returns:
        Ok(entries in document order) or Err(MappingError)
    """
    where = f" in {path}" if path is not None else ""
    try:
        data: object = json.loads(text, object_pairs_hook=_reject_duplicates)
    except _DuplicateKey as e:
        return Err(MappingError(f"Duplicate repository '{e.key}'{where}", path=path))
    except json.JSONDecodeError as e:
        return Err(
            MappingError(
                f"Invalid JSON{where}: {e.msg} (line {e.lineno}, column {e.colno})",
                path=path,
                hint='expected an object like {"repo-1": "v1.0.1"}',
            )
        )

    if not isinstance(data, dict):
        return Err(
            MappingError(
                f"Mapping root must be a JSON object{where}",
                path=path,
                hint='expected an object like {"repo-1": "v1.0.1"}',
            )
        )

    entries: list[ReleaseEntry] = []
    for repo, tag in data.items():
        if tag is None:
            entries.append(ReleaseEntry(repo=repo, tag=""))
            continue
        if not isinstance(tag, str):
            return Err(
                MappingError(
                    f"Tag for '{repo}' must be a string, got {type(tag).__name__}{where}",
                    path=path,
                )
            )
        entries.append(ReleaseEntry(repo=repo, tag=tag))

    return Ok(tuple(entries))


def load_mapping(path: Path) -> Result[ReleaseMapping, MappingError]:
    """Read and parse the mapping file at path."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(MappingError(f"Tag file '{path}' does not exist", path=path))
    except IsADirectoryError:
        return Err(MappingError(f"Tag file '{path}' is a directory", path=path))
    except PermissionError:
        return Err(MappingError(f"Permission denied reading: {path}", path=path))
    except UnicodeDecodeError as e:
        return Err(MappingError(f"Tag file '{path}' is not valid UTF-8: {e}", path=path))
    except OSError as e:
        return Err(MappingError(f"Error reading tag file '{path}': {e}", path=path))

    return parse_mapping(text, path)
