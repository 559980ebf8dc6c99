"""Run configuration.

A RunConfig is resolved once at startup from, in order of precedence:
command-line flags, the BASE_DIR environment variable, an optional TOML
config file, and built-in defaults. It is then passed explicitly to the
release service; nothing reads configuration from ambient state later.

Config file format:

    base_dir = "~/work"
    remote = "upstream"
    strict = true

    [timeouts]
    local = 30
    network = 300
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_str, get_table

__all__ = [
    "BASE_DIR_ENV",
    "DEFAULT_REMOTE",
    "ConfigError",
    "FileConfig",
    "GitTimeouts",
    "RunConfig",
    "default_base_dir",
    "load_config",
    "resolve_run_config",
]

BASE_DIR_ENV = "BASE_DIR"
DEFAULT_REMOTE = "origin"

LOCAL_TIMEOUT_SECONDS = 30.0
NETWORK_TIMEOUT_SECONDS = 3 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class GitTimeouts:
    """Subprocess timeouts in seconds.

    Attributes:
        local: Commands that only touch the working copy (status, tag, ...)
        network: Commands that talk to the remote (fetch, pull, push, ls-remote)
    """

    local: float = LOCAL_TIMEOUT_SECONDS
    network: float = NETWORK_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class FileConfig:
    """Values read from a TOML config file. None means "not set"."""

    base_dir: str | None = None
    remote: str | None = None
    strict: bool | None = None
    timeouts: GitTimeouts = field(default_factory=GitTimeouts)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> FileConfig:
        timeouts: StrDict = get_table(data, "timeouts") or {}
        return cls(
            base_dir=get_str(data, "base_dir"),
            remote=get_str(data, "remote"),
            strict=get_bool(data, "strict"),
            timeouts=GitTimeouts(
                local=get_float(timeouts, "local") or LOCAL_TIMEOUT_SECONDS,
                network=get_float(timeouts, "network") or NETWORK_TIMEOUT_SECONDS,
            ),
        )


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Immutable configuration for one release run.

    Attributes:
        base_dir: Directory under which repository names are resolved
        push: Push created tags to the remote
        mapping_file: JSON file mapping repository name to tag
        remote: Remote queried for existing tags and pushed to
        strict: Exit non-zero when any repository failed
        timeouts: Git subprocess timeouts
    """

    base_dir: Path
    push: bool
    mapping_file: Path
    remote: str = DEFAULT_REMOTE
    strict: bool = False
    timeouts: GitTimeouts = field(default_factory=GitTimeouts)

    def repo_path(self, name: str) -> Path:
        """Resolve a repository name to its working copy path."""
        return self.base_dir / name


def default_base_dir(env: Mapping[str, str] | None = None) -> Path:
    """Base directory from BASE_DIR, falling back to ~/projects."""
    environ = os.environ if env is None else env
    value = environ.get(BASE_DIR_ENV, "").strip()
    if value:
        return Path(value).expanduser()
    return Path.home() / "projects"


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except IsADirectoryError:
        return Err(ConfigError(f"Config path is a directory: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[FileConfig, ConfigError]:
    """Load and parse a TOML config file.

    Args:
        path: Path to the config file

    Returns:
        Ok(FileConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    return Ok(FileConfig.from_dict(result.value))


def resolve_run_config(
    *,
    mapping_file: Path,
    push: bool,
    base_dir: Path | None = None,
    remote: str | None = None,
    strict: bool | None = None,
    file_config: FileConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> RunConfig:
    """Merge flags, environment and config file into a RunConfig.

    A flag left as None falls back to the config file, then the default.
    """
    file_cfg = file_config or FileConfig()
    environ = os.environ if env is None else env

    if base_dir is not None:
        resolved_base = base_dir.expanduser()
    elif environ.get(BASE_DIR_ENV, "").strip():
        resolved_base = default_base_dir(environ)
    elif file_cfg.base_dir:
        resolved_base = Path(file_cfg.base_dir).expanduser()
    else:
        resolved_base = default_base_dir(environ)

    return RunConfig(
        base_dir=resolved_base,
        push=push,
        mapping_file=mapping_file,
        remote=(remote or "").strip() or file_cfg.remote or DEFAULT_REMOTE,
        strict=strict if strict is not None else bool(file_cfg.strict),
        timeouts=file_cfg.timeouts,
    )
