"""Core domain types and logic."""

from .config import (
    ConfigError,
    FileConfig,
    GitTimeouts,
    RunConfig,
    default_base_dir,
    load_config,
    resolve_run_config,
)
from .errors import ErrorCode
from .mapping import MappingError, ReleaseEntry, ReleaseMapping, load_mapping
from .result import Err, Ok, Result

__all__ = [
    # config
    "ConfigError",
    "FileConfig",
    "GitTimeouts",
    "RunConfig",
    "default_base_dir",
    "load_config",
    "resolve_run_config",
    # errors
    "ErrorCode",
    # mapping
    "MappingError",
    "ReleaseEntry",
    "ReleaseMapping",
    "load_mapping",
    # result
    "Err",
    "Ok",
    "Result",
]
