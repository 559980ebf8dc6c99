"""Platform layer: process execution and tool lookup."""

from tagrel.platform.process import ProcessError, run, which

__all__ = [
    "ProcessError",
    "run",
    "which",
]
