"""tagrel - tag and push releases across many git repositories."""

__version__ = "0.1.0"
