"""taskdeps command-line interface."""

from taskdeps.cli.main import app

__all__ = ["app"]
