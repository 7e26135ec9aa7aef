"""Build metadata exposed at runtime.

APP_VERSION and GIT_COMMIT are set via environment variables in CI.
Otherwise APP_VERSION falls back to the installed distribution version and
GIT_COMMIT to reading from git directly.
"""

import os
import subprocess
from importlib import metadata

_DISTRIBUTION = "duelrelay"


def _installed_version() -> str:
    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "dev"


def _git_short_sha() -> str:
    """Read short SHA from git for local development."""
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or _git_short_sha()
