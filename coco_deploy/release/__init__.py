"""Release automation for the confidential-containers Helm chart.

Bumps the chart version, pins the ``kata-deploy`` dependency to the latest
kata-containers release, refreshes ``Chart.lock`` and opens a pull request.
"""

from __future__ import annotations

from .errors import (
    DirtyWorkingTreeError,
    PullRequestError,
    ReleaseError,
    UnsupportedPlatformError,
)
from .versioning import VersionPart, bump_version
from .workflow import ReleaseConfig, ReleasePlan, prepare_release

__all__ = [
    "DirtyWorkingTreeError",
    "PullRequestError",
    "ReleaseConfig",
    "ReleaseError",
    "ReleasePlan",
    "UnsupportedPlatformError",
    "VersionPart",
    "bump_version",
    "prepare_release",
]
