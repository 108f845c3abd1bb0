"""GitHub release API client used by setup and release tooling."""

from __future__ import annotations

from .client import GitHubReleasesClient, GitHubReleasesConfig
from .errors import GitHubAPIError, GitHubResponseShapeError
from .models import GitHubRelease

__all__ = [
    "GitHubAPIError",
    "GitHubRelease",
    "GitHubReleasesClient",
    "GitHubReleasesConfig",
    "GitHubResponseShapeError",
]
