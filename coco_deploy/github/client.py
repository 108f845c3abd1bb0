"""GitHub REST client for release lookups.

Both tools only ever need two read-only calls: list the releases of a
repository and fetch its latest release. Requests are authenticated when a
token is available, which keeps CI runners clear of the anonymous rate limit.
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx
import msgspec

from .errors import GitHubAPIError, GitHubResponseShapeError
from .models import GitHubRelease

if typ.TYPE_CHECKING:
    import types

_HTTP_ERROR_STATUS_THRESHOLD = 400
_DEFAULT_API_URL = "https://api.github.com"

_RELEASE_LIST = msgspec.json.Decoder(list[GitHubRelease])
_RELEASE = msgspec.json.Decoder(GitHubRelease)


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubReleasesConfig:
    """Configuration for the GitHub release API client."""

    token: str | None = None
    api_url: str = _DEFAULT_API_URL
    timeout_s: float = 30.0
    user_agent: str = "coco-deploy/0.1"

    @classmethod
    def from_env(cls) -> GitHubReleasesConfig:
        """Build configuration from ``GH_TOKEN``/``GITHUB_TOKEN``.

        A missing token is allowed; requests are then sent anonymously.
        ``COCO_GITHUB_API_URL`` overrides the API base URL.
        """
        token = (
            os.environ.get("GH_TOKEN", "").strip()
            or os.environ.get("GITHUB_TOKEN", "").strip()
        )
        api_url = os.environ.get("COCO_GITHUB_API_URL", _DEFAULT_API_URL)
        return cls(token=token or None, api_url=api_url.rstrip("/"))


class GitHubReleasesClient:
    """Read-only access to ``/repos/{owner}/{repo}/releases``."""

    def __init__(
        self,
        config: GitHubReleasesConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialise the client, creating an owned HTTP client if needed."""
        self._config = config or GitHubReleasesConfig.from_env()
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self._config.user_agent,
        }
        if self._config.token:
            headers["Authorization"] = f"Bearer {self._config.token}"
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            timeout=self._config.timeout_s,
            follow_redirects=True,
        )
        self._headers = headers

    def close(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> GitHubReleasesClient:
        """Return the client for use as a context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Close owned resources on exit."""
        self.close()

    def list_releases(self, repo: str) -> list[GitHubRelease]:
        """Return the most recent releases of ``owner/name`` (newest first)."""
        url = f"{self._config.api_url}/repos/{repo}/releases"
        content = self._get(url)
        try:
            return _RELEASE_LIST.decode(content)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.invalid_payload(url, str(exc)) from exc

    def latest_release(self, repo: str) -> GitHubRelease:
        """Return the release GitHub marks as latest for ``owner/name``."""
        url = f"{self._config.api_url}/repos/{repo}/releases/latest"
        content = self._get(url)
        try:
            release = _RELEASE.decode(content)
        except msgspec.DecodeError as exc:
            raise GitHubResponseShapeError.invalid_payload(url, str(exc)) from exc
        if not release.tag_name or release.tag_name == "null":
            raise GitHubResponseShapeError.missing_tag(repo)
        return release

    def _get(self, url: str) -> bytes:
        try:
            response = self._client.get(url, headers=self._headers)
        except httpx.HTTPError as exc:
            raise GitHubAPIError.network_error(url, str(exc)) from exc
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code, url)
        return response.content
