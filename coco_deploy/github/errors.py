"""GitHub release API errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int, url: str) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub API HTTP {status_code} for {url}", status_code=status_code)

    @classmethod
    def network_error(cls, url: str, detail: str) -> GitHubAPIError:
        """Return an error for transport failures (DNS, TLS, timeouts)."""
        return cls(f"GitHub API request to {url} failed: {detail}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when a release payload does not match the expected shape."""

    @classmethod
    def invalid_payload(cls, url: str, detail: str) -> GitHubResponseShapeError:
        """Return an error for undecodable release payloads."""
        return cls(f"Unexpected GitHub API payload from {url}: {detail}")

    @classmethod
    def missing_tag(cls, repo: str) -> GitHubResponseShapeError:
        """Return an error for a release without a usable tag name."""
        return cls(f"Latest release of {repo} has no tag name")
