"""Plain HTTP helpers for installer scripts, keys and release artefacts."""

from __future__ import annotations

import typing as typ

import httpx

if typ.TYPE_CHECKING:
    from pathlib import Path

_HTTP_ERROR_STATUS_THRESHOLD = 400
_DEFAULT_TIMEOUT_S = 60.0
_CHUNK_SIZE = 1 << 16


class DownloadError(RuntimeError):
    """Raised when a URL cannot be fetched."""

    @classmethod
    def for_url(cls, url: str, detail: str) -> DownloadError:
        """Return an error naming the failing URL."""
        return cls(f"Failed to download {url}: {detail}")


def make_http_client(timeout: float = _DEFAULT_TIMEOUT_S) -> httpx.Client:
    """Return an HTTP client that follows redirects like ``curl -L``."""
    return httpx.Client(timeout=timeout, follow_redirects=True)


def _client_or_default(client: httpx.Client | None) -> tuple[httpx.Client, bool]:
    if client is not None:
        return client, False
    return make_http_client(), True


def fetch_bytes(url: str, *, client: httpx.Client | None = None) -> bytes:
    """Fetch ``url`` and return the response body.

    Raises
    ------
    DownloadError
        On transport failure or an HTTP error status.

    """
    http, owned = _client_or_default(client)
    try:
        response = http.get(url)
    except httpx.HTTPError as exc:
        raise DownloadError.for_url(url, str(exc)) from exc
    finally:
        if owned:
            http.close()
    if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
        raise DownloadError.for_url(url, f"HTTP {response.status_code}")
    return response.content


def fetch_text(url: str, *, client: httpx.Client | None = None) -> str:
    """Fetch ``url`` and return the body decoded as UTF-8."""
    return fetch_bytes(url, client=client).decode("utf-8")


def url_exists(url: str, *, client: httpx.Client | None = None) -> bool:
    """Return True when a HEAD request to ``url`` succeeds."""
    http, owned = _client_or_default(client)
    try:
        response = http.head(url)
    except httpx.HTTPError:
        return False
    finally:
        if owned:
            http.close()
    return response.status_code < _HTTP_ERROR_STATUS_THRESHOLD


def download_file(
    url: str, destination: Path, *, client: httpx.Client | None = None
) -> Path:
    """Stream ``url`` into ``destination`` and return the path."""
    http, owned = _client_or_default(client)
    try:
        with http.stream("GET", url) as response:
            if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
                raise DownloadError.for_url(url, f"HTTP {response.status_code}")
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(_CHUNK_SIZE):
                    handle.write(chunk)
    except httpx.HTTPError as exc:
        raise DownloadError.for_url(url, str(exc)) from exc
    finally:
        if owned:
            http.close()
    return destination
