"""Release preparation errors."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class ReleaseError(Exception):
    """Base exception for release preparation failures."""

    @classmethod
    def invalid_version(cls, version: str) -> ReleaseError:
        """Return an error for a version that is not ``MAJOR.MINOR.PATCH``."""
        return cls(f"Invalid semantic version: {version!r}")

    @classmethod
    def invalid_part(cls, part: str) -> ReleaseError:
        """Return an error for an unknown version component."""
        return cls(f"Invalid version part: {part}")

    @classmethod
    def missing_tools(cls, tools: cabc.Sequence[str]) -> ReleaseError:
        """Return an error naming system tools absent from PATH."""
        return cls(f"Missing required system tools: {' '.join(tools)}")

    @classmethod
    def chart_field_missing(cls, chart: str, field: str) -> ReleaseError:
        """Return an error for a Chart.yaml without an expected field."""
        return cls(f"{chart} has no {field}")


class DirtyWorkingTreeError(ReleaseError):
    """The git working tree has uncommitted changes."""

    def __init__(self, status: str) -> None:
        """Initialise with ``git status --short`` output."""
        self.status = status
        message = (
            "Working tree is not clean; commit or stash your changes first.\n"
            f"Uncommitted changes:\n{status}"
        )
        super().__init__(message)


class UnsupportedPlatformError(ReleaseError):
    """No release tooling is published for this OS or architecture."""

    @classmethod
    def for_os(cls, system: str) -> UnsupportedPlatformError:
        """Return an error for an unsupported operating system."""
        return cls(f"Unsupported OS: {system}")

    @classmethod
    def for_arch(cls, machine: str) -> UnsupportedPlatformError:
        """Return an error for an unsupported CPU architecture."""
        return cls(f"Unsupported architecture: {machine}")


class PullRequestError(ReleaseError):
    """``gh pr create`` failed."""

    def __init__(self, message: str, *, compare_url: str | None = None) -> None:
        """Initialise with a message and the manual compare URL, if known."""
        self.compare_url = compare_url
        super().__init__(message)

    @classmethod
    def creation_failed(
        cls, branch: str, compare_url: str | None
    ) -> PullRequestError:
        """Return an error telling the user where to open the PR by hand."""
        hint = f"; create it manually at {compare_url}" if compare_url else ""
        return cls(
            f"Failed to create pull request for {branch}{hint}",
            compare_url=compare_url,
        )
