"""Typed views over GitHub release API payloads."""

from __future__ import annotations

import msgspec


class GitHubRelease(msgspec.Struct, frozen=True):
    """Subset of the GitHub release object used by the deployment tools."""

    tag_name: str | None = None
    name: str | None = None
    prerelease: bool = False
    draft: bool = False

    @property
    def version(self) -> str:
        """Return the tag name without a leading ``v``."""
        return (self.tag_name or "").removeprefix("v")
