"""Semantic version bumping for the chart version."""

from __future__ import annotations

import enum
import re

from coco_deploy.release.errors import ReleaseError

_PRERELEASE_OR_BUILD = re.compile(r"[-+]")


class VersionPart(enum.StrEnum):
    """The component of ``MAJOR.MINOR.PATCH`` to increment."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


def _component(value: str, version: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise ReleaseError.invalid_version(version)
    return int(value)


def bump_version(version: str, part: VersionPart | str = VersionPart.PATCH) -> str:
    """Return ``version`` with ``part`` incremented and lower parts reset.

    Pre-release and build suffixes on the patch component are dropped, so
    ``1.2.3-rc.1`` bumps to ``1.2.4``.

    Raises
    ------
    ReleaseError
        If ``version`` is not ``MAJOR.MINOR.PATCH`` or ``part`` is unknown.

    Examples
    --------
    >>> bump_version("1.2.3", "minor")
    '1.3.0'

    """
    try:
        bump = VersionPart(part)
    except ValueError as exc:
        raise ReleaseError.invalid_part(str(part)) from exc

    pieces = version.strip().split(".", 2)
    if len(pieces) != 3:  # noqa: PLR2004
        raise ReleaseError.invalid_version(version)
    major_text, minor_text, patch_text = pieces
    major = _component(major_text, version)
    minor = _component(minor_text, version)
    patch = _component(_PRERELEASE_OR_BUILD.split(patch_text, maxsplit=1)[0], version)

    match bump:
        case VersionPart.MAJOR:
            return f"{major + 1}.0.0"
        case VersionPart.MINOR:
            return f"{major}.{minor + 1}.0"
        case VersionPart.PATCH:
            return f"{major}.{minor}.{patch + 1}"
