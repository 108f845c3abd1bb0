"""Command-line entry point for chart release preparation.

Usage:
    coco-prepare-release            # Bump patch version (0.16.0 -> 0.16.1)
    coco-prepare-release minor      # Bump minor version (0.16.0 -> 0.17.0)
    coco-prepare-release major      # Bump major version (0.16.0 -> 1.0.0)
    coco-prepare-release --yes      # Answer yes to every confirmation

Steps:
    1. Fetch the latest kata-containers release
    2. Update Chart.yaml with new versions
    3. Update Helm dependencies
    4. Create a new branch
    5. Commit the changes
    6. Push and create a pull request

Requirements:
    git and gh on PATH; helm is downloaded into a temporary directory.

Environment variables:
    GH_TOKEN / GITHUB_TOKEN   - GitHub API token (optional)
    COCO_LOG_LEVEL            - log level (default: INFO)
"""

from __future__ import annotations

import subprocess
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from coco_deploy import __version__
from coco_deploy.downloads import DownloadError
from coco_deploy.github import GitHubAPIError, GitHubResponseShapeError
from coco_deploy.logging import configure_logging, get_logger, log_exception
from coco_deploy.release.errors import ReleaseError
from coco_deploy.release.versioning import VersionPart
from coco_deploy.release.workflow import (
    DEFAULT_CHART_DIR,
    Confirm,
    ReleaseConfig,
    prepare_release,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

PROG = "coco-prepare-release"
BANNER = "Confidential Containers Helm Chart - Release Preparation"
NEXT_STEPS = (
    "Review the pull request",
    "Test the changes",
    "Merge the PR",
    "Run the 'Release Helm Chart' workflow from GitHub Actions",
)

app = App(
    name=PROG,
    help="Prepare a new release of the Confidential Containers Helm chart",
    version=__version__,
)

_RELEASE_ERRORS = (
    ReleaseError,
    DownloadError,
    GitHubAPIError,
    GitHubResponseShapeError,
    subprocess.CalledProcessError,
)


def prompt_confirm(question: str) -> bool:
    """Ask a yes/no question on the terminal; anything but ``y`` means no."""
    try:
        reply = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return reply.strip().lower() in {"y", "yes"}


def _always_yes(question: str) -> bool:
    print(f"{question} [y/N] y")
    return True


def _print_banner() -> None:
    print()
    print("=" * 68)
    print(f"{BANNER:^68}")
    print("=" * 68)
    print()


@app.default
def prepare(
    part: VersionPart = VersionPart.PATCH,
    /,
    *,
    yes: typ.Annotated[bool, Parameter(name=["--yes", "-y"])] = False,
    chart_dir: Path = DEFAULT_CHART_DIR,
) -> int:
    """Bump the chart version and open a release pull request.

    Args:
        part: Version component to bump: major, minor or patch.
        yes: Answer yes to every confirmation prompt.
        chart_dir: Directory containing Chart.yaml.

    Returns:
        Exit code (0 for success or abort, 1 for failure).

    """
    confirm: Confirm = _always_yes if yes else prompt_confirm
    _print_banner()
    try:
        plan = prepare_release(
            ReleaseConfig(chart_dir=chart_dir, part=part), confirm=confirm
        )
    except _RELEASE_ERRORS as exc:
        log_exception(logger, "Release preparation failed", exc)
        return 1

    if plan is None:
        return 0

    print()
    print("Release preparation complete!")
    print()
    print("Next steps:")
    for index, step in enumerate(NEXT_STEPS, start=1):
        print(f"  {index}. {step}")
    return 0


def _positional_tokens(tokens: cabc.Sequence[str]) -> list[str]:
    positional: list[str] = []
    option_value = False
    for token in tokens:
        if option_value:
            option_value = False
        elif token == "--chart-dir":
            option_value = True
        elif not token.startswith("-"):
            positional.append(token)
    return positional


def main(argv: cabc.Sequence[str] | None = None) -> int:
    """Entry point for the CLI.

    A positional argument other than ``major``, ``minor`` or ``patch`` is
    rejected before parsing with exit status 1.
    """
    tokens = list(sys.argv[1:] if argv is None else argv)
    positional = _positional_tokens(tokens)
    valid_parts = {part.value for part in VersionPart}
    if positional and positional[0] not in valid_parts:
        print(f"Invalid argument: {positional[0]}", file=sys.stderr)
        print("Use -h or --help for usage information", file=sys.stderr)
        return 1

    configure_logging()
    result = app(tokens)
    return result if isinstance(result, int) else 0


if __name__ == "__main__":
    sys.exit(main())
