"""git and GitHub CLI operations used while preparing a release.

Public API
----------
- ``check_clean_tree``: Refuse to run on a dirty working tree.
- ``check_requirements``: Ensure ``git`` and ``gh`` are installed.
- ``current_branch``: Name of the checked-out branch.
- ``create_branch_and_commit``: Recreate the release branch and commit.
- ``push_branch`` and ``gh_pr_create``: Publish the branch and open the PR.
- ``compare_url``: Manual "open a PR" URL derived from the origin remote.

"""

from __future__ import annotations

import re
import shutil
import subprocess
import typing as typ

from coco_deploy.logging import get_logger, log_warning
from coco_deploy.release.errors import DirtyWorkingTreeError, ReleaseError

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

logger = get_logger(__name__)

REQUIRED_TOOLS = ("git", "gh")
RELEASE_BRANCH_PREFIX = "topic/prepare-release-"
DEFAULT_REMOTE = "origin"
DEFAULT_BASE = "main"
# Default timeout for git/gh operations that talk to the network (seconds)
_NETWORK_TIMEOUT_S = 300

_GITHUB_SLUG = re.compile(r"github\.com[:/](?P<slug>[^/]+/[^/]+?)(?:\.git)?/?$")


def _git(
    *args: str,
    cwd: Path | None = None,
    check: bool = True,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    # git resolved from PATH; argument list only
    return subprocess.run(  # noqa: S603
        ["git", *args],  # noqa: S607
        cwd=cwd,
        check=check,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def check_requirements(tools: cabc.Sequence[str] = REQUIRED_TOOLS) -> None:
    """Verify the system tools release preparation relies on.

    Raises
    ------
    ReleaseError
        Naming every missing tool.

    """
    missing = [tool for tool in tools if shutil.which(tool) is None]
    if missing:
        raise ReleaseError.missing_tools(missing)


def check_clean_tree(*, cwd: Path | None = None) -> None:
    """Raise ``DirtyWorkingTreeError`` when tracked files have changes."""
    result = _git("diff-index", "--quiet", "HEAD", "--", cwd=cwd, check=False)
    if result.returncode != 0:
        status = _git("status", "--short", cwd=cwd, check=False).stdout
        raise DirtyWorkingTreeError(status.rstrip())


def current_branch(*, cwd: Path | None = None) -> str:
    """Return the checked-out branch name (empty when HEAD is detached)."""
    return _git("branch", "--show-current", cwd=cwd).stdout.strip()


def release_branch_name(chart_version: str) -> str:
    """Return the branch name used for a release PR."""
    return f"{RELEASE_BRANCH_PREFIX}{chart_version}"


def local_branch_exists(branch: str, *, cwd: Path | None = None) -> bool:
    """Return True when ``refs/heads/<branch>`` exists."""
    result = _git(
        "show-ref", "--verify", "--quiet", f"refs/heads/{branch}", cwd=cwd, check=False
    )
    return result.returncode == 0


def remote_branch_exists(
    branch: str, *, remote: str = DEFAULT_REMOTE, cwd: Path | None = None
) -> bool:
    """Return True when ``remote`` has a branch named ``branch``."""
    result = _git(
        "ls-remote",
        "--exit-code",
        "--heads",
        remote,
        branch,
        cwd=cwd,
        check=False,
        timeout=_NETWORK_TIMEOUT_S,
    )
    return result.returncode == 0


def delete_local_branch(branch: str, *, cwd: Path | None = None) -> bool:
    """Force-delete a local branch, returning whether git succeeded."""
    return _git("branch", "-D", branch, cwd=cwd, check=False).returncode == 0


def checkout(branch: str, *, cwd: Path | None = None) -> bool:
    """Switch to ``branch``, returning whether git succeeded."""
    return _git("checkout", branch, cwd=cwd, check=False).returncode == 0


def restore_paths(paths: cabc.Iterable[Path], *, cwd: Path | None = None) -> None:
    """Discard working-tree changes to ``paths`` that exist."""
    for path in paths:
        if path.exists():
            _git("checkout", "--", str(path.resolve()), cwd=cwd, check=False)


def create_branch_and_commit(
    branch: str,
    paths: cabc.Sequence[Path],
    message: str,
    *,
    remote: str = DEFAULT_REMOTE,
    cwd: Path | None = None,
) -> None:
    """Create ``branch`` from HEAD and commit ``paths`` on it.

    A stale branch of the same name is removed first, locally and on
    ``remote``, so a release can be re-prepared after an abandoned attempt.
    """
    if local_branch_exists(branch, cwd=cwd):
        log_warning(logger, "Branch %s already exists locally, deleting", branch)
        delete_local_branch(branch, cwd=cwd)
    if remote_branch_exists(branch, remote=remote, cwd=cwd):
        log_warning(logger, "Branch %s exists on %s, deleting", branch, remote)
        _git(
            "push",
            remote,
            "--delete",
            branch,
            cwd=cwd,
            check=False,
            timeout=_NETWORK_TIMEOUT_S,
        )

    _git("checkout", "-b", branch, cwd=cwd)
    _git("add", *(str(path.resolve()) for path in paths), cwd=cwd)
    _git("commit", "-m", message, cwd=cwd)


def push_branch(
    branch: str, *, remote: str = DEFAULT_REMOTE, cwd: Path | None = None
) -> None:
    """Push ``branch`` and set its upstream."""
    _git("push", "-u", remote, branch, cwd=cwd, timeout=_NETWORK_TIMEOUT_S)


def remote_url(remote: str = DEFAULT_REMOTE, *, cwd: Path | None = None) -> str | None:
    """Return the fetch URL of ``remote``, or None when it is not configured."""
    result = _git("remote", "get-url", remote, cwd=cwd, check=False)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def compare_url(url: str, branch: str) -> str | None:
    """Return the GitHub compare page for ``branch`` on the repository at ``url``.

    Both ``git@github.com:owner/repo.git`` and
    ``https://github.com/owner/repo.git`` remotes are understood; other hosts
    return None.
    """
    match = _GITHUB_SLUG.search(url.strip())
    if match is None:
        return None
    return f"https://github.com/{match.group('slug')}/compare/{branch}"


def gh_pr_create(
    branch: str,
    title: str,
    body: str,
    *,
    base: str = DEFAULT_BASE,
    cwd: Path | None = None,
) -> bool:
    """Open a pull request with ``gh``; return whether it was created."""
    # gh resolved from PATH; argument list only
    result = subprocess.run(  # noqa: S603
        [  # noqa: S607
            "gh",
            "pr",
            "create",
            "--title",
            title,
            "--body",
            body,
            "--base",
            base,
            "--head",
            branch,
        ],
        cwd=cwd,
        check=False,
        text=True,
        timeout=_NETWORK_TIMEOUT_S,
    )
    return result.returncode == 0
