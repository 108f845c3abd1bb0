"""Release preparation as a single transaction.

The run either ends with an open pull request and the original branch
checked out again, or it is rolled back: the release branch is deleted and
``Chart.yaml``/``Chart.lock`` are restored. The temporary tools directory is
removed in both cases.
"""

from __future__ import annotations

import dataclasses
import tempfile
import typing as typ
from pathlib import Path

from coco_deploy.github import GitHubReleasesClient
from coco_deploy.logging import get_logger, log_info, log_warning
from coco_deploy.release import git
from coco_deploy.release.chart import read_chart_versions, update_chart
from coco_deploy.release.errors import PullRequestError
from coco_deploy.release.messages import (
    commit_message,
    pull_request_body,
    pull_request_title,
)
from coco_deploy.release.tools import provision_tools, update_dependencies
from coco_deploy.release.versioning import VersionPart, bump_version

if typ.TYPE_CHECKING:
    import httpx

logger = get_logger(__name__)

KATA_REPO = "kata-containers/kata-containers"
DEFAULT_CHART_DIR = Path("charts/confidential-containers")

Confirm = typ.Callable[[str], bool]


@dataclasses.dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Options for one release preparation run.

    Attributes:
        chart_dir: Directory holding ``Chart.yaml``.
        part: Version component to bump.
        remote: git remote the branch is pushed to.
        base: Base branch of the pull request.

    """

    chart_dir: Path = DEFAULT_CHART_DIR
    part: VersionPart = VersionPart.PATCH
    remote: str = git.DEFAULT_REMOTE
    base: str = git.DEFAULT_BASE

    @property
    def chart_file(self) -> Path:
        """Return the path to ``Chart.yaml``."""
        return self.chart_dir / "Chart.yaml"

    @property
    def lock_file(self) -> Path:
        """Return the path to ``Chart.lock``."""
        return self.chart_dir / "Chart.lock"


@dataclasses.dataclass(frozen=True, slots=True)
class ReleasePlan:
    """The versions a release run settled on."""

    chart_version: str
    kata_version: str

    @property
    def branch(self) -> str:
        """Return the release branch name."""
        return git.release_branch_name(self.chart_version)


@dataclasses.dataclass(slots=True)
class ReleaseState:
    """What has been changed so far, for rollback."""

    original_branch: str | None = None
    branch_created: str | None = None
    changes_made: bool = False


def latest_kata_release(
    releases_client: GitHubReleasesClient | None = None,
) -> str:
    """Return the latest kata-containers release without the ``v`` prefix."""
    print("Fetching latest kata-containers release...")
    if releases_client is None:
        with GitHubReleasesClient() as github:
            release = github.latest_release(KATA_REPO)
    else:
        release = releases_client.latest_release(KATA_REPO)
    print(f"Latest kata-containers release: {release.version}")
    return release.version


def rollback(state: ReleaseState, cfg: ReleaseConfig) -> None:
    """Undo branch and file changes recorded in ``state``.

    Every step is attempted even when an earlier one fails.
    """
    if not state.changes_made:
        return
    log_warning(logger, "Release preparation failed, rolling back changes")
    cwd = cfg.chart_dir

    if state.original_branch and git.current_branch(cwd=cwd) != state.original_branch:
        print(f"Switching back to {state.original_branch}...")
        if not git.checkout(state.original_branch, cwd=cwd):
            log_warning(logger, "Failed to switch back to %s", state.original_branch)

    if state.branch_created:
        print(f"Deleting branch {state.branch_created}...")
        if not git.delete_local_branch(state.branch_created, cwd=cwd):
            log_warning(logger, "Could not delete branch %s", state.branch_created)

    git.restore_paths((cfg.chart_file, cfg.lock_file), cwd=cwd)
    state.changes_made = False
    print("Rollback complete")


def create_pull_request(
    plan: ReleasePlan, cfg: ReleaseConfig, state: ReleaseState
) -> None:
    """Push the release branch, open the PR and return to the original branch.

    Raises
    ------
    PullRequestError
        If ``gh pr create`` fails; the message carries the manual compare URL.

    """
    cwd = cfg.chart_dir
    print("Pushing branch to origin...")
    git.push_branch(plan.branch, remote=cfg.remote, cwd=cwd)

    print("Creating pull request...")
    created = git.gh_pr_create(
        plan.branch,
        pull_request_title(plan.chart_version),
        pull_request_body(plan.chart_version, plan.kata_version),
        base=cfg.base,
        cwd=cwd,
    )
    if not created:
        url = git.remote_url(cfg.remote, cwd=cwd)
        compare = git.compare_url(url, plan.branch) if url else None
        raise PullRequestError.creation_failed(plan.branch, compare)

    print("Pull request created successfully!")
    if state.original_branch:
        print(f"Switching back to {state.original_branch}...")
        git.checkout(state.original_branch, cwd=cwd)


def apply_release(
    plan: ReleasePlan, cfg: ReleaseConfig, state: ReleaseState, tools_dir: Path
) -> None:
    """Edit the chart, commit on the release branch and open the PR."""
    state.changes_made = True
    print("Updating Chart.yaml...")
    update_chart(cfg.chart_file, plan.chart_version, plan.kata_version)
    print(f"  Chart version: {plan.chart_version}")
    print(f"  kata-deploy version: {plan.kata_version}")

    update_dependencies(cfg.chart_dir, tools_dir)

    print(f"Creating branch: {plan.branch}")
    state.original_branch = git.current_branch(cwd=cfg.chart_dir)
    state.branch_created = plan.branch
    git.create_branch_and_commit(
        plan.branch,
        [cfg.chart_file, cfg.lock_file],
        commit_message(plan.chart_version, plan.kata_version),
        remote=cfg.remote,
        cwd=cfg.chart_dir,
    )
    create_pull_request(plan, cfg, state)
    state.changes_made = False


def plan_release(
    cfg: ReleaseConfig, latest_kata: str, confirm: Confirm
) -> ReleasePlan | None:
    """Work out the new versions and ask for confirmation.

    Returns None when the user declines.
    """
    current = read_chart_versions(cfg.chart_file)
    print("Current versions:")
    print(f"  Chart: {current.chart}")
    print(f"  kata-deploy: {current.kata_deploy}")

    if current.kata_deploy == latest_kata:
        log_warning(
            logger, "kata-deploy is already at the latest version (%s)", latest_kata
        )
        if not confirm("Do you want to continue and bump the chart version anyway?"):
            return None

    plan = ReleasePlan(
        chart_version=bump_version(current.chart, cfg.part),
        kata_version=latest_kata,
    )
    print("New versions:")
    print(f"  Chart: {plan.chart_version}")
    print(f"  kata-deploy: {plan.kata_version}")
    if not confirm("Proceed with these changes?"):
        return None
    return plan


def prepare_release(
    cfg: ReleaseConfig,
    *,
    confirm: Confirm,
    releases_client: GitHubReleasesClient | None = None,
    client: httpx.Client | None = None,
) -> ReleasePlan | None:
    """Prepare a chart release end to end.

    Returns
    -------
    ReleasePlan | None
        The released versions, or None when the user aborted.

    """
    git.check_requirements()
    git.check_clean_tree(cwd=cfg.chart_dir)

    with tempfile.TemporaryDirectory(prefix="coco-release-tools-") as tmp:
        tools_dir = Path(tmp)
        provision_tools(tools_dir, releases_client=releases_client, client=client)
        latest_kata = latest_kata_release(releases_client)

        plan = plan_release(cfg, latest_kata, confirm)
        if plan is None:
            print("Aborted")
            return None

        state = ReleaseState()
        try:
            apply_release(plan, cfg, state, tools_dir)
        except BaseException:
            rollback(state, cfg)
            raise
        print("Cleaning up temporary tools directory...")

    log_info(
        logger,
        "Prepared release %s (kata-deploy %s)",
        plan.chart_version,
        plan.kata_version,
    )
    return plan
