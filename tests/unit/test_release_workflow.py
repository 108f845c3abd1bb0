"""Unit tests for the release preparation transaction."""

from __future__ import annotations

import typing as typ

import pytest

from coco_deploy.github import GitHubRelease
from coco_deploy.release import workflow
from coco_deploy.release.errors import (
    DirtyWorkingTreeError,
    PullRequestError,
    ReleaseError,
)
from coco_deploy.release.versioning import VersionPart
from coco_deploy.release.workflow import (
    ReleaseConfig,
    ReleasePlan,
    ReleaseState,
    latest_kata_release,
    plan_release,
    prepare_release,
    rollback,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from coco_deploy.github import GitHubReleasesClient
    from tests.helpers import SubprocessRecorder

CHART_YAML = """\
apiVersion: v2
name: confidential-containers
version: 0.16.0
appVersion: 0.16.0
dependencies:
  - name: kata-deploy
    version: 3.20.0
    repository: oci://ghcr.io/kata-containers/kata-deploy-charts
"""
BRANCH = "topic/prepare-release-0.16.1"


class _Answers:
    """Scripted confirmation prompt that records the questions asked."""

    def __init__(self, *answers: bool) -> None:
        self.answers = list(answers)
        self.questions: list[str] = []

    def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return self.answers.pop(0)


@pytest.fixture
def cfg(tmp_path: Path) -> ReleaseConfig:
    """A chart directory holding a Chart.yaml at 0.16.0."""
    chart_dir = tmp_path / "chart"
    chart_dir.mkdir()
    (chart_dir / "Chart.yaml").write_text(CHART_YAML, encoding="utf-8")
    return ReleaseConfig(chart_dir=chart_dir)


@pytest.fixture
def offline(monkeypatch: pytest.MonkeyPatch) -> None:
    """Skip the helm download and pin the latest kata release."""
    monkeypatch.setattr(workflow, "provision_tools", lambda tools_dir, **_: tools_dir)
    monkeypatch.setattr(workflow, "latest_kata_release", lambda client=None: "3.21.0")


@pytest.fixture
def repo(fake_run: SubprocessRecorder) -> SubprocessRecorder:
    """Script a clean repository on main without a stale release branch."""
    fake_run.respond("git", "branch", "--show-current", stdout="main\n")
    fake_run.respond("git", "show-ref", returncode=1)
    fake_run.respond("git", "ls-remote", returncode=2)
    fake_run.respond(
        "git",
        "remote",
        "get-url",
        stdout="git@github.com:confidential-containers/charts.git\n",
    )
    return fake_run


def test_latest_kata_release_strips_prefix() -> None:
    """The kata release tag is returned without the v prefix."""

    class _Kata:
        def latest_release(self, repo: str) -> GitHubRelease:
            assert repo == workflow.KATA_REPO
            return GitHubRelease(tag_name="v3.21.0")

    client = typ.cast("GitHubReleasesClient", _Kata())

    assert latest_kata_release(client) == "3.21.0"


class TestPlanRelease:
    """Tests for plan_release."""

    def test_bumps_requested_part(self, tmp_path: Path) -> None:
        """The chart version is bumped and the new kata version adopted."""
        (tmp_path / "Chart.yaml").write_text(CHART_YAML, encoding="utf-8")
        cfg = ReleaseConfig(chart_dir=tmp_path, part=VersionPart.MINOR)
        answers = _Answers(True)

        plan = plan_release(cfg, "3.21.0", answers)

        assert plan == ReleasePlan(chart_version="0.17.0", kata_version="3.21.0")
        assert plan.branch == "topic/prepare-release-0.17.0"
        assert answers.questions == ["Proceed with these changes?"]

    def test_current_kata_asks_before_bumping(self, cfg: ReleaseConfig) -> None:
        """An up-to-date kata-deploy needs an extra confirmation."""
        answers = _Answers(False)

        assert plan_release(cfg, "3.20.0", answers) is None
        assert answers.questions == [
            "Do you want to continue and bump the chart version anyway?"
        ]

    def test_declining_aborts(self, cfg: ReleaseConfig) -> None:
        """Declining the final prompt returns None."""
        assert plan_release(cfg, "3.21.0", _Answers(False)) is None


class TestRollback:
    """Tests for rollback."""

    def test_noop_without_changes(
        self, cfg: ReleaseConfig, fake_run: SubprocessRecorder
    ) -> None:
        """Nothing is touched before the first change."""
        rollback(ReleaseState(), cfg)

        assert fake_run.calls == []

    def test_restores_branch_and_files(
        self,
        cfg: ReleaseConfig,
        fake_run: SubprocessRecorder,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """The original branch returns, the release branch and edits go."""
        fake_run.respond("git", "branch", "--show-current", stdout=f"{BRANCH}\n")
        state = ReleaseState(
            original_branch="main", branch_created=BRANCH, changes_made=True
        )

        rollback(state, cfg)

        assert fake_run.calls == [
            ("git", "branch", "--show-current"),
            ("git", "checkout", "main"),
            ("git", "branch", "-D", BRANCH),
            ("git", "checkout", "--", str(cfg.chart_file.resolve())),
        ]
        assert state.changes_made is False
        assert "Rollback complete" in capsys.readouterr().out

    def test_continues_after_failed_steps(
        self, cfg: ReleaseConfig, fake_run: SubprocessRecorder
    ) -> None:
        """A failing checkout does not stop the branch deletion."""
        fake_run.respond("git", "branch", "--show-current", stdout=f"{BRANCH}\n")
        fake_run.respond("git", "checkout", "main", returncode=1)
        fake_run.respond("git", "branch", "-D", returncode=1)

        state = ReleaseState(
            original_branch="main", branch_created=BRANCH, changes_made=True
        )

        rollback(state, cfg)

        assert fake_run.has_call("git", "branch", "-D", BRANCH)
        assert fake_run.has_call("git", "checkout", "--")


@pytest.mark.usefixtures("offline", "all_tools_present")
class TestPrepareRelease:
    """Tests for prepare_release."""

    def test_happy_path(self, cfg: ReleaseConfig, repo: SubprocessRecorder) -> None:
        """The chart is bumped, committed, pushed and a PR opened."""
        plan = prepare_release(cfg, confirm=_Answers(True))

        assert plan == ReleasePlan(chart_version="0.16.1", kata_version="3.21.0")
        assert "version: 0.16.1" in cfg.chart_file.read_text(encoding="utf-8")
        assert repo.has_call("helm", "dependency", "update", str(cfg.chart_dir))
        assert repo.has_call("git", "checkout", "-b", BRANCH)
        assert repo.has_call("git", "push", "-u", "origin", BRANCH)
        assert repo.has_call("gh", "pr", "create")
        assert repo.calls[-1] == ("git", "checkout", "main")
        assert not repo.has_call("git", "branch", "-D")

    def test_abort_leaves_repository_alone(
        self,
        cfg: ReleaseConfig,
        repo: SubprocessRecorder,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Declining the plan changes nothing."""
        assert prepare_release(cfg, confirm=_Answers(False)) is None

        assert "version: 0.16.0" in cfg.chart_file.read_text(encoding="utf-8")
        assert not repo.has_call("git", "checkout")
        assert "Aborted" in capsys.readouterr().out

    def test_pr_failure_rolls_back(
        self, cfg: ReleaseConfig, repo: SubprocessRecorder
    ) -> None:
        """A failed gh call rolls back and reports the compare URL."""
        repo.respond("gh", returncode=1)

        with pytest.raises(PullRequestError) as excinfo:
            prepare_release(cfg, confirm=_Answers(True))

        assert excinfo.value.compare_url == (
            f"https://github.com/confidential-containers/charts/compare/{BRANCH}"
        )
        assert repo.has_call("git", "branch", "-D", BRANCH)
        assert repo.has_call("git", "checkout", "--", str(cfg.chart_file.resolve()))

    def test_interrupt_rolls_back(
        self,
        cfg: ReleaseConfig,
        repo: SubprocessRecorder,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Ctrl-C during the release still restores the chart."""

        def interrupted(*args: object, **kwargs: object) -> None:
            raise KeyboardInterrupt

        monkeypatch.setattr(workflow, "update_dependencies", interrupted)

        with pytest.raises(KeyboardInterrupt):
            prepare_release(cfg, confirm=_Answers(True))

        assert repo.has_call("git", "checkout", "--", str(cfg.chart_file.resolve()))
        assert not repo.has_call("git", "branch", "-D")

    def test_dirty_tree_stops_early(
        self, cfg: ReleaseConfig, repo: SubprocessRecorder
    ) -> None:
        """Uncommitted changes abort before anything is downloaded."""
        repo.respond("git", "diff-index", returncode=1)

        with pytest.raises(DirtyWorkingTreeError):
            prepare_release(cfg, confirm=_Answers())

        assert not repo.has_call("helm")


@pytest.mark.usefixtures("offline", "no_tools_present")
def test_missing_tools_checked_before_git(
    cfg: ReleaseConfig, fake_run: SubprocessRecorder
) -> None:
    """Missing git and gh are reported before any git command runs."""
    with pytest.raises(ReleaseError, match="Missing required system tools: git gh"):
        prepare_release(cfg, confirm=_Answers())

    assert fake_run.calls == []
