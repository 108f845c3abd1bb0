"""Unit tests for Chart.yaml round-trip editing."""

from __future__ import annotations

import typing as typ

import pytest

from coco_deploy.release.chart import (
    ChartVersions,
    read_chart_versions,
    update_chart,
)
from coco_deploy.release.errors import ReleaseError

if typ.TYPE_CHECKING:
    from pathlib import Path

CHART_YAML = """\
apiVersion: v2
name: confidential-containers
# Bumped by coco-prepare-release.
version: 0.16.0
appVersion: 0.16.0
dependencies:
  - name: kata-deploy
    version: 3.20.0  # pinned
    repository: oci://ghcr.io/kata-containers/kata-deploy-charts
  - name: other
    version: 1.0.0
    repository: https://example.test/charts
"""


@pytest.fixture
def chart(tmp_path: Path) -> Path:
    """Write a representative Chart.yaml."""
    path = tmp_path / "Chart.yaml"
    path.write_text(CHART_YAML, encoding="utf-8")
    return path


def test_read_chart_versions(chart: Path) -> None:
    """The chart version and kata-deploy pin are read."""
    assert read_chart_versions(chart) == ChartVersions(
        chart="0.16.0", kata_deploy="3.20.0"
    )


def test_update_chart_preserves_layout(chart: Path) -> None:
    """Only the version fields change; comments and layout survive."""
    update_chart(chart, "0.17.0", "3.21.0")

    lines = chart.read_text(encoding="utf-8").splitlines()
    assert lines[:5] == [
        "apiVersion: v2",
        "name: confidential-containers",
        "# Bumped by coco-prepare-release.",
        "version: 0.17.0",
        "appVersion: 0.17.0",
    ]
    assert lines[6] == "  - name: kata-deploy"
    assert lines[7].startswith("    version: 3.21.0")
    assert lines[7].endswith("# pinned")
    assert read_chart_versions(chart) == ChartVersions(
        chart="0.17.0", kata_deploy="3.21.0"
    )


def test_replaced_versions_are_written_plain(tmp_path: Path) -> None:
    """Quoting survives on untouched keys but not on the replaced versions."""
    path = tmp_path / "Chart.yaml"
    path.write_text(
        CHART_YAML.replace("name: confidential-containers", 'name: "coco"').replace(
            "appVersion: 0.16.0", 'appVersion: "0.16.0"'
        ),
        encoding="utf-8",
    )

    update_chart(path, "0.17.0", "3.21.0")

    text = path.read_text(encoding="utf-8")
    assert 'name: "coco"' in text.splitlines()
    assert "appVersion: 0.17.0" in text.splitlines()


def test_other_dependencies_untouched(chart: Path) -> None:
    """Only the kata-deploy dependency is repinned."""
    update_chart(chart, "0.16.1", "9.9.9")

    assert "version: 1.0.0" in chart.read_text(encoding="utf-8")


def test_missing_dependency(tmp_path: Path) -> None:
    """A chart without kata-deploy is rejected."""
    path = tmp_path / "Chart.yaml"
    path.write_text("version: 0.1.0\ndependencies: []\n", encoding="utf-8")

    with pytest.raises(ReleaseError, match="kata-deploy dependency"):
        read_chart_versions(path)


def test_missing_version(tmp_path: Path) -> None:
    """A chart without a version is rejected."""
    path = tmp_path / "Chart.yaml"
    path.write_text(
        "dependencies:\n  - name: kata-deploy\n    version: 1.0.0\n",
        encoding="utf-8",
    )

    with pytest.raises(ReleaseError, match="has no version"):
        read_chart_versions(path)


@pytest.mark.parametrize("content", ["- a\n- b\n", "key: [unclosed\n"])
def test_malformed_chart(tmp_path: Path, content: str) -> None:
    """Non-mapping or unparsable files raise ReleaseError."""
    path = tmp_path / "Chart.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ReleaseError):
        read_chart_versions(path)


def test_missing_file(tmp_path: Path) -> None:
    """An absent Chart.yaml raises ReleaseError."""
    with pytest.raises(ReleaseError, match="failed to parse"):
        read_chart_versions(tmp_path / "Chart.yaml")
