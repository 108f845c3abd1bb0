"""Round-trip editing of the chart's ``Chart.yaml``.

ruamel.yaml's round-trip mode keeps comments and key order so the release
commit only touches the three version fields. The replaced version scalars
are written plain, without their original quoting.
"""

from __future__ import annotations

import dataclasses
import io
import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from coco_deploy.release.errors import ReleaseError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from ruamel.yaml.comments import CommentedMap

KATA_DEPLOY_DEPENDENCY = "kata-deploy"


@dataclasses.dataclass(frozen=True, slots=True)
class ChartVersions:
    """Versions recorded in ``Chart.yaml``."""

    chart: str
    kata_deploy: str


def _yaml() -> YAML:
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


def load_chart(chart: Path) -> CommentedMap:
    """Parse ``Chart.yaml`` in round-trip mode.

    Raises
    ------
    ReleaseError
        If the file cannot be read or is not a YAML mapping.

    """
    try:
        loaded = _yaml().load(chart.read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        msg = f"failed to parse {chart}: {exc}"
        raise ReleaseError(msg) from exc
    if not isinstance(loaded, dict):
        msg = f"{chart} is not a YAML mapping"
        raise ReleaseError(msg)
    return loaded


def _kata_dependency(document: CommentedMap, chart: Path) -> CommentedMap:
    for dependency in document.get("dependencies") or ():
        if dependency.get("name") == KATA_DEPLOY_DEPENDENCY:
            return dependency
    raise ReleaseError.chart_field_missing(
        str(chart), f"{KATA_DEPLOY_DEPENDENCY} dependency"
    )


def read_chart_versions(chart: Path) -> ChartVersions:
    """Return the chart version and the first ``kata-deploy`` dependency version."""
    document = load_chart(chart)
    version = document.get("version")
    if version is None:
        raise ReleaseError.chart_field_missing(str(chart), "version")
    dependency = _kata_dependency(document, chart)
    kata_version = dependency.get("version")
    if kata_version is None:
        raise ReleaseError.chart_field_missing(
            str(chart), f"{KATA_DEPLOY_DEPENDENCY} version"
        )
    return ChartVersions(chart=str(version), kata_deploy=str(kata_version))


def update_chart(chart: Path, chart_version: str, kata_version: str) -> None:
    """Rewrite ``Chart.yaml`` in place with the new release versions.

    ``version`` and ``appVersion`` both track the chart version; the
    ``kata-deploy`` dependency is pinned to ``kata_version``.
    """
    document = load_chart(chart)
    _kata_dependency(document, chart)["version"] = kata_version
    document["version"] = chart_version
    document["appVersion"] = chart_version
    buffer = io.StringIO()
    _yaml().dump(document, buffer)
    chart.write_text(buffer.getvalue(), encoding="utf-8")
