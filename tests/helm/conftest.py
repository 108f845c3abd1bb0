"""Pytest fixtures for Helm chart checks."""

from __future__ import annotations

from pathlib import Path

import pytest
from ruamel.yaml import YAML


def _find_repo_root(start: Path) -> Path:
    """Locate the repository root by finding pyproject.toml."""
    for parent in (start, *start.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    msg = f"Failed to locate repository root from: {start}"
    raise FileNotFoundError(msg)


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """Return the repository root path."""
    return _find_repo_root(Path(__file__).resolve())


@pytest.fixture(scope="session")
def chart_path(repo_root: Path) -> Path:
    """Return the path to the confidential-containers chart."""
    return repo_root / "charts" / "confidential-containers"


def _load(path: Path) -> dict:
    yaml_parser = YAML(typ="safe")
    return yaml_parser.load(path.read_text(encoding="utf-8"))


@pytest.fixture(scope="session")
def chart_metadata(chart_path: Path) -> dict:
    """Return the parsed Chart.yaml."""
    return _load(chart_path / "Chart.yaml")


@pytest.fixture(scope="session")
def chart_values(chart_path: Path) -> dict:
    """Return the parsed values.yaml."""
    return _load(chart_path / "values.yaml")
