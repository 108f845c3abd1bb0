"""Shared pytest fixtures for coco_deploy tests.

External tools are never executed: ``subprocess.run`` is replaced by a
recorder that returns scripted results keyed by command prefix, and HTTP
traffic goes through ``httpx.MockTransport``.
"""

from __future__ import annotations

import pytest

from tests.helpers import SubprocessRecorder


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> SubprocessRecorder:
    """Replace ``subprocess.run`` with a :class:`SubprocessRecorder`."""
    recorder = SubprocessRecorder()
    monkeypatch.setattr("subprocess.run", recorder)
    return recorder


@pytest.fixture
def all_tools_present(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make ``shutil.which`` report every tool as installed."""
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def no_tools_present(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make ``shutil.which`` report every tool as missing."""
    monkeypatch.setattr("shutil.which", lambda name: None)
