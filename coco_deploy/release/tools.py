"""Pinned release tooling downloaded into a throwaway directory.

Only ``helm`` is fetched: Chart.yaml is edited with ruamel.yaml and GitHub
API responses are decoded with msgspec.
"""

from __future__ import annotations

import os
import platform
import subprocess
import tarfile
import typing as typ

from coco_deploy.downloads import download_file
from coco_deploy.github import GitHubReleasesClient
from coco_deploy.logging import get_logger, log_info
from coco_deploy.release.errors import ReleaseError, UnsupportedPlatformError

if typ.TYPE_CHECKING:
    from pathlib import Path

    import httpx

logger = get_logger(__name__)

HELM_REPO = "helm/helm"
HELM_TARBALL_URL = "https://get.helm.sh/helm-{version}-{os}-{arch}.tar.gz"

_OS_NAMES = {"Linux": "linux", "Darwin": "darwin"}
_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def detect_platform(
    system: str | None = None, machine: str | None = None
) -> tuple[str, str]:
    """Return the ``(os, arch)`` pair used in helm release artefact names.

    Raises
    ------
    UnsupportedPlatformError
        For anything other than Linux/macOS on amd64/arm64.

    """
    system = system or platform.system()
    machine = machine or platform.machine()
    os_name = _OS_NAMES.get(system)
    if os_name is None:
        raise UnsupportedPlatformError.for_os(system)
    arch = _ARCH_NAMES.get(machine)
    if arch is None:
        raise UnsupportedPlatformError.for_arch(machine)
    return os_name, arch


def extract_helm(tarball: Path, destination: Path, os_name: str, arch: str) -> Path:
    """Extract only ``<os>-<arch>/helm`` from a helm release tarball."""
    member_name = f"{os_name}-{arch}/helm"
    with tarfile.open(tarball, "r:gz") as archive:
        try:
            member = archive.getmember(member_name)
        except KeyError as exc:
            msg = f"{tarball.name} does not contain {member_name}"
            raise ReleaseError(msg) from exc
        source = archive.extractfile(member)
        if source is None:
            msg = f"{member_name} in {tarball.name} is not a regular file"
            raise ReleaseError(msg)
        target = destination / "helm"
        with source, target.open("wb") as handle:
            handle.write(source.read())
    target.chmod(0o755)
    return target


def tool_env(tools_dir: Path, base: dict[str, str] | None = None) -> dict[str, str]:
    """Return an environment with ``tools_dir`` first on PATH."""
    env = dict(os.environ if base is None else base)
    env["PATH"] = os.pathsep.join(filter(None, (str(tools_dir), env.get("PATH"))))
    return env


def provision_tools(
    tools_dir: Path,
    *,
    releases_client: GitHubReleasesClient | None = None,
    client: httpx.Client | None = None,
) -> Path:
    """Download the latest helm into ``tools_dir`` and check that it runs.

    Returns
    -------
    Path
        The helm executable.

    """
    os_name, arch = detect_platform()
    print(f"Detected: {os_name}/{arch}")

    if releases_client is None:
        with GitHubReleasesClient() as github:
            release = github.latest_release(HELM_REPO)
    else:
        release = releases_client.latest_release(HELM_REPO)
    version = release.tag_name or ""

    print(f"Downloading helm {version}...")
    url = HELM_TARBALL_URL.format(version=version, os=os_name, arch=arch)
    tarball = download_file(url, tools_dir / f"helm-{version}.tar.gz", client=client)
    helm = extract_helm(tarball, tools_dir, os_name, arch)
    tarball.unlink()

    # S603: fixed argument list; helm was just extracted into tools_dir
    result = subprocess.run(  # noqa: S603
        [str(helm), "version", "--short"],
        check=True,
        capture_output=True,
        text=True,
        env=tool_env(tools_dir),
    )
    print(f"helm {result.stdout.strip()}")
    log_info(logger, "Provisioned helm %s in %s", version, tools_dir)
    return helm


def update_dependencies(chart_dir: Path, tools_dir: Path) -> None:
    """Run ``helm dependency update`` for the chart, refreshing Chart.lock.

    Raises
    ------
    ReleaseError
        If helm exits non-zero.

    """
    print("Updating Helm dependencies...")
    try:
        subprocess.run(  # noqa: S603
            ["helm", "dependency", "update", str(chart_dir)],  # noqa: S607
            check=True,
            env=tool_env(tools_dir),
        )
    except subprocess.CalledProcessError as exc:
        msg = f"Failed to update dependencies (helm exited {exc.returncode})"
        raise ReleaseError(msg) from exc
    print("Helm dependencies updated")
