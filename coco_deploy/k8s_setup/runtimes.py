"""Container runtime installation for kubeadm clusters.

containerd is installed from the upstream release tarball so any stream can
be tested; CRI-O comes from the opensuse packaging that tracks Kubernetes
minor releases.
"""

from __future__ import annotations

import tempfile
import typing as typ
from pathlib import Path

from coco_deploy.downloads import download_file, fetch_text, url_exists
from coco_deploy.github import GitHubReleasesClient
from coco_deploy.k8s_setup.config import KUBERNETES_STABLE_URL
from coco_deploy.k8s_setup.shell import (
    apt_install,
    make_root_dir,
    output_of,
    restart_service,
    run,
    write_root_file,
)
from coco_deploy.k8s_setup.system import add_apt_repository, host_arch
from coco_deploy.k8s_setup.validation import VersionResolutionError
from coco_deploy.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

    from coco_deploy.github import GitHubRelease

logger = get_logger(__name__)

CONTAINERD_REPO = "containerd/containerd"
CONTAINERD_UNIT_URL = (
    "https://raw.githubusercontent.com/containerd/containerd/main/containerd.service"
)
CRIO_REPO = "cri-o/cri-o"
CRIO_CNI_CONFIGS = (
    "/etc/cni/net.d/100-crio-bridge.conf",
    "/etc/cni/net.d/100-crio-bridge.conflist",
    "/etc/cni/net.d/200-loopback.conf",
)
CRIO_CAPABILITIES_CONF = """\
[crio]
storage_option = ["overlay.skip_mount_home=true"]
[crio.runtime]
default_capabilities = [
  "CHOWN", "DAC_OVERRIDE", "FSETID", "FOWNER", "SETGID",
  "SETUID", "SETPCAP", "NET_BIND_SERVICE", "KILL", "SYS_CHROOT",
]
"""


def kubernetes_repo_url(k8s_minor: str) -> str:
    """Return the pkgs.k8s.io apt repository for a ``vMAJOR.MINOR`` stream."""
    return f"https://pkgs.k8s.io/core:/stable:/{k8s_minor}/deb/"


def crio_repo_url(crio_stream: str) -> str:
    """Return the opensuse CRI-O apt repository for a stream."""
    return (
        "https://download.opensuse.org/repositories/"
        f"isv:/cri-o:/stable:/{crio_stream}/deb/"
    )


def stable_kubernetes_minor(*, client: httpx.Client | None = None) -> str:
    """Return the current stable Kubernetes release as ``vMAJOR.MINOR``.

    Raises
    ------
    VersionResolutionError
        If the stable marker is empty or malformed.

    """
    marker = fetch_text(KUBERNETES_STABLE_URL, client=client).strip()
    parts = marker.split(".")
    if len(parts) < 2 or not all(parts[:2]):  # noqa: PLR2004
        raise VersionResolutionError.unparseable("Kubernetes", marker)
    return ".".join(parts[:2])


def select_containerd_version(
    releases: cabc.Iterable[GitHubRelease], requested: str
) -> str:
    """Pick a containerd release from a newest-first release list.

    Tags of the separately versioned ``api/`` module are ignored. ``latest``
    selects the newest release, ``X.Y`` the newest ``vX.Y.*`` release.

    Raises
    ------
    VersionResolutionError
        If no release matches.

    """
    tags = [
        release.tag_name
        for release in releases
        if release.tag_name and "api/" not in release.tag_name
    ]
    if requested == "latest":
        candidates = tags
    else:
        prefix = f"v{requested.removeprefix('v')}."
        candidates = [tag for tag in tags if tag.startswith(prefix)]
    if not candidates:
        raise VersionResolutionError.no_release("containerd", requested)
    return candidates[0].removeprefix("v")


def _list_releases(
    repo: str, releases_client: GitHubReleasesClient | None
) -> list[GitHubRelease]:
    if releases_client is not None:
        return releases_client.list_releases(repo)
    with GitHubReleasesClient() as github:
        return github.list_releases(repo)


def resolve_containerd_version(
    requested: str = "latest",
    *,
    releases_client: GitHubReleasesClient | None = None,
) -> str:
    """Resolve ``latest`` or ``X.Y`` to a full containerd release version."""
    releases = _list_releases(CONTAINERD_REPO, releases_client)
    return select_containerd_version(releases, requested)


def install_containerd(
    version: str = "latest",
    *,
    releases_client: GitHubReleasesClient | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Install containerd from the upstream release tarball.

    Returns
    -------
    str
        The installed containerd version (without ``v``).

    """
    print(f"Installing containerd {version}...")
    full_version = resolve_containerd_version(
        version, releases_client=releases_client
    )

    arch = host_arch()
    tarball_url = (
        f"https://github.com/containerd/containerd/releases/download/v{full_version}/"
        f"containerd-{full_version}-linux-{arch}.tar.gz"
    )
    print(f"Downloading containerd {full_version}...")
    with tempfile.TemporaryDirectory() as tmp:
        tarball = download_file(
            tarball_url, Path(tmp) / "containerd.tar.gz", client=client
        )
        run(["tar", "-C", "/usr/local", "-xzf", str(tarball)], sudo=True)

    write_root_file(
        "/etc/systemd/system/containerd.service",
        fetch_text(CONTAINERD_UNIT_URL, client=client),
    )
    make_root_dir("/etc/containerd")
    default_config = output_of(["containerd", "config", "default"])
    write_root_file(
        "/etc/containerd/config.toml", enable_systemd_cgroup(default_config)
    )
    restart_service("containerd")

    installed = output_of(["containerd", "--version"]).strip()
    print(f"containerd installed: {installed}")
    log_info(logger, "Installed containerd %s", full_version)
    return full_version


def enable_systemd_cgroup(config: str) -> str:
    """Switch the runc cgroup driver to systemd in a containerd config."""
    return config.replace("SystemdCgroup = false", "SystemdCgroup = true")


def select_crio_stream(
    k8s_minor: str,
    *,
    stream_available: bool,
    releases: cabc.Iterable[GitHubRelease] = (),
) -> str:
    """Choose the CRI-O packaging stream.

    CRI-O publishes one stream per Kubernetes minor; until the stream for a
    brand-new minor exists, fall back to the newest stable CRI-O tag.
    """
    if stream_available:
        return k8s_minor
    for release in releases:
        if not release.prerelease and release.tag_name:
            return release.tag_name
    raise VersionResolutionError.no_release("CRI-O", k8s_minor)


def resolve_crio_version(
    k8s_minor: str,
    *,
    releases_client: GitHubReleasesClient | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Return the CRI-O stream to install alongside ``k8s_minor``.

    The release list is only queried when the matching opensuse stream has
    not been published yet.
    """
    stream_key = f"{crio_repo_url(k8s_minor)}Release.key"
    if url_exists(stream_key, client=client):
        return select_crio_stream(k8s_minor, stream_available=True)
    releases = _list_releases(CRIO_REPO, releases_client)
    return select_crio_stream(k8s_minor, stream_available=False, releases=releases)


def install_crio(
    *,
    releases_client: GitHubReleasesClient | None = None,
    client: httpx.Client | None = None,
) -> str:
    """Install CRI-O and the Kubernetes apt repository it depends on.

    Returns
    -------
    str
        The CRI-O packaging stream that was configured.

    """
    print("Installing CRI-O...")
    k8s_minor = stable_kubernetes_minor(client=client)
    crio_stream = resolve_crio_version(
        k8s_minor, releases_client=releases_client, client=client
    )

    apt_install("software-properties-common", "curl")
    add_apt_repository(
        "kubernetes",
        f"{kubernetes_repo_url(k8s_minor)}Release.key",
        kubernetes_repo_url(k8s_minor),
        client=client,
    )
    add_apt_repository(
        "cri-o",
        f"{crio_repo_url(crio_stream)}Release.key",
        crio_repo_url(crio_stream),
        client=client,
    )
    apt_install("cri-o", "cri-tools")

    # CRI-O ships bridge CNI defaults that would shadow the cluster network.
    run(["rm", "-f", *CRIO_CNI_CONFIGS], sudo=True)
    apt_install("containernetworking-plugins", update=False)

    make_root_dir("/etc/crio/crio.conf.d")
    write_root_file(
        "/etc/crio/crio.conf.d/00-default-capabilities.conf", CRIO_CAPABILITIES_CONF
    )
    restart_service("crio")

    installed = output_of(["crio", "--version"]).strip()
    summary = installed.splitlines()[0] if installed else crio_stream
    print(f"CRI-O installed: {summary}")
    log_info(logger, "Installed CRI-O from stream %s", crio_stream)
    return crio_stream
