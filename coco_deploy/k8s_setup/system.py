"""Host preparation for CI runners."""

from __future__ import annotations

import glob
import os
import platform
import shutil
import typing as typ

from coco_deploy.downloads import fetch_bytes
from coco_deploy.k8s_setup.shell import apt_install, output_of, run, write_root_file

if typ.TYPE_CHECKING:
    import httpx

# Preinstalled toolchains on hosted runners that are never needed here.
RUNNER_TOOL_DIRS = (
    "/usr/local/.ghcup",
    "/opt/hostedtoolcache/CodeQL",
    "/usr/local/lib/android",
    "/usr/share/dotnet",
    "/opt/ghc",
    "/usr/local/share/boost",
    "/usr/lib/jvm",
    "/usr/share/swift",
    "/usr/local/share/powershell",
    "/opt/az",
    "/usr/local/share/chromium",
    "/opt/microsoft",
    "/opt/google",
    "/usr/lib/firefox",
)
_GLOBBED_TOOL_DIRS = ("/usr/local/julia*",)

KERNEL_MODULES = ("overlay", "br_netfilter")
KUBEADM_SYSCTLS = (
    "net.bridge.bridge-nf-call-iptables=1",
    "net.ipv4.ip_forward=1",
    "net.bridge.bridge-nf-call-ip6tables=1",
)
APT_KEYRING_DIR = "/etc/apt/keyrings"


def runner_tool_dirs() -> list[str]:
    """Return the directories removed by :func:`free_disk_space`."""
    dirs = list(RUNNER_TOOL_DIRS)
    default_agent_tools = "/tmp/agent-tools"  # noqa: S108
    agent_tools = os.environ.get("AGENT_TOOLSDIRECTORY") or default_agent_tools
    dirs.append(agent_tools)
    for pattern in _GLOBBED_TOOL_DIRS:
        dirs.extend(sorted(glob.glob(pattern)))
    return dirs


def free_disk_space() -> None:
    """Remove preinstalled runner toolchains and report root filesystem usage."""
    print("Removing unnecessary directories to free up disk space...")
    run(["rm", "-rf", *runner_tool_dirs()], sudo=True)
    print("Disk space freed up")
    usage = output_of(["df", "-h", "/"])
    for line in usage.splitlines():
        if not line.startswith("Filesystem"):
            print(line)


def prepare_system_kubeadm() -> None:
    """Load kernel modules and sysctls kubeadm preflight checks require."""
    print("Preparing system for Kubernetes...")
    apt_install("runc")
    for module in KERNEL_MODULES:
        run(["modprobe", module], sudo=True)
    for setting in KUBEADM_SYSCTLS:
        run(["sysctl", "-w", setting], sudo=True)
    run(["swapoff", "-a"], sudo=True)
    print("System prepared")


def host_arch(machine: str | None = None) -> str:
    """Map ``uname -m`` output to the release artefact architecture."""
    machine = machine or platform.machine()
    return "amd64" if machine == "x86_64" else "arm64"


def add_apt_repository(
    name: str,
    key_url: str,
    repo_url: str,
    *,
    client: httpx.Client | None = None,
) -> str:
    """Register a signed flat apt repository.

    The armoured key is fetched, dearmored into ``/etc/apt/keyrings`` and the
    source list written to ``/etc/apt/sources.list.d/<name>.list``.

    Returns
    -------
    str
        Path to the keyring file.

    """
    keyring = f"{APT_KEYRING_DIR}/{name}-apt-keyring.gpg"
    run(["mkdir", "-p", APT_KEYRING_DIR], sudo=True)
    key = fetch_bytes(key_url, client=client)
    run(
        ["gpg", "--batch", "--yes", "--no-tty", "--dearmor", "-o", keyring],
        sudo=True,
        stdin=key,
    )
    write_root_file(
        f"/etc/apt/sources.list.d/{name}.list",
        f"deb [signed-by={keyring}] {repo_url} /\n",
    )
    return keyring


def tool_version(tool: str) -> str | None:
    """Return ``<tool> --version`` output, or None when not installed."""
    if shutil.which(tool) is None:
        return None
    return output_of([tool, "--version"]).strip()
