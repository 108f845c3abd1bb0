"""Command-line entry point for single-node cluster bootstrap.

Usage:
    coco-k8s-setup kubeadm [--runtime crio] [--containerd-version 1.7]
    coco-k8s-setup k3s [--extra-args="--disable traefik"]
    coco-k8s-setup k0s
    coco-k8s-setup rke2
    coco-k8s-setup microk8s [--channel 1.31/stable]

Environment variables:
    COCO_K8S_RUNTIME          - kubeadm container runtime (default: containerd)
    COCO_CONTAINERD_VERSION   - containerd release stream (default: latest)
    COCO_K8S_SETTLE_SECONDS   - wait after k3s/k0s/rke2 install (default: 120)
    COCO_LOG_LEVEL            - log level (default: INFO)
"""

from __future__ import annotations

import shlex
import subprocess
import sys
import typing as typ

from cyclopts import App, Parameter

from coco_deploy import __version__
from coco_deploy.downloads import DownloadError
from coco_deploy.github import GitHubAPIError, GitHubResponseShapeError
from coco_deploy.k8s_setup.config import (
    DEFAULT_MICROK8S_CHANNEL,
    DEFAULT_SETTLE_SECONDS,
    ContainerRuntime,
    Distribution,
    SetupConfig,
)
from coco_deploy.k8s_setup.orchestration import setup_cluster
from coco_deploy.k8s_setup.validation import K8sSetupError
from coco_deploy.logging import configure_logging, get_logger, log_exception

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

PROG = "coco-k8s-setup"
COMMANDS = tuple(dist.value for dist in Distribution)

app = App(
    name=PROG,
    help="Bootstrap a single-node Kubernetes cluster for chart testing",
    version=__version__,
)

_SETUP_ERRORS = (
    K8sSetupError,
    DownloadError,
    GitHubAPIError,
    GitHubResponseShapeError,
    subprocess.CalledProcessError,
)

SettleSeconds = typ.Annotated[int, Parameter(env_var="COCO_K8S_SETTLE_SECONDS")]


def print_usage() -> None:
    """Print the short usage banner."""
    print(f"Usage: {PROG} COMMAND [OPTIONS]")
    print(f"Commands: {', '.join(COMMANDS)}")


def _run_setup(dist: Distribution, cfg: SetupConfig) -> int:
    try:
        setup_cluster(dist, cfg)
    except _SETUP_ERRORS as exc:
        log_exception(logger, f"{dist} setup failed", exc)
        return 1
    return 0


@app.command
def kubeadm(
    *,
    runtime: typ.Annotated[
        ContainerRuntime, Parameter(env_var="COCO_K8S_RUNTIME")
    ] = ContainerRuntime.CONTAINERD,
    containerd_version: typ.Annotated[
        str, Parameter(env_var="COCO_CONTAINERD_VERSION")
    ] = "latest",
    skip_disk_cleanup: bool = False,
) -> int:
    """Bootstrap a kubeadm cluster.

    Args:
        runtime: Container runtime, containerd or crio.
        containerd_version: ``latest`` or a ``MAJOR.MINOR`` containerd stream.
        skip_disk_cleanup: Keep the preinstalled CI runner toolchains.

    Returns:
        Exit code (0 for success, non-zero for failure).

    """
    cfg = SetupConfig(
        runtime=runtime,
        containerd_version=containerd_version,
        free_disk=not skip_disk_cleanup,
    )
    return _run_setup(Distribution.KUBEADM, cfg)


@app.command
def k3s(
    *,
    extra_args: str = "",
    settle_seconds: SettleSeconds = DEFAULT_SETTLE_SECONDS,
    skip_disk_cleanup: bool = False,
) -> int:
    """Bootstrap k3s.

    Args:
        extra_args: Extra arguments passed to the k3s installer.
        settle_seconds: Seconds to wait before configuring kubectl.
        skip_disk_cleanup: Keep the preinstalled CI runner toolchains.

    """
    cfg = SetupConfig(
        extra_args=tuple(shlex.split(extra_args)),
        settle_seconds=settle_seconds,
        free_disk=not skip_disk_cleanup,
    )
    return _run_setup(Distribution.K3S, cfg)


@app.command
def k0s(
    *,
    extra_args: str = "",
    settle_seconds: SettleSeconds = DEFAULT_SETTLE_SECONDS,
    skip_disk_cleanup: bool = False,
) -> int:
    """Bootstrap a single-node k0s controller.

    Args:
        extra_args: Extra arguments for ``k0s install controller --single``.
        settle_seconds: Seconds to wait before configuring kubectl.
        skip_disk_cleanup: Keep the preinstalled CI runner toolchains.

    """
    cfg = SetupConfig(
        extra_args=tuple(shlex.split(extra_args)),
        settle_seconds=settle_seconds,
        free_disk=not skip_disk_cleanup,
    )
    return _run_setup(Distribution.K0S, cfg)


@app.command
def rke2(
    *,
    settle_seconds: SettleSeconds = DEFAULT_SETTLE_SECONDS,
    skip_disk_cleanup: bool = False,
) -> int:
    """Bootstrap rke2.

    Args:
        settle_seconds: Seconds to wait before configuring kubectl.
        skip_disk_cleanup: Keep the preinstalled CI runner toolchains.

    """
    cfg = SetupConfig(settle_seconds=settle_seconds, free_disk=not skip_disk_cleanup)
    return _run_setup(Distribution.RKE2, cfg)


@app.command
def microk8s(
    *,
    channel: str = DEFAULT_MICROK8S_CHANNEL,
    skip_disk_cleanup: bool = False,
) -> int:
    """Bootstrap microk8s from a snap channel.

    Args:
        channel: Snap channel to install from.
        skip_disk_cleanup: Keep the preinstalled CI runner toolchains.

    """
    cfg = SetupConfig(microk8s_channel=channel, free_disk=not skip_disk_cleanup)
    return _run_setup(Distribution.MICROK8S, cfg)


def main(argv: cabc.Sequence[str] | None = None) -> int:
    """Entry point for the CLI.

    A missing or unknown command prints the usage banner and returns 1
    without invoking the argument parser.
    """
    tokens = list(sys.argv[1:] if argv is None else argv)
    if not tokens:
        print_usage()
        return 1
    command = tokens[0]
    if not command.startswith("-") and command not in COMMANDS:
        print(f"Unknown command: {command}")
        print_usage()
        return 1

    configure_logging()
    result = app(tokens)
    return result if isinstance(result, int) else 0


if __name__ == "__main__":
    sys.exit(main())
