"""Installers for the packaged single-node distributions.

k3s, k0s and rke2 ship ``curl | sh`` installer scripts; the script body is
fetched over HTTPS and piped to ``sh -s -`` so arguments can follow it.
microk8s is installed from the snap store.
"""

from __future__ import annotations

import getpass
import re
import typing as typ

from coco_deploy.downloads import fetch_text
from coco_deploy.k8s_setup.config import DEFAULT_MICROK8S_CHANNEL
from coco_deploy.k8s_setup.kubectl import export_microk8s_kubeconfig
from coco_deploy.k8s_setup.shell import make_root_dir, output_of, run, write_root_file
from coco_deploy.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import httpx

logger = get_logger(__name__)

K3S_INSTALLER_URL = "https://get.k3s.io"
K0S_INSTALLER_URL = "https://get.k0s.sh"
RKE2_INSTALLER_URL = "https://get.rke2.io"
K0S_CONFIG_PATH = "/etc/k0s/k0s.yaml"
# k0s exposes metrics on 8080 by default, which collides with kata-deploy
# test workloads.
K0S_METRICS_PORT = 9999
MICROK8S_READY_TIMEOUT_S = 300

_K0S_METRICS_PORT = re.compile(r"metricsPort: 8080\b")


def run_installer_script(
    url: str,
    args: cabc.Sequence[str] = (),
    *,
    sudo: bool = False,
    client: httpx.Client | None = None,
) -> None:
    """Fetch an installer script and execute it with ``sh -s -``."""
    script = fetch_text(url, client=client)
    log_info(logger, "Running installer %s %s", url, " ".join(args))
    run(["sh", "-s", "-", *args], sudo=sudo, stdin=script)


def install_k3s(
    extra_args: cabc.Sequence[str] = (), *, client: httpx.Client | None = None
) -> None:
    """Install k3s with a world-readable kubeconfig."""
    print("Installing K3s...")
    run_installer_script(
        K3S_INSTALLER_URL,
        ["--write-kubeconfig-mode", "644", *extra_args],
        client=client,
    )


def adjust_k0s_metrics_port(config: str, port: int = K0S_METRICS_PORT) -> str:
    """Move the k0s metrics listener off port 8080."""
    return _K0S_METRICS_PORT.sub(f"metricsPort: {port}", config)


def install_k0s(
    extra_args: cabc.Sequence[str] = (), *, client: httpx.Client | None = None
) -> None:
    """Install and start a single-node k0s controller."""
    print("Installing K0s...")
    run_installer_script(K0S_INSTALLER_URL, sudo=True, client=client)
    run(["k0s", "install", "controller", "--single", *extra_args], sudo=True)
    make_root_dir("/etc/k0s")
    config = output_of(["k0s", "config", "create"])
    write_root_file(K0S_CONFIG_PATH, adjust_k0s_metrics_port(config))
    run(["k0s", "start"], sudo=True)


def install_rke2(*, client: httpx.Client | None = None) -> None:
    """Install rke2 and start its server unit."""
    print("Installing RKE2...")
    run_installer_script(RKE2_INSTALLER_URL, sudo=True, client=client)
    run(["systemctl", "enable", "--now", "rke2-server.service"], sudo=True)


def install_microk8s(channel: str = DEFAULT_MICROK8S_CHANNEL) -> None:
    """Install microk8s from the snap store and wait until it reports ready."""
    print("Installing MicroK8s...")
    run(
        ["snap", "install", "microk8s", "--classic", f"--channel={channel}"],
        sudo=True,
    )
    run(["usermod", "-a", "-G", "microk8s", getpass.getuser()], sudo=True)
    export_microk8s_kubeconfig()
    run(
        [
            "microk8s",
            "status",
            "--wait-ready",
            "--timeout",
            str(MICROK8S_READY_TIMEOUT_S),
        ],
        sudo=True,
    )
