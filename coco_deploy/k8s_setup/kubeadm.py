"""kubeadm control-plane installation."""

from __future__ import annotations

import subprocess
import typing as typ

from coco_deploy.k8s_setup.config import (
    CRI_SOCKETS,
    FLANNEL_MANIFEST_URL,
    POD_NETWORK_CIDR,
    ContainerRuntime,
)
from coco_deploy.k8s_setup.kubectl import install_kubeconfig
from coco_deploy.k8s_setup.runtimes import kubernetes_repo_url, stable_kubernetes_minor
from coco_deploy.k8s_setup.shell import (
    apt_install,
    output_of,
    retry_kubectl,
    run,
    write_root_file,
)
from coco_deploy.k8s_setup.system import add_apt_repository
from coco_deploy.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import httpx

logger = get_logger(__name__)

KUBEADM_PACKAGES = ("kubeadm", "kubelet", "kubectl")
ADMIN_KUBECONFIG = "/etc/kubernetes/admin.conf"
APT_PIN_PATH = "/etc/apt/preferences.d/kubernetes"
# Ubuntu archives carry older kubernetes-cni/cri-tools builds; pin upstream.
APT_PIN = """\
Package: kubelet kubeadm kubectl cri-tools kubernetes-cni
Pin: origin pkgs.k8s.io
Pin-Priority: 1000
"""
CONTROL_PLANE_TAINT = "node-role.kubernetes.io/control-plane-"


def install_kubeadm_components(*, client: httpx.Client | None = None) -> str:
    """Install and hold kubeadm, kubelet and kubectl from pkgs.k8s.io.

    Returns
    -------
    str
        The ``kubeadm version -o short`` output.

    """
    print("Installing Kubernetes components...")
    k8s_minor = stable_kubernetes_minor(client=client)
    add_apt_repository(
        "kubernetes",
        f"{kubernetes_repo_url(k8s_minor)}Release.key",
        kubernetes_repo_url(k8s_minor),
        client=client,
    )
    write_root_file(APT_PIN_PATH, APT_PIN)
    apt_install(*KUBEADM_PACKAGES, extra=("--allow-downgrades",))
    run(["apt-mark", "hold", *KUBEADM_PACKAGES], sudo=True)

    version = output_of(["kubeadm", "version", "-o", "short"]).strip()
    print(f"Kubernetes installed: {version}")
    return version


def cri_socket(runtime: ContainerRuntime) -> str:
    """Return the CRI endpoint kubeadm should use for ``runtime``."""
    return CRI_SOCKETS[ContainerRuntime(runtime)]


def init_kubeadm_cluster(runtime: ContainerRuntime) -> None:
    """Run ``kubeadm init`` and hand the admin kubeconfig to the caller."""
    print("Initializing Kubernetes cluster...")
    run(
        [
            "kubeadm",
            "init",
            f"--pod-network-cidr={POD_NETWORK_CIDR}",
            f"--cri-socket={cri_socket(runtime)}",
        ],
        sudo=True,
    )
    install_kubeconfig(ADMIN_KUBECONFIG)
    print("Cluster initialized")


def install_flannel() -> None:
    """Apply the Flannel CNI manifest and allow workloads on the control plane."""
    print("Installing Flannel CNI...")
    retry_kubectl(["apply", "-f", FLANNEL_MANIFEST_URL])
    try:
        retry_kubectl(["taint", "nodes", "--all", CONTROL_PLANE_TAINT])
    except subprocess.CalledProcessError as exc:
        # The taint is absent on some kubeadm releases; kubectl then exits 1.
        log_warning(
            logger,
            "Removing control-plane taint failed (exit %d); continuing",
            exc.returncode,
        )
    print("Flannel installed")
