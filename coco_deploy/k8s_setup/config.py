"""Configuration for single-node cluster bootstrap."""

from __future__ import annotations

import dataclasses
import enum


class Distribution(enum.StrEnum):
    """Supported Kubernetes distributions."""

    KUBEADM = "kubeadm"
    K3S = "k3s"
    K0S = "k0s"
    RKE2 = "rke2"
    MICROK8S = "microk8s"


class ContainerRuntime(enum.StrEnum):
    """Container runtimes available to the kubeadm procedure."""

    CONTAINERD = "containerd"
    CRIO = "crio"


POD_NETWORK_CIDR = "10.244.0.0/16"
CRI_SOCKETS = {
    ContainerRuntime.CONTAINERD: "unix:///run/containerd/containerd.sock",
    ContainerRuntime.CRIO: "unix:///var/run/crio/crio.sock",
}
KUBERNETES_STABLE_URL = "https://dl.k8s.io/release/stable.txt"
FLANNEL_MANIFEST_URL = (
    "https://github.com/flannel-io/flannel/releases/latest/download/kube-flannel.yml"
)

# Fixed wait after installers that return before the API server is usable.
DEFAULT_SETTLE_SECONDS = 120
DEFAULT_VERIFY_TIMEOUT = "10m"
DEFAULT_MICROK8S_CHANNEL = "latest/stable"


@dataclasses.dataclass(frozen=True, slots=True)
class SetupConfig:
    """Options shared by every bootstrap procedure.

    Attributes:
        runtime: Container runtime for kubeadm clusters.
        containerd_version: ``latest`` or a ``MAJOR.MINOR`` stream.
        extra_args: Extra installer arguments (k3s and k0s only).
        settle_seconds: Wait after k3s/k0s/rke2 installation.
        microk8s_channel: Snap channel for microk8s.
        free_disk: Remove preinstalled CI runner toolchains first.
        verify_timeout: ``kubectl wait`` timeout for system pods.

    """

    runtime: ContainerRuntime = ContainerRuntime.CONTAINERD
    containerd_version: str = "latest"
    extra_args: tuple[str, ...] = ()
    settle_seconds: int = DEFAULT_SETTLE_SECONDS
    microk8s_channel: str = DEFAULT_MICROK8S_CHANNEL
    free_disk: bool = True
    verify_timeout: str = DEFAULT_VERIFY_TIMEOUT
