"""End-to-end bootstrap procedures, one per distribution."""

from __future__ import annotations

import time
import typing as typ

from coco_deploy.k8s_setup.config import (
    ContainerRuntime,
    Distribution,
    SetupConfig,
)
from coco_deploy.k8s_setup.distros import (
    install_k0s,
    install_k3s,
    install_microk8s,
    install_rke2,
)
from coco_deploy.k8s_setup.kubeadm import (
    init_kubeadm_cluster,
    install_flannel,
    install_kubeadm_components,
)
from coco_deploy.k8s_setup.kubectl import setup_kubectl
from coco_deploy.k8s_setup.runtimes import install_containerd, install_crio
from coco_deploy.k8s_setup.system import free_disk_space, prepare_system_kubeadm
from coco_deploy.k8s_setup.validation import require_exe
from coco_deploy.k8s_setup.verify import verify_cluster
from coco_deploy.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

Sleep = typ.Callable[[float], None]


def _free_disk(cfg: SetupConfig) -> None:
    if cfg.free_disk:
        free_disk_space()
    else:
        print("Skipping disk cleanup (--skip-disk-cleanup)")


def _settle(dist: Distribution, cfg: SetupConfig, sleep: Sleep) -> None:
    """Give installers that return early time to start the API server."""
    print(f"Waiting for {dist} ({cfg.settle_seconds}s)...")
    sleep(cfg.settle_seconds)


def setup_kubeadm(cfg: SetupConfig, *, sleep: Sleep = time.sleep) -> None:
    """Bootstrap a kubeadm control plane on containerd or CRI-O.

    Flannel is only installed for containerd; CRI-O brings the
    containernetworking plugins with it.
    """
    del sleep
    _free_disk(cfg)
    prepare_system_kubeadm()
    if cfg.runtime is ContainerRuntime.CONTAINERD:
        install_containerd(cfg.containerd_version)
    else:
        install_crio()
    install_kubeadm_components()
    init_kubeadm_cluster(cfg.runtime)
    if cfg.runtime is ContainerRuntime.CONTAINERD:
        install_flannel()
    verify_cluster(Distribution.KUBEADM, timeout=cfg.verify_timeout)


def setup_k3s(cfg: SetupConfig, *, sleep: Sleep = time.sleep) -> None:
    """Bootstrap k3s."""
    _free_disk(cfg)
    install_k3s(cfg.extra_args)
    _settle(Distribution.K3S, cfg, sleep)
    setup_kubectl(Distribution.K3S)
    verify_cluster(Distribution.K3S, timeout=cfg.verify_timeout)


def setup_k0s(cfg: SetupConfig, *, sleep: Sleep = time.sleep) -> None:
    """Bootstrap a single-node k0s controller."""
    _free_disk(cfg)
    install_k0s(cfg.extra_args)
    _settle(Distribution.K0S, cfg, sleep)
    setup_kubectl(Distribution.K0S)
    verify_cluster(Distribution.K0S, timeout=cfg.verify_timeout)


def setup_rke2(cfg: SetupConfig, *, sleep: Sleep = time.sleep) -> None:
    """Bootstrap rke2."""
    _free_disk(cfg)
    install_rke2()
    _settle(Distribution.RKE2, cfg, sleep)
    setup_kubectl(Distribution.RKE2)
    verify_cluster(Distribution.RKE2, timeout=cfg.verify_timeout)


def setup_microk8s(cfg: SetupConfig, *, sleep: Sleep = time.sleep) -> None:
    """Bootstrap microk8s; ``microk8s status --wait-ready`` replaces the settle."""
    del sleep
    _free_disk(cfg)
    install_microk8s(cfg.microk8s_channel)
    setup_kubectl(Distribution.MICROK8S)
    verify_cluster(Distribution.MICROK8S, timeout=cfg.verify_timeout)


SETUP_PROCEDURES: cabc.Mapping[Distribution, typ.Callable[..., None]] = {
    Distribution.KUBEADM: setup_kubeadm,
    Distribution.K3S: setup_k3s,
    Distribution.K0S: setup_k0s,
    Distribution.RKE2: setup_rke2,
    Distribution.MICROK8S: setup_microk8s,
}

# Checked before any step runs; kubectl is provisioned by the procedures.
REQUIRED_EXECUTABLES: cabc.Mapping[Distribution, tuple[str, ...]] = {
    Distribution.KUBEADM: ("sudo", "apt-get", "systemctl"),
    Distribution.K3S: ("sudo", "sh"),
    Distribution.K0S: ("sudo", "sh"),
    Distribution.RKE2: ("sudo", "sh", "systemctl"),
    Distribution.MICROK8S: ("sudo", "snap"),
}


def setup_cluster(
    dist: Distribution, cfg: SetupConfig, *, sleep: Sleep = time.sleep
) -> None:
    """Run the bootstrap procedure for ``dist``.

    Raises
    ------
    ExecutableNotFoundError
        If a tool the procedure shells out to is not on PATH.

    """
    dist = Distribution(dist)
    for exe in REQUIRED_EXECUTABLES[dist]:
        require_exe(exe)
    log_info(logger, "Setting up %s cluster", dist)
    SETUP_PROCEDURES[dist](cfg, sleep=sleep)
    log_info(logger, "%s cluster setup complete", dist)
