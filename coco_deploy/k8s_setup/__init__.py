"""Single-node Kubernetes bootstrap for CI runners.

Five distributions are supported (kubeadm, k3s, k0s, rke2 and microk8s).
Each procedure installs the cluster, provisions ``kubectl`` with a user
kubeconfig, and verifies that every system pod is healthy.
"""

from __future__ import annotations

from .config import ContainerRuntime, Distribution, SetupConfig
from .orchestration import SETUP_PROCEDURES, setup_cluster
from .validation import (
    ClusterVerificationError,
    ExecutableNotFoundError,
    K8sSetupError,
    VersionResolutionError,
)

__all__ = [
    "SETUP_PROCEDURES",
    "ClusterVerificationError",
    "ContainerRuntime",
    "Distribution",
    "ExecutableNotFoundError",
    "K8sSetupError",
    "SetupConfig",
    "VersionResolutionError",
    "setup_cluster",
]
