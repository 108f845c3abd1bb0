"""Deployment tooling for the Confidential Containers Helm chart.

Two command-line tools live here:

- ``coco_deploy.k8s_setup``: bootstrap a single-node Kubernetes cluster
  (kubeadm, k3s, k0s, rke2 or microk8s) on a CI runner and verify it.
- ``coco_deploy.release``: bump the chart version, track the latest
  kata-deploy release and open a release pull request.

"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
