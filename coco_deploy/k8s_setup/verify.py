"""Cluster readiness checks run at the end of every bootstrap procedure.

``kubectl wait`` alone misses pods stuck in image pull or crash loops
because they never report a terminal phase, so the pod listing is decoded
and each pod classified before the cluster is declared ready.
"""

from __future__ import annotations

import subprocess
import typing as typ

import msgspec

from coco_deploy.k8s_setup.config import DEFAULT_VERIFY_TIMEOUT
from coco_deploy.k8s_setup.shell import retry_kubectl
from coco_deploy.k8s_setup.system import tool_version
from coco_deploy.k8s_setup.validation import ClusterVerificationError
from coco_deploy.logging import get_logger, log_error, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

__all__ = [
    "FAILED_PHASES",
    "FAILED_WAITING_REASONS",
    "Pod",
    "PodList",
    "decode_pod_list",
    "describe_excerpt",
    "is_pod_failed",
    "partition_pods",
    "retry_kubectl",
    "verify_cluster",
]

logger = get_logger(__name__)

FAILED_PHASES = frozenset({"Failed", "Unknown"})
FAILED_WAITING_REASONS = frozenset(
    {"CrashLoopBackOff", "ImagePullBackOff", "ErrImagePull"}
)
# Completed jobs and already failed pods never become Ready.
WAIT_FIELD_SELECTOR = "status.phase!=Succeeded,status.phase!=Failed"
RUNTIME_TOOLS = ("containerd", "crio")


class ContainerStateWaiting(msgspec.Struct, frozen=True):
    """``state.waiting`` of a container status."""

    reason: str | None = None


class ContainerState(msgspec.Struct, frozen=True):
    """Current state of a container; only ``waiting`` matters here."""

    waiting: ContainerStateWaiting | None = None


class ContainerStatus(msgspec.Struct, frozen=True):
    """One entry of ``status.containerStatuses``."""

    name: str = ""
    state: ContainerState = msgspec.field(default_factory=ContainerState)


class PodStatus(msgspec.Struct, frozen=True, rename="camel"):
    """The subset of ``PodStatus`` used for failure detection."""

    phase: str | None = None
    container_statuses: list[ContainerStatus] | None = None


class PodMetadata(msgspec.Struct, frozen=True):
    """Pod identity."""

    name: str
    namespace: str = "default"


class Pod(msgspec.Struct, frozen=True):
    """A pod as returned by ``kubectl get pods -o json``."""

    metadata: PodMetadata
    status: PodStatus = msgspec.field(default_factory=PodStatus)

    @property
    def qualified_name(self) -> str:
        """Return ``namespace/name``."""
        return f"{self.metadata.namespace}/{self.metadata.name}"


class PodList(msgspec.Struct, frozen=True):
    """A ``v1/List`` of pods."""

    items: list[Pod] = msgspec.field(default_factory=list)


_POD_LIST = msgspec.json.Decoder(PodList)


def decode_pod_list(payload: str | bytes) -> list[Pod]:
    """Decode ``kubectl get pods -A -o json`` output.

    Raises
    ------
    ClusterVerificationError
        If the payload is not a pod list.

    """
    try:
        return _POD_LIST.decode(payload).items
    except msgspec.DecodeError as exc:
        raise ClusterVerificationError.unreadable_pods(str(exc)) from exc


def is_pod_failed(pod: Pod) -> bool:
    """Return True for pods in a terminal error phase or a failing wait state."""
    if pod.status.phase in FAILED_PHASES:
        return True
    for container in pod.status.container_statuses or ():
        waiting = container.state.waiting
        if waiting is not None and waiting.reason in FAILED_WAITING_REASONS:
            return True
    return False


def partition_pods(pods: cabc.Iterable[Pod]) -> tuple[list[str], list[str]]:
    """Split pods into ``(ready, failed)`` lists of ``namespace/name``."""
    ready: list[str] = []
    failed: list[str] = []
    for pod in pods:
        (failed if is_pod_failed(pod) else ready).append(pod.qualified_name)
    return ready, failed


def describe_excerpt(text: str, context: int = 10) -> str:
    """Keep ``Name:`` and ``Events:`` headers of ``kubectl describe`` output.

    Each header is followed by up to ``context`` lines; separate groups are
    joined by ``--`` like ``grep -A``.
    """
    lines = text.splitlines()
    keep: list[tuple[int, int]] = []
    for index, line in enumerate(lines):
        if line.startswith(("Name:", "Events:")):
            end = min(index + context + 1, len(lines))
            if keep and index <= keep[-1][1]:
                keep[-1] = (keep[-1][0], max(keep[-1][1], end))
            else:
                keep.append((index, end))
    return "\n--\n".join("\n".join(lines[start:end]) for start, end in keep)


def _report_failures(failed: cabc.Sequence[str]) -> None:
    print("Some pods are in error states:")
    for name in failed:
        print(name)
    try:
        retry_kubectl(["get", "pods", "-A"])
    except subprocess.CalledProcessError as exc:
        log_warning(logger, "kubectl get pods failed (exit %d)", exc.returncode)
    try:
        described = retry_kubectl(["describe", "pods", "-A"], capture=True)
    except subprocess.CalledProcessError as exc:
        log_warning(logger, "kubectl describe pods failed (exit %d)", exc.returncode)
    else:
        print(describe_excerpt(described.stdout))


def verify_cluster(dist: str, *, timeout: str = DEFAULT_VERIFY_TIMEOUT) -> list[str]:
    """Wait for system pods and fail if any pod is in an error state.

    Returns
    -------
    list[str]
        ``namespace/name`` of every healthy pod.

    Raises
    ------
    ClusterVerificationError
        If any pod is failed, crash looping or cannot pull its image.

    """
    print(f"Verifying {dist} cluster...")
    retry_kubectl(["get", "nodes"])
    retry_kubectl(["get", "pods", "-A"])

    print(f"Waiting for all system pods to be ready (timeout: {timeout})...")
    retry_kubectl(
        [
            "wait",
            "--for=condition=Ready",
            "pods",
            "--all",
            "--all-namespaces",
            f"--timeout={timeout}",
            f"--field-selector={WAIT_FIELD_SELECTOR}",
        ]
    )

    print("Checking for any pods in error states...")
    listing = retry_kubectl(["get", "pods", "-A", "-o", "json"], capture=True)
    ready, failed = partition_pods(decode_pod_list(listing.stdout))
    if failed:
        _report_failures(failed)
        log_error(logger, "%s cluster has %d failing pods", dist, len(failed))
        raise ClusterVerificationError.pods_failing(failed)

    print(f"{dist} cluster ready!")
    for tool in RUNTIME_TOOLS:
        version = tool_version(tool)
        if version is not None:
            print(f"{tool}: {version}")
    return ready
