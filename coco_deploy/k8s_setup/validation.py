"""Validation helpers and exceptions for cluster bootstrap.

Custom Exceptions
-----------------
- ``K8sSetupError``: Base exception for all bootstrap errors
- ``ExecutableNotFoundError``: A required CLI tool is missing
- ``VersionResolutionError``: A component version could not be determined
- ``ClusterVerificationError``: The cluster came up with failing pods

Failures of the external commands themselves surface as
``subprocess.CalledProcessError`` and abort the run, leaving the CI caller to
retry the whole job.

"""

from __future__ import annotations

import shutil
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class K8sSetupError(Exception):
    """Base exception for all k8s_setup package errors."""


class ExecutableNotFoundError(K8sSetupError):
    """Required CLI tool is not installed."""


class VersionResolutionError(K8sSetupError):
    """A component version could not be resolved."""

    @classmethod
    def no_release(cls, component: str, requested: str) -> VersionResolutionError:
        """Return an error for a release lookup with no match."""
        return cls(f"Failed to find {component} release matching '{requested}'")

    @classmethod
    def unparseable(cls, component: str, output: str) -> VersionResolutionError:
        """Return an error for tool output without a version string."""
        preview = output.strip().splitlines()[0] if output.strip() else "<empty>"
        return cls(f"Could not determine {component} version from: {preview}")


class ClusterVerificationError(K8sSetupError):
    """The cluster did not reach a healthy state."""

    def __init__(self, message: str, *, failed_pods: cabc.Sequence[str] = ()) -> None:
        """Initialise with a message and the offending pods."""
        self.failed_pods = tuple(failed_pods)
        super().__init__(message)

    @classmethod
    def pods_failing(cls, failed_pods: cabc.Sequence[str]) -> ClusterVerificationError:
        """Return an error listing pods in error states."""
        listing = ", ".join(failed_pods)
        return cls(
            f"Some pods are in error states: {listing}", failed_pods=failed_pods
        )

    @classmethod
    def unreadable_pods(cls, detail: str) -> ClusterVerificationError:
        """Return an error for a pod listing that could not be decoded."""
        return cls(f"Could not decode pod listing: {detail}")


def require_exe(name: str) -> None:
    """Verify a CLI tool is available in PATH.

    Raises
    ------
    ExecutableNotFoundError
        If the executable is not found in PATH.

    """
    if shutil.which(name) is None:
        msg = f"Required executable '{name}' not found in PATH"
        raise ExecutableNotFoundError(msg)
