"""Subprocess wrappers shared by the bootstrap procedures.

Every external tool is invoked with an argument list (never ``shell=True``).
Commands that need root are prefixed with ``sudo`` explicitly so the
invoking user keeps ownership of anything written under ``$HOME``.

Examples
--------
Install packages and write a root-owned file:

    apt_install("runc")
    write_root_file("/etc/k0s/k0s.yaml", config_text)

Retry a flaky API server call:

    retry_kubectl(["get", "nodes"])

"""

from __future__ import annotations

import collections.abc as cabc
import subprocess
import time
import typing as typ

from coco_deploy.logging import get_logger, log_warning

logger = get_logger(__name__)

KUBECTL_RETRY_ATTEMPTS = 5
KUBECTL_RETRY_DELAY_S = 10.0


def run(
    cmd: cabc.Sequence[str],
    *,
    sudo: bool = False,
    stdin: str | bytes | None = None,
    capture: bool = False,
    check: bool = True,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[typ.Any]:
    """Run a command, optionally as root.

    Parameters
    ----------
    cmd : Sequence[str]
        Program and arguments.
    sudo : bool, default False
        Prefix the command with ``sudo``.
    stdin : str | bytes | None
        Data written to the process standard input. Bytes switch the call to
        binary mode.
    capture : bool, default False
        Capture stdout and stderr instead of inheriting them.
    check : bool, default True
        Raise ``CalledProcessError`` on a non-zero exit status.
    timeout : float | None
        Seconds before the process is killed.

    """
    args = ["sudo", *cmd] if sudo else list(cmd)
    text = not isinstance(stdin, bytes)
    # S603: argument lists only; programs resolved from PATH
    return subprocess.run(  # noqa: S603
        args,
        input=stdin,
        capture_output=capture,
        text=text,
        check=check,
        timeout=timeout,
    )


def output_of(cmd: cabc.Sequence[str], *, sudo: bool = False) -> str:
    """Run a command and return its captured standard output."""
    return run(cmd, sudo=sudo, capture=True).stdout


def write_root_file(path: str, content: str | bytes) -> None:
    """Write ``content`` to a root-owned file via ``sudo tee``."""
    run(["tee", path], sudo=True, stdin=content, capture=True)


def make_root_dir(path: str) -> None:
    """Create a root-owned directory and its parents."""
    run(["mkdir", "-p", path], sudo=True)


def apt_install(
    *packages: str, update: bool = True, extra: cabc.Sequence[str] = ()
) -> None:
    """Install Debian packages non-interactively."""
    if update:
        run(["apt-get", "update"], sudo=True)
    run(["apt-get", "install", "-y", *packages, *extra], sudo=True)


def restart_service(name: str) -> None:
    """Reload unit files, then enable and restart a systemd service."""
    run(["systemctl", "daemon-reload"], sudo=True)
    run(["systemctl", "enable", "--now", name], sudo=True)
    run(["systemctl", "restart", name], sudo=True)


def retry_kubectl(
    args: cabc.Sequence[str],
    *,
    capture: bool = False,
    attempts: int = KUBECTL_RETRY_ATTEMPTS,
    delay: float = KUBECTL_RETRY_DELAY_S,
    sleep: cabc.Callable[[float], None] = time.sleep,
) -> subprocess.CompletedProcess[typ.Any]:
    """Run ``kubectl`` with a fixed number of attempts.

    Freshly started API servers drop connections for a while; every failure
    but the last is logged and retried after ``delay`` seconds.

    Raises
    ------
    ValueError
        If ``attempts`` is less than one.
    subprocess.CalledProcessError
        When the final attempt fails.

    """
    if attempts < 1:
        msg = f"attempts must be >= 1, got {attempts}"
        raise ValueError(msg)

    cmd = ["kubectl", *args]
    for attempt in range(1, attempts):
        try:
            return run(cmd, capture=capture)
        except subprocess.CalledProcessError as exc:
            log_warning(
                logger,
                "kubectl %s failed (attempt %d/%d, exit %d); retrying in %.0fs",
                " ".join(args),
                attempt,
                attempts,
                exc.returncode,
                delay,
            )
            sleep(delay)

    return run(cmd, capture=capture)
