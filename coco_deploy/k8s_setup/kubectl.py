"""kubectl and kubeconfig provisioning per distribution.

Each distribution bundles its own client (``k3s kubectl``, ``k0s kubectl``,
``microk8s kubectl``). Later steps and the chart tests expect a plain
``kubectl`` on PATH with a matching version and ``~/.kube/config`` owned by
the invoking user, so this module puts both in place.
"""

from __future__ import annotations

import os
import re
import tempfile
import typing as typ
from pathlib import Path

from coco_deploy.downloads import download_file
from coco_deploy.k8s_setup.config import Distribution
from coco_deploy.k8s_setup.shell import output_of, run
from coco_deploy.k8s_setup.system import host_arch
from coco_deploy.k8s_setup.validation import VersionResolutionError

if typ.TYPE_CHECKING:
    import httpx

KUBECTL_URL = "https://dl.k8s.io/release/{version}/bin/linux/{arch}/kubectl"

_CLIENT_VERSION = re.compile(r"^Client Version:\s*(?P<version>\S+)", re.MULTILINE)
_SEMVER_TOKEN = re.compile(r"v\d+(?:\.\d+)*")

_DISTRO_KUBECONFIGS = {
    Distribution.KUBEADM: "/etc/kubernetes/admin.conf",
    Distribution.K3S: "/etc/rancher/k3s/k3s.yaml",
    Distribution.K0S: "/var/lib/k0s/pki/admin.conf",
    Distribution.RKE2: "/etc/rancher/rke2/rke2.yaml",
}
RKE2_KUBECTL = "/var/lib/rancher/rke2/bin/kubectl"


def kube_config_path() -> Path:
    """Return the invoking user's kubeconfig path."""
    return Path.home() / ".kube" / "config"


def parse_client_version(output: str, dist: Distribution) -> str:
    """Extract the upstream client version from a bundled kubectl.

    k3s and k0s report ``Client Version: v1.31.4+k3s1``; the build suffix is
    dropped so the version names an upstream release. microk8s prints
    ``MicroK8s v1.31.3 revision 7449``.

    Raises
    ------
    VersionResolutionError
        If no version can be found in ``output``.

    """
    if dist is Distribution.MICROK8S:
        token = _SEMVER_TOKEN.search(output)
        if token is None:
            raise VersionResolutionError.unparseable("microk8s", output)
        return token.group(0)

    match = _CLIENT_VERSION.search(output)
    if match is None:
        raise VersionResolutionError.unparseable(f"{dist} kubectl", output)
    return match.group("version").split("+", 1)[0]


def install_kubeconfig(source: str) -> Path:
    """Copy a root-owned kubeconfig to ``~/.kube/config`` for this user."""
    target = kube_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    run(["cp", source, str(target)], sudo=True)
    run(["chown", f"{os.getuid()}:{os.getgid()}", str(target)], sudo=True)
    return target


def export_microk8s_kubeconfig() -> Path:
    """Write the microk8s admin kubeconfig to ``~/.kube/config``."""
    raw = output_of(["microk8s", "kubectl", "config", "view", "--raw"], sudo=True)
    target = kube_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(raw, encoding="utf-8")
    target.chmod(0o600)
    return target


def install_kubectl_binary(
    version: str,
    *,
    replace_local: bool = True,
    client: httpx.Client | None = None,
) -> None:
    """Install the upstream kubectl ``version`` as ``/usr/bin/kubectl``.

    ``replace_local`` removes ``/usr/local/bin/kubectl``, where k3s and
    microk8s drop wrapper scripts that would otherwise shadow the binary.
    """
    url = KUBECTL_URL.format(version=version, arch=host_arch())
    with tempfile.TemporaryDirectory() as tmp:
        binary = download_file(url, Path(tmp) / "kubectl", client=client)
        run(["install", "-m", "0755", str(binary), "/usr/bin/kubectl"], sudo=True)
    if replace_local:
        run(["rm", "-f", "/usr/local/bin/kubectl"], sudo=True)


def _bundled_client_version(dist: Distribution) -> str:
    if dist is Distribution.K3S:
        output = output_of(
            ["/usr/local/bin/k3s", "kubectl", "version", "--client=true"]
        )
    elif dist is Distribution.K0S:
        output = output_of(["k0s", "kubectl", "version", "--client=true"], sudo=True)
    else:
        output = output_of(["microk8s", "version"], sudo=True)
    return parse_client_version(output, dist)


def setup_kubectl(dist: Distribution, *, client: httpx.Client | None = None) -> None:
    """Provide ``kubectl`` and a user kubeconfig for a freshly installed cluster."""
    print(f"Setting up kubectl for {dist}...")
    if dist is Distribution.RKE2:
        run(["ln", "-sf", RKE2_KUBECTL, "/usr/local/bin/kubectl"], sudo=True)
        install_kubeconfig(_DISTRO_KUBECONFIGS[dist])
    elif dist is Distribution.MICROK8S:
        version = _bundled_client_version(dist)
        install_kubectl_binary(version, client=client)
        export_microk8s_kubeconfig()
    elif dist in (Distribution.K3S, Distribution.K0S):
        version = _bundled_client_version(dist)
        install_kubectl_binary(
            version, replace_local=dist is Distribution.K3S, client=client
        )
        install_kubeconfig(_DISTRO_KUBECONFIGS[dist])
    else:
        install_kubeconfig(_DISTRO_KUBECONFIGS[dist])

    result = run(["kubectl", "version", "--client"], capture=True, check=False)
    print(f"kubectl installed: {result.stdout.strip() or 'unknown version'}")
