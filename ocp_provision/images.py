"""
Check that OpenShift release images can be pulled from a CI registry.
"""

import logging
from dataclasses import dataclass, field

from ocp_provision.exceptions import InvalidParameterError, ToolError
from ocp_provision.util.process import require_tool, run

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "4.19.2"
DEFAULT_REGISTRY = "registry.ci.openshift.org"
CONTAINER_TOOLS = ("podman", "docker")

CORE_IMAGES = [
    "cli",
    "installer",
    "machine-config-operator",
    "cluster-version-operator",
    "etcd",
    "hyperkube",
    "oauth-server",
    "oauth-proxy",
    "console",
    "haproxy-router",
    "coredns",
]

ADDITIONAL_IMAGES = [
    "cluster-network-operator",
    "cluster-dns-operator",
    "cluster-storage-operator",
    "cluster-ingress-operator",
    "aws-ebs-csi-driver",
    "aws-ebs-csi-driver-operator",
    "cluster-monitoring-operator",
    "prometheus-operator",
    "node-exporter",
    "kube-state-metrics",
]


@dataclass
class ImageGroupResult:
    name: str
    found: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.found) + len(self.missing)

    @property
    def complete(self) -> bool:
        return not self.missing


def image_ref(registry: str, version: str, image: str) -> str:
    return f"{registry}/ocp/{version}:{image}"


def registry_token() -> str:
    """The current oc session token; the user must be logged into the CI cluster."""
    require_tool("oc", "Install the OpenShift client and run 'oc login' first.")
    result = run(["oc", "whoami", "-t"], capture=True)
    token = result.stdout.strip() if result.returncode == 0 else ""
    if not token:
        raise ToolError(
            "Not logged into the CI cluster: 'oc whoami -t' returned no token",
            "Log in with 'oc login' using a token from the CI cluster console.",
        )
    return token


def current_user() -> str:
    result = run(["oc", "whoami"], capture=True)
    user = result.stdout.strip() if result.returncode == 0 else ""
    if not user:
        raise ToolError(
            "Could not determine the oc user name", "Pass --username explicitly."
        )
    return user


def registry_login(tool: str, registry: str, username: str, token: str) -> None:
    result = run(
        [tool, "login", "--username", username, "--password-stdin", registry],
        capture=True,
        input_text=token,
    )
    if result.returncode != 0:
        raise ToolError(
            f"{tool} login to {registry} failed: {result.stderr.strip()}",
            "Check that the oc token is still valid for the registry.",
        )
    logger.info("Logged into %s as %s", registry, username)


def image_available(tool: str, ref: str) -> bool:
    """Pull ref quietly; remove it again when the pull works."""
    result = run([tool, "pull", "--quiet", ref], capture=True)
    if result.returncode != 0:
        logger.debug("Pull failed for %s: %s", ref, result.stderr.strip())
        return False
    cleanup = run([tool, "rmi", ref], capture=True)
    if cleanup.returncode != 0:
        logger.debug("Could not remove %s: %s", ref, cleanup.stderr.strip())
    return True


def check_group(
    tool: str, registry: str, version: str, name: str, images: list[str], on_result=None
) -> ImageGroupResult:
    result = ImageGroupResult(name=name)
    for image in images:
        ok = image_available(tool, image_ref(registry, version, image))
        (result.found if ok else result.missing).append(image)
        if on_result is not None:
            on_result(image, ok)
    return result


def check_images(
    version: str = DEFAULT_VERSION,
    registry: str = DEFAULT_REGISTRY,
    tool: str = "podman",
    username: str | None = None,
    on_result=None,
) -> list[ImageGroupResult]:
    """
    Log into registry with the oc token and probe the core and additional images.

    Args:
        version: Release version used as the image stream name
        registry: Registry host
        tool: podman or docker
        username: Registry user name; defaults to 'oc whoami'
        on_result: Called with (image, available) after each probe

    Returns:
        One ImageGroupResult per image group
    """
    if tool not in CONTAINER_TOOLS:
        raise InvalidParameterError("--tool", tool, " or ".join(CONTAINER_TOOLS))
    require_tool(tool)

    token = registry_token()
    registry_login(tool, registry, username or current_user(), token)

    return [
        check_group(tool, registry, version, "Core", CORE_IMAGES, on_result),
        check_group(tool, registry, version, "Additional", ADDITIONAL_IMAGES, on_result),
    ]


def imagestream_tags(version: str, namespace: str = "ocp") -> list[str]:
    """Tag names of the release image stream, as reported by oc."""
    result = run(
        [
            "oc",
            "get",
            "imagestream",
            version,
            "-n",
            namespace,
            "-o",
            "jsonpath={.spec.tags[*].name}",
        ],
        capture=True,
    )
    if result.returncode != 0:
        raise ToolError(f"oc get imagestream {version} failed: {result.stderr.strip()}")
    return sorted(result.stdout.split())
