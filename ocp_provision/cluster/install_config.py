"""
install-config.yaml generation for an IPI install into an existing VPC.
"""

import json
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from ocp_provision.exceptions import InvalidParameterError, MissingCredentialError
from ocp_provision.util.files import ensure_dir, read_text
from ocp_provision.vpc.outputs import DEPLOY_REQUIRED, VpcOutputs

logger = logging.getLogger(__name__)

INSTALL_CONFIG = "install-config.yaml"
BACKUP_PREFIX = "install-config.yaml.backup."

PUBLISH_STRATEGIES = ("External", "Internal")
NETWORK_TYPES = ("OpenShiftSDN", "OVNKubernetes")

CLUSTER_NETWORK = "10.128.0.0/14"
HOST_PREFIX = 23
SERVICE_NETWORK = "172.30.0.0/16"
DEFAULT_MACHINE_NETWORK = "10.0.0.0/16"


@dataclass
class ClusterOptions:
    cluster_name: str = "my-cluster"
    base_domain: str = "example.com"
    openshift_version: str = "4.18.15"
    vpc_output_dir: Path = Path("vpc-output")
    install_dir: Path = Path("openshift-install")
    pull_secret: str | None = None
    pull_secret_file: Path | None = None
    ssh_key: str | None = None
    ssh_key_file: Path | None = None
    compute_nodes: int = 3
    control_plane_nodes: int = 3
    compute_instance_type: str = "m5.xlarge"
    control_plane_instance_type: str = "m5.xlarge"
    publish_strategy: str = "Internal"
    network_type: str = "OVNKubernetes"


def _resolve(value: str | None, path: Path | None, what: str, flag: str) -> str:
    if value is None and path is not None:
        p = Path(path)
        if not p.is_file():
            raise InvalidParameterError(f"{flag}-file", str(p), "an existing file")
        value = read_text(p)
    if not value or not value.strip():
        raise MissingCredentialError(what, flag)
    return value.strip()


def resolve_pull_secret(options: ClusterOptions) -> str:
    """Pull secret text, checked to be JSON."""
    secret = _resolve(
        options.pull_secret, options.pull_secret_file, "Pull secret", "--pull-secret"
    )
    try:
        json.loads(secret)
    except json.JSONDecodeError as e:
        raise InvalidParameterError(
            "--pull-secret", "<redacted>", f"a JSON pull secret from console.redhat.com ({e.msg})"
        ) from e
    return secret


def resolve_ssh_key(options: ClusterOptions) -> str:
    return _resolve(options.ssh_key, options.ssh_key_file, "SSH public key", "--ssh-key")


def validate_options(options: ClusterOptions) -> None:
    if options.publish_strategy not in PUBLISH_STRATEGIES:
        raise InvalidParameterError(
            "--publish-strategy", options.publish_strategy, " or ".join(PUBLISH_STRATEGIES)
        )
    if options.network_type not in NETWORK_TYPES:
        raise InvalidParameterError(
            "--network-type", options.network_type, " or ".join(NETWORK_TYPES)
        )
    if options.compute_nodes < 1:
        raise InvalidParameterError("--compute-nodes", options.compute_nodes, "at least 1")
    if options.control_plane_nodes < 1:
        raise InvalidParameterError(
            "--control-plane-nodes", options.control_plane_nodes, "at least 1"
        )


def _machine_pool(name: str, instance_type: str, zones: list[str], replicas: int) -> dict:
    return {
        "architecture": "amd64",
        "hyperthreading": "Enabled",
        "name": name,
        "platform": {"aws": {"type": instance_type, "zones": list(zones)}},
        "replicas": replicas,
    }


def build_install_config(
    options: ClusterOptions, vpc: VpcOutputs, pull_secret: str, ssh_key: str
) -> dict[str, Any]:
    """
    Assemble install-config.yaml as a dict.

    The machine network is the VPC CIDR; older output directories without a
    vpc-cidr file fall back to 10.0.0.0/16.
    """
    return {
        "apiVersion": "v1",
        "baseDomain": options.base_domain,
        "compute": [
            _machine_pool(
                "worker",
                options.compute_instance_type,
                vpc.availability_zones,
                options.compute_nodes,
            )
        ],
        "controlPlane": _machine_pool(
            "master",
            options.control_plane_instance_type,
            vpc.availability_zones,
            options.control_plane_nodes,
        ),
        "metadata": {"name": options.cluster_name},
        "networking": {
            "clusterNetwork": [{"cidr": CLUSTER_NETWORK, "hostPrefix": HOST_PREFIX}],
            "machineNetwork": [{"cidr": vpc.vpc_cidr or DEFAULT_MACHINE_NETWORK}],
            "networkType": options.network_type,
            "serviceNetwork": [SERVICE_NETWORK],
        },
        "platform": {
            "aws": {
                "region": vpc.region,
                "subnets": list(vpc.private_subnet_ids),
                "vpc": {"id": vpc.vpc_id},
            }
        },
        "publish": options.publish_strategy,
        "pullSecret": pull_secret,
        "sshKey": ssh_key,
    }


def write_install_config(
    config: dict[str, Any], install_dir: str | Path, now: datetime | None = None
) -> tuple[Path, Path]:
    """
    Write install-config.yaml and a timestamped backup copy.

    openshift-install consumes install-config.yaml, so the backup is what
    remains afterwards.

    Returns:
        (config path, backup path)
    """
    d = ensure_dir(install_dir)
    config_path = d / INSTALL_CONFIG
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)

    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    backup_path = d / f"{BACKUP_PREFIX}{stamp}"
    shutil.copy2(config_path, backup_path)
    logger.info("Wrote %s (backup %s)", config_path, backup_path.name)
    return config_path, backup_path


def prepare_install_config(options: ClusterOptions) -> tuple[dict[str, Any], Path, Path]:
    """Validate inputs, read VPC outputs and write the config plus backup."""
    validate_options(options)
    pull_secret = resolve_pull_secret(options)
    ssh_key = resolve_ssh_key(options)
    vpc = VpcOutputs.read(options.vpc_output_dir, required=DEPLOY_REQUIRED)
    if not vpc.private_subnet_ids:
        raise InvalidParameterError(
            "--vpc-output-dir",
            str(options.vpc_output_dir),
            "a VPC with private subnets (the VPC was created with --public-only)",
        )

    config = build_install_config(options, vpc, pull_secret, ssh_key)
    config_path, backup_path = write_install_config(config, options.install_dir)
    return config, config_path, backup_path


def latest_backup(install_dir: str | Path) -> Path | None:
    """Most recent install-config backup in install_dir."""
    backups = sorted(Path(install_dir).glob(f"{BACKUP_PREFIX}*"))
    return backups[-1] if backups else None
