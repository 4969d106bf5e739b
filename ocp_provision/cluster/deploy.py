"""
Cluster deploy and destroy workflows.
"""

import logging
import shlex
from collections.abc import Callable
from pathlib import Path

from ocp_provision.aws.session import AwsContext
from ocp_provision.cluster import installer
from ocp_provision.cluster.install_config import ClusterOptions, prepare_install_config
from ocp_provision.exceptions import ToolError
from ocp_provision.util.progress import (
    console,
    print_dry_run,
    print_success,
    print_warning,
    show_summary,
)

logger = logging.getLogger(__name__)


def _always_no(message: str) -> bool:
    return False


def deploy_cluster(
    ctx: AwsContext,
    options: ClusterOptions,
    dry_run: bool = False,
    confirm: Callable[[str], bool] = _always_no,
) -> bool:
    """
    Generate install-config.yaml and run the installer.

    Returns:
        True if the cluster was installed; False for dry runs or a declined prompt
    """
    config, config_path, backup_path = prepare_install_config(options)
    ctx.validate_credentials()

    aws = config["platform"]["aws"]
    show_summary(
        "OpenShift Configuration",
        {
            "Cluster": options.cluster_name,
            "Base domain": options.base_domain,
            "Version": options.openshift_version,
            "Region": aws["region"],
            "VPC": aws["vpc"]["id"],
            "Private subnets": ",".join(aws["subnets"]),
            "Control plane": (
                f"{options.control_plane_nodes} x {options.control_plane_instance_type}"
            ),
            "Compute": f"{options.compute_nodes} x {options.compute_instance_type}",
            "Publish": options.publish_strategy,
            "Network": options.network_type,
            "Config": str(config_path),
            "Backup": backup_path.name,
        },
    )

    if dry_run:
        print_dry_run("Generated install-config.yaml only")
        install_dir = shlex.quote(str(options.install_dir))
        console.print(f"To install: openshift-install create cluster --dir {install_dir}")
        return False

    if not confirm("Proceed with the OpenShift installation?"):
        print_warning("Installation cancelled")
        return False

    binary = installer.ensure_installer(options.openshift_version, options.install_dir)
    console.print("[bold blue]Starting OpenShift installation (30-45 minutes)...[/bold blue]")
    installer.create_cluster(binary, options.install_dir)

    endpoints = installer.cluster_endpoints(options.cluster_name, options.base_domain)
    password_file = Path(options.install_dir) / "auth" / "kubeadmin-password"
    show_summary(
        "Cluster Ready",
        {
            **endpoints,
            "Username": "kubeadmin",
            "Password file": str(password_file),
            "Kubeconfig": str(Path(options.install_dir) / "auth" / "kubeconfig"),
        },
    )
    print_success("OpenShift installation completed")
    return True


def destroy_cluster(
    install_dir: str | Path,
    dry_run: bool = False,
    force: bool = False,
    confirm: Callable[[str], bool] = _always_no,
) -> bool:
    """
    Destroy the cluster recorded in install_dir.

    Returns:
        True if destroy ran; False for dry runs or a declined prompt
    """
    d = installer.check_destroyable(install_dir)
    binary = installer.find_installer(d)
    command = installer.destroy_command(binary or installer.INSTALLER_BINARY, d)

    if dry_run:
        print_dry_run(f"Would run: {shlex.join(command)}")
        return False

    if not force and not confirm(
        f"Permanently delete the cluster in {d} and all its AWS resources?"
    ):
        print_warning("Deletion cancelled")
        return False

    if binary is None:
        raise ToolError(
            "openshift-install not found on PATH or in the install directory",
            f"Download {installer.MIRROR_URL}/<version>/{installer.INSTALLER_ARCHIVE}\n"
            f"and extract openshift-install into {d}",
        )

    console.print("[bold blue]Destroying cluster (10-20 minutes)...[/bold blue]")
    installer.destroy_cluster(binary, d)
    print_success("Cluster deletion completed")
    logger.info("Destroyed cluster in %s", d)
    return True
