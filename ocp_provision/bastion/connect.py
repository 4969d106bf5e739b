"""
SSH access to the bastion host recorded in a bastion output directory.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ocp_provision.bastion.ami import AMAZON_LINUX_USER
from ocp_provision.bastion.create import (
    INSTANCE_ID_FILE,
    KEY_NAME_FILE,
    PUBLIC_IP_FILE,
    SSH_USER_FILE,
    default_key_name,
)
from ocp_provision.exceptions import OutputFilesMissingError, ToolError
from ocp_provision.util.files import read_value
from ocp_provision.util.process import require_tool, run
from ocp_provision.util.progress import print_info, print_success, print_warning
from ocp_provision.util.templates import TemplateLoader

logger = logging.getLogger(__name__)

REMOTE_KUBECONFIG_DIR = "~/openshift/"
REMOTE_SETUP_SCRIPT = "/tmp/setup_bastion_env.sh"
SSH_OPTIONS = ["-o", "StrictHostKeyChecking=accept-new"]


@dataclass
class BastionAccess:
    key_file: Path
    instance_id: str
    public_ip: str
    ssh_user: str

    @property
    def target(self) -> str:
        return f"{self.ssh_user}@{self.public_ip}"

    def ssh_command(self, *remote: str) -> list[str]:
        return ["ssh", "-i", str(self.key_file), *SSH_OPTIONS, self.target, *remote]

    def scp_command(self, source: str, destination: str) -> list[str]:
        return [
            "scp",
            "-i",
            str(self.key_file),
            *SSH_OPTIONS,
            source,
            f"{self.target}:{destination}",
        ]


def load_access(bastion_dir: str | Path, cluster_name: str) -> BastionAccess:
    """
    Read key, instance id, public ip and user from the bastion directory.

    The key name comes from bastion-ssh-key-name when present, otherwise
    <cluster>-bastion-key. The user defaults to ec2-user.
    """
    d = Path(bastion_dir)
    key_name = read_value(d / KEY_NAME_FILE, default_key_name(cluster_name))
    key_file = d / f"{key_name}.pem"

    missing = [
        str(p.name)
        for p in (key_file, d / INSTANCE_ID_FILE, d / PUBLIC_IP_FILE)
        if not p.is_file()
    ]
    if missing:
        raise OutputFilesMissingError(
            str(d), missing, f"ocp-provision bastion create --output-dir {d}"
        )

    return BastionAccess(
        key_file=key_file,
        instance_id=read_value(d / INSTANCE_ID_FILE),
        public_ip=read_value(d / PUBLIC_IP_FILE),
        ssh_user=read_value(d / SSH_USER_FILE, AMAZON_LINUX_USER),
    )


def fix_key_permissions(key_file: Path) -> None:
    """ssh refuses keys readable by others."""
    os.chmod(key_file, 0o600)


def copy_kubeconfig(access: BastionAccess, install_dir: str | Path) -> bool:
    """
    scp <install_dir>/auth/kubeconfig to ~/openshift/ on the bastion.

    Returns:
        True on success; False when the kubeconfig is missing or scp failed
    """
    kubeconfig = Path(install_dir) / "auth" / "kubeconfig"
    if not kubeconfig.is_file():
        print_warning(f"Kubeconfig not found at {kubeconfig}")
        print_info(
            "Copy it manually once the cluster is installed:\n"
            f"  scp -i {access.key_file} <kubeconfig> {access.target}:{REMOTE_KUBECONFIG_DIR}"
        )
        return False

    result = run(access.scp_command(str(kubeconfig), REMOTE_KUBECONFIG_DIR))
    if result.returncode != 0:
        print_warning(f"scp exited with code {result.returncode}")
        return False
    print_success(f"Copied kubeconfig to {access.target}:{REMOTE_KUBECONFIG_DIR}")
    return True


def setup_environment(access: BastionAccess) -> None:
    """Upload, run and remove the environment setup script on the bastion."""
    script = TemplateLoader().render("bastion-setup-env.sh.j2", {})
    with tempfile.NamedTemporaryFile("w", suffix=".sh", delete=False) as f:
        f.write(script)
        local_script = Path(f.name)

    try:
        upload = run(access.scp_command(str(local_script), REMOTE_SETUP_SCRIPT))
        if upload.returncode != 0:
            raise ToolError(
                f"Failed to upload setup script (scp exit {upload.returncode})",
                f"Check connectivity: ssh -i {access.key_file} {access.target}",
            )
        run(access.ssh_command(f"bash {REMOTE_SETUP_SCRIPT}"))
        run(access.ssh_command(f"rm -f {REMOTE_SETUP_SCRIPT}"))
    finally:
        local_script.unlink(missing_ok=True)


def connect(
    bastion_dir: str | Path,
    cluster_name: str,
    install_dir: str | Path = "openshift-install",
    copy_kube: bool = False,
    setup_env: bool = False,
) -> int:
    """
    Run the requested bastion actions.

    Without setup_env this ends in an interactive ssh session whose exit
    code is returned.
    """
    access = load_access(bastion_dir, cluster_name)
    require_tool("ssh")
    fix_key_permissions(access.key_file)
    print_info(f"Bastion {access.instance_id} at {access.public_ip} (user {access.ssh_user})")

    if copy_kube:
        copy_kubeconfig(access, install_dir)

    if setup_env:
        setup_environment(access)
        return 0

    logger.info("Opening ssh session to %s", access.target)
    return run(access.ssh_command()).returncode
