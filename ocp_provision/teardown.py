"""
Full teardown of a cluster environment.

Steps run in dependency order: the OpenShift cluster, the bastion host, the
SSH key pairs, the VPC stack and finally the local output directories. A
failed step stops the run; the remaining steps are reported as skipped.
"""

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from botocore.exceptions import ClientError, WaiterError

from ocp_provision.aws import stacks
from ocp_provision.aws.session import AwsContext, error_code
from ocp_provision.bastion.create import (
    IAM_ROLE_FILE,
    INSTANCE_ID_FILE,
    KEY_NAME_FILE,
    S3_READ_ONLY_POLICY,
    SECURITY_GROUP_FILE,
    default_key_name,
    key_pair_exists,
)
from ocp_provision.cluster import deploy, installer
from ocp_provision.exceptions import OcpProvisionError
from ocp_provision.util.files import read_value
from ocp_provision.util.progress import StepTracker, print_error, print_warning, show_table
from ocp_provision.vpc.outputs import STACK_NAME_FILE

logger = logging.getLogger(__name__)

DONE = "done"
SKIPPED = "skipped"
NOT_FOUND = "not-found"
DRY_RUN = "dry-run"
FAILED = "failed"

STEP_NAMES = [
    "OpenShift cluster",
    "Bastion host",
    "SSH key pairs",
    "VPC stack",
    "Output directories",
]


def _always_no(message: str) -> bool:
    return False


@dataclass
class CleanupOptions:
    cluster_name: str = "my-cluster"
    vpc_output: Path = Path("vpc-output")
    bastion_output: Path = Path("bastion-output")
    install_dir: Path = Path("openshift-install")
    skip_openshift: bool = False
    skip_bastion: bool = False


@dataclass
class StepResult:
    name: str
    status: str
    detail: str = ""


@dataclass
class CleanupReport:
    steps: list[StepResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not any(step.status == FAILED for step in self.steps)

    def rows(self) -> list[list[str]]:
        return [[step.name, step.status, step.detail] for step in self.steps]


class _Teardown:
    def __init__(
        self,
        ctx: AwsContext,
        options: CleanupOptions,
        dry_run: bool,
        force: bool,
        confirm: Callable[[str], bool],
    ):
        self.ctx = ctx
        self.options = options
        self.dry_run = dry_run
        self.force = force
        self.confirm = confirm

    def approved(self, question: str) -> bool:
        return self.force or self.confirm(question)

    def openshift(self) -> tuple[str, str]:
        if self.options.skip_openshift:
            return SKIPPED, "--skip-openshift"
        d = Path(self.options.install_dir)
        # install-config.yaml alone is what a dry-run deploy leaves behind
        if not (d / installer.METADATA_FILE).is_file():
            return NOT_FOUND, f"no {installer.METADATA_FILE} in {d}"
        if deploy.destroy_cluster(d, dry_run=self.dry_run, force=self.force, confirm=self.confirm):
            return DONE, str(d)
        return (DRY_RUN, str(d)) if self.dry_run else (SKIPPED, "declined")

    def bastion(self) -> tuple[str, str]:
        if self.options.skip_bastion:
            return SKIPPED, "--skip-bastion"
        d = Path(self.options.bastion_output)
        instance_id = read_value(d / INSTANCE_ID_FILE)
        if not instance_id:
            return NOT_FOUND, f"no {INSTANCE_ID_FILE} in {d}"
        if self.dry_run:
            return DRY_RUN, f"would terminate {instance_id}"
        if not self.approved(f"Terminate bastion instance {instance_id}?"):
            return SKIPPED, "declined"

        ec2 = self.ctx.client("ec2")
        try:
            ec2.terminate_instances(InstanceIds=[instance_id])
        except ClientError as e:
            if error_code(e) != "InvalidInstanceID.NotFound":
                raise
            return NOT_FOUND, f"{instance_id} no longer exists"
        ec2.get_waiter("instance_terminated").wait(InstanceIds=[instance_id])

        removed = [instance_id]
        group_id = read_value(d / SECURITY_GROUP_FILE)
        if group_id and self._delete_security_group(group_id):
            removed.append(group_id)
        role_name = read_value(d / IAM_ROLE_FILE)
        if role_name:
            self._delete_iam_role(role_name)
            removed.append(role_name)
        return DONE, ", ".join(removed)

    def _delete_security_group(self, group_id: str) -> bool:
        try:
            self.ctx.client("ec2").delete_security_group(GroupId=group_id)
        except ClientError as e:
            if error_code(e) != "InvalidGroup.NotFound":
                raise
            return False
        return True

    def _delete_iam_role(self, role_name: str) -> None:
        iam = self.ctx.client("iam")
        calls = [
            (
                iam.remove_role_from_instance_profile,
                {"InstanceProfileName": role_name, "RoleName": role_name},
            ),
            (iam.delete_instance_profile, {"InstanceProfileName": role_name}),
            (iam.detach_role_policy, {"RoleName": role_name, "PolicyArn": S3_READ_ONLY_POLICY}),
            (iam.delete_role, {"RoleName": role_name}),
        ]
        for call, kwargs in calls:
            try:
                call(**kwargs)
            except ClientError as e:
                if error_code(e) != "NoSuchEntity":
                    raise
                logger.debug("IAM entity already gone: %s", kwargs)

    def key_pairs(self) -> tuple[str, str]:
        names = [f"{self.options.cluster_name}-key", default_key_name(self.options.cluster_name)]
        recorded = read_value(Path(self.options.bastion_output) / KEY_NAME_FILE)
        if recorded and recorded not in names:
            names.append(recorded)
        existing = [name for name in names if key_pair_exists(self.ctx, name)]
        if not existing:
            return NOT_FOUND, ", ".join(names)
        if self.dry_run:
            return DRY_RUN, f"would delete {', '.join(existing)}"
        if not self.approved(f"Delete key pairs {', '.join(existing)}?"):
            return SKIPPED, "declined"
        ec2 = self.ctx.client("ec2")
        for name in existing:
            ec2.delete_key_pair(KeyName=name)
        return DONE, ", ".join(existing)

    def vpc_stack(self) -> tuple[str, str]:
        d = Path(self.options.vpc_output)
        stack_name = read_value(d / STACK_NAME_FILE)
        if not stack_name:
            return NOT_FOUND, f"no {STACK_NAME_FILE} in {d}"
        if stacks.describe_stack(self.ctx, stack_name) is None:
            return NOT_FOUND, f"{stack_name} no longer exists"
        if self.dry_run:
            resources = stacks.list_active_resources(self.ctx, stack_name)
            return DRY_RUN, f"would delete {stack_name} ({len(resources)} resources)"
        if not self.approved(f"Delete VPC stack {stack_name} with its subnets and NAT gateways?"):
            return SKIPPED, "declined"
        stacks.delete_stack(self.ctx, stack_name)
        stacks.wait_for_delete(self.ctx, stack_name)
        return DONE, stack_name

    def output_dirs(self) -> tuple[str, str]:
        o = self.options
        dirs = [
            Path(p)
            for p in (o.vpc_output, o.bastion_output, o.install_dir)
            if Path(p).is_dir()
        ]
        if not dirs:
            return NOT_FOUND, ""
        listing = ", ".join(str(d) for d in dirs)
        if self.dry_run:
            return DRY_RUN, f"would remove {listing}"
        if not self.approved(f"Remove local directories {listing}?"):
            return SKIPPED, "declined"
        for d in dirs:
            shutil.rmtree(d)
        return DONE, listing


def run_cleanup(
    ctx: AwsContext,
    options: CleanupOptions,
    dry_run: bool = False,
    force: bool = False,
    confirm: Callable[[str], bool] = _always_no,
) -> CleanupReport:
    """
    Tear down everything created for options.cluster_name.

    Args:
        ctx: AWS context for the region the resources live in
        options: Directories and skip flags
        dry_run: Report what would be deleted without mutating anything
        force: Skip every confirmation prompt
        confirm: Yes/no prompt used when force is False

    Returns:
        CleanupReport with one StepResult per step
    """
    report = CleanupReport()
    ctx.validate_credentials()

    if not dry_run and not force:
        print_warning(
            f"This deletes the OpenShift cluster, bastion host, key pairs and VPC "
            f"for '{options.cluster_name}'"
        )
        if not confirm("Proceed with the full cleanup?"):
            print_warning("Cleanup cancelled")
            report.cancelled = True
            return report

    teardown = _Teardown(ctx, options, dry_run, force, confirm)
    steps = [
        teardown.openshift,
        teardown.bastion,
        teardown.key_pairs,
        teardown.vpc_stack,
        teardown.output_dirs,
    ]

    tracker = StepTracker("Cleanup (dry run)" if dry_run else "Cleanup", len(steps))
    failed = False
    for name, step in zip(STEP_NAMES, steps):
        tracker.begin(name)
        if failed:
            report.steps.append(StepResult(name, SKIPPED, "previous step failed"))
            tracker.record(SKIPPED)
            continue
        try:
            status, detail = step()
        except (OcpProvisionError, ClientError, WaiterError) as e:
            logger.error("Cleanup step '%s' failed: %s", name, e)
            print_error(f"{name}: {e}")
            status, detail = FAILED, str(e).splitlines()[0]
            failed = True
        report.steps.append(StepResult(name, status, detail))
        tracker.record(status)

    tracker.finish()
    show_table("Cleanup Summary", ["Step", "Status", "Detail"], report.rows())
    return report
