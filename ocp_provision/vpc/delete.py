"""
VPC deletion: by stack or cluster name, by VPC Name tag, or in bulk by owner.

Every entry point honours dry_run (no mutating calls) and asks for
confirmation through the supplied callable unless force is set.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from botocore.exceptions import ClientError

from ocp_provision.aws import stacks
from ocp_provision.aws.session import AwsContext, aws_retry, error_code, error_message
from ocp_provision.exceptions import (
    AmbiguousStackError,
    StackNotFoundError,
    VpcDeletionError,
    VpcNotFoundError,
)
from ocp_provision.util.progress import (
    console,
    print_dry_run,
    print_info,
    print_success,
    print_warning,
    show_summary,
    show_table,
)

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]
Prompt = Callable[[str], str]

CFN_STACK_TAG = "aws:cloudformation:stack-name"


def _always_no(message: str) -> bool:
    return False


def _tag(resource: dict, key: str) -> str | None:
    for tag in resource.get("Tags", []) or []:
        if tag.get("Key") == key:
            return tag.get("Value")
    return None


def resolve_stack(
    ctx: AwsContext, stack_name: str | None = None, cluster_name: str | None = None
) -> str:
    """
    Pick the VPC stack to delete.

    An explicit stack name wins. Otherwise exactly one active stack whose name
    contains both the cluster name and "vpc" must exist.
    """
    if stack_name:
        if not stacks.stack_exists(ctx, stack_name):
            raise StackNotFoundError(f"stack name '{stack_name}'", stacks.list_stack_names(ctx))
        return stack_name

    matches = stacks.find_stacks(ctx, cluster_name or "", "vpc")
    if not matches:
        raise StackNotFoundError(f"cluster '{cluster_name}'", stacks.list_stack_names(ctx))
    if len(matches) > 1:
        raise AmbiguousStackError(f"cluster '{cluster_name}'", matches)
    return matches[0]


def show_stack(ctx: AwsContext, stack_name: str) -> list[dict]:
    """Print stack details and its active resources. Returns the resources."""
    stack = stacks.describe_stack(ctx, stack_name) or {"StackName": stack_name}
    show_summary("CloudFormation Stack", stacks.stack_details(stack))
    resources = stacks.list_active_resources(ctx, stack_name)
    show_table(
        f"Resources in {stack_name}",
        ["Logical ID", "Type", "Physical ID", "Status"],
        [
            [
                r.get("LogicalResourceId", ""),
                r.get("ResourceType", ""),
                r.get("PhysicalResourceId", ""),
                r.get("ResourceStatus", ""),
            ]
            for r in resources
        ],
    )
    return resources


def _delete_and_wait(ctx: AwsContext, stack_name: str) -> None:
    stacks.delete_stack(ctx, stack_name)
    print_info(f"Waiting for stack {stack_name} to be deleted...")
    stacks.wait_for_delete(ctx, stack_name)
    print_success(f"Stack {stack_name} deleted")


def delete_vpc_stack(
    ctx: AwsContext,
    stack_name: str | None = None,
    cluster_name: str | None = None,
    dry_run: bool = False,
    force: bool = False,
    confirm: Confirm = _always_no,
) -> bool:
    """
    Delete a VPC stack chosen by name or by cluster.

    Returns:
        True if the stack was deleted; False for dry runs and declined prompts
    """
    ctx.validate_credentials()
    target = resolve_stack(ctx, stack_name, cluster_name)
    show_stack(ctx, target)

    if dry_run:
        print_dry_run(f"Would delete stack {target}")
        console.print(ctx.cli_hint("cloudformation", "delete-stack", "--stack-name", target))
        return False

    if not force and not confirm(f"Delete CloudFormation stack {target}?"):
        print_warning("Deletion cancelled")
        return False

    _delete_and_wait(ctx, target)
    return True


@aws_retry
def find_vpc_by_name(ctx: AwsContext, vpc_name: str) -> dict | None:
    """First VPC whose Name tag equals vpc_name."""
    response = ctx.client("ec2").describe_vpcs(
        Filters=[{"Name": "tag:Name", "Values": [vpc_name]}]
    )
    vpcs = response.get("Vpcs", [])
    return vpcs[0] if vpcs else None


@aws_retry
def list_vpc_names(ctx: AwsContext) -> list[str]:
    """'<vpc-id> (<Name tag>)' for every VPC in the region."""
    response = ctx.client("ec2").describe_vpcs()
    return [f"{v['VpcId']} ({_tag(v, 'Name') or 'unnamed'})" for v in response.get("Vpcs", [])]


@dataclass
class VpcInventory:
    """Resources that live in, or are attached to, a VPC."""

    subnets: list[str] = field(default_factory=list)
    route_tables: list[str] = field(default_factory=list)
    security_groups: list[str] = field(default_factory=list)
    internet_gateways: list[str] = field(default_factory=list)
    nat_gateways: list[str] = field(default_factory=list)
    instances: list[str] = field(default_factory=list)
    load_balancers: list[str] = field(default_factory=list)

    def rows(self) -> list[list[str]]:
        return [
            ["Subnets", ", ".join(self.subnets)],
            ["Route Tables", ", ".join(self.route_tables)],
            ["Security Groups", ", ".join(self.security_groups)],
            ["Internet Gateways", ", ".join(self.internet_gateways)],
            ["NAT Gateways", ", ".join(self.nat_gateways)],
            ["EC2 Instances", ", ".join(self.instances)],
            ["Load Balancers", ", ".join(self.load_balancers)],
        ]


@aws_retry
def vpc_inventory(ctx: AwsContext, vpc_id: str) -> VpcInventory:
    ec2 = ctx.client("ec2")
    vpc_filter = [{"Name": "vpc-id", "Values": [vpc_id]}]

    instances = ec2.describe_instances(
        Filters=vpc_filter
        + [{"Name": "instance-state-name", "Values": ["running", "stopped"]}]
    )
    load_balancers = ctx.client("elbv2").describe_load_balancers()

    return VpcInventory(
        subnets=[s["SubnetId"] for s in ec2.describe_subnets(Filters=vpc_filter)["Subnets"]],
        route_tables=[
            r["RouteTableId"] for r in ec2.describe_route_tables(Filters=vpc_filter)["RouteTables"]
        ],
        security_groups=[
            g["GroupId"]
            for g in ec2.describe_security_groups(Filters=vpc_filter)["SecurityGroups"]
            if g.get("GroupName") != "default"
        ],
        internet_gateways=[
            i["InternetGatewayId"]
            for i in ec2.describe_internet_gateways(
                Filters=[{"Name": "attachment.vpc-id", "Values": [vpc_id]}]
            )["InternetGateways"]
        ],
        nat_gateways=[
            n["NatGatewayId"]
            for n in ec2.describe_nat_gateways(Filters=vpc_filter)["NatGateways"]
            if n.get("State") != "deleted"
        ],
        instances=[
            i["InstanceId"]
            for reservation in instances.get("Reservations", [])
            for i in reservation.get("Instances", [])
        ],
        load_balancers=[
            lb["LoadBalancerArn"]
            for lb in load_balancers.get("LoadBalancers", [])
            if lb.get("VpcId") == vpc_id
        ],
    )


def _stack_for_vpc(ctx: AwsContext, vpc: dict | None, vpc_name: str) -> str | None:
    # A found VPC is owned only by the stack named in its tag
    if vpc is not None:
        tagged = _tag(vpc, CFN_STACK_TAG)
        return tagged if tagged and stacks.stack_exists(ctx, tagged) else None
    return _search_stack(ctx, vpc_name)


def _search_stack(ctx: AwsContext, vpc_name: str) -> str | None:
    matches = stacks.find_stacks(ctx, vpc_name)
    if len(matches) > 1:
        raise AmbiguousStackError(f"VPC name '{vpc_name}'", matches)
    return matches[0] if matches else None


def delete_vpc_by_name(
    ctx: AwsContext,
    vpc_name: str,
    dry_run: bool = False,
    force: bool = False,
    confirm: Confirm = _always_no,
) -> bool:
    """
    Delete the VPC tagged Name=vpc_name, preferring its CloudFormation stack.

    Falls back to a direct DeleteVpc call when no stack owns it; a
    DependencyViolation there triggers one more stack search.

    Returns:
        True if something was deleted
    """
    ctx.validate_credentials()
    vpc = find_vpc_by_name(ctx, vpc_name)
    stack_name = _stack_for_vpc(ctx, vpc, vpc_name)

    if vpc is None and stack_name is None:
        raise VpcNotFoundError(vpc_name, list_vpc_names(ctx))

    if vpc is not None:
        vpc_id = vpc["VpcId"]
        show_summary(
            "VPC",
            {
                "VPC ID": vpc_id,
                "Name": vpc_name,
                "CIDR": vpc.get("CidrBlock", ""),
                "State": vpc.get("State", ""),
                "Stack": stack_name or "none",
            },
        )
        show_table(f"Resources in {vpc_id}", ["Type", "IDs"], vpc_inventory(ctx, vpc_id).rows())
    else:
        print_warning(f"No VPC tagged Name={vpc_name}; found stack {stack_name}")
        show_stack(ctx, stack_name)

    target = f"stack {stack_name}" if stack_name else f"VPC {vpc['VpcId']}"
    if dry_run:
        print_dry_run(f"Would delete {target}")
        if stack_name:
            hint = ctx.cli_hint("cloudformation", "delete-stack", "--stack-name", stack_name)
        else:
            hint = ctx.cli_hint("ec2", "delete-vpc", "--vpc-id", vpc["VpcId"])
        console.print(hint)
        return False

    if not force and not confirm(f"Delete {target}?"):
        print_warning("Deletion cancelled")
        return False

    if stack_name:
        _delete_and_wait(ctx, stack_name)
        return True

    vpc_id = vpc["VpcId"]
    try:
        ctx.client("ec2").delete_vpc(VpcId=vpc_id)
    except ClientError as e:
        if error_code(e) != "DependencyViolation":
            raise VpcDeletionError(vpc_id, error_message(e)) from e
        logger.warning("DeleteVpc %s hit DependencyViolation; searching for a stack", vpc_id)
        fallback = _search_stack(ctx, vpc_id) or _search_stack(ctx, vpc_name)
        if not fallback:
            raise VpcDeletionError(vpc_id, error_message(e)) from e
        _delete_and_wait(ctx, fallback)
        return True

    print_success(f"VPC {vpc_id} deleted")
    return True


@dataclass
class OwnerDeletionReport:
    """Outcome of a bulk delete-by-owner run."""

    candidates: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    timed_out: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed and not self.timed_out


def delete_vpcs_by_owner(
    ctx: AwsContext,
    owner_id: str,
    filter_pattern: str = "vpc",
    dry_run: bool = False,
    force: bool = False,
    prompt: Prompt = lambda message: "",
    max_wait: int = 1800,
    interval: int = 30,
    sleep: Callable[[float], None] = time.sleep,
) -> OwnerDeletionReport:
    """
    Delete every VPC stack in the account matching filter_pattern.

    The owner id is compared with the caller's account and a mismatch is only
    warned about. Deletion requires typing "yes" unless force is set.
    """
    report = OwnerDeletionReport()
    account = ctx.account_id
    if owner_id != account:
        print_warning(f"Owner ID {owner_id} differs from current account {account}")
        logger.warning("Owner ID %s differs from caller account %s", owner_id, account)

    for name in stacks.find_stacks(ctx, filter_pattern):
        if stacks.is_vpc_stack(ctx, name):
            report.candidates.append(name)
        else:
            logger.debug("Skipping %s: no AWS::EC2::VPC resource", name)

    if not report.candidates:
        print_info(f"No VPC stacks matching '{filter_pattern}' found")
        return report

    show_table(
        f"VPC stacks owned by {owner_id}",
        ["Stack", "Status", "Created"],
        [
            [s["Stack"], s["Status"], s["Created"]]
            for s in (
                stacks.stack_details(stacks.describe_stack(ctx, name) or {"StackName": name})
                for name in report.candidates
            )
        ],
    )

    if dry_run:
        for name in report.candidates:
            print_dry_run(f"Would delete stack {name}")
            console.print(ctx.cli_hint("cloudformation", "delete-stack", "--stack-name", name))
        return report

    if not force:
        answer = prompt(
            f"Type 'yes' to delete {len(report.candidates)} VPC stack(s) in {ctx.region}"
        )
        if answer.strip() != "yes":
            print_warning("Deletion cancelled")
            report.cancelled = True
            return report

    for name in report.candidates:
        logger.info("Deleting VPC stack %s", name)
        try:
            stacks.delete_stack(ctx, name)
        except ClientError as e:
            logger.error("DeleteStack %s failed: %s", name, error_message(e))
            report.failed.append(name)
            continue

        outcome = stacks.poll_for_delete(
            ctx, name, max_wait=max_wait, interval=interval, sleep=sleep
        )
        if outcome == stacks.DELETED:
            print_success(f"Stack {name} deleted")
            report.deleted.append(name)
        elif outcome == stacks.FAILED:
            print_warning(f"Stack {name} deletion failed")
            report.failed.append(name)
        else:
            print_warning(f"Timed out waiting for stack {name}")
            report.timed_out.append(name)

    show_summary(
        "Delete by owner",
        {
            "Deleted": len(report.deleted),
            "Failed": len(report.failed),
            "Timed out": len(report.timed_out),
        },
    )
    return report
