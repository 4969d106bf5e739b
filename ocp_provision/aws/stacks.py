"""
CloudFormation stack operations.

All functions take an AwsContext first. Read-only calls retry on throttling;
mutating calls are made once and never in dry-run mode.
"""

import logging
import time
from collections.abc import Callable

from botocore.exceptions import ClientError, WaiterError

from ocp_provision.aws.session import AwsContext, aws_retry, error_code, error_message
from ocp_provision.exceptions import StackOperationError

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ["CREATE_COMPLETE", "UPDATE_COMPLETE"]

# Poll outcomes
DELETED = "deleted"
FAILED = "failed"
TIMED_OUT = "timeout"


def _is_missing_stack(error: ClientError) -> bool:
    return error_code(error) == "ValidationError" and "does not exist" in error_message(error)


def create_stack(
    ctx: AwsContext,
    name: str,
    template_body: str,
    parameters: list[dict[str, str]],
    tags: dict[str, str],
) -> str:
    """Submit a stack with CAPABILITY_IAM. Returns the stack id."""
    logger.info("Creating stack %s in %s", name, ctx.region)
    response = ctx.client("cloudformation").create_stack(
        StackName=name,
        TemplateBody=template_body,
        Parameters=parameters,
        Capabilities=["CAPABILITY_IAM"],
        Tags=[{"Key": k, "Value": v} for k, v in tags.items()],
    )
    return response["StackId"]


@aws_retry
def describe_stack(ctx: AwsContext, name: str) -> dict | None:
    """Return the stack description, or None if no such stack exists."""
    try:
        response = ctx.client("cloudformation").describe_stacks(StackName=name)
    except ClientError as e:
        if _is_missing_stack(e):
            return None
        raise
    stacks = response.get("Stacks", [])
    return stacks[0] if stacks else None


def stack_exists(ctx: AwsContext, name: str) -> bool:
    return describe_stack(ctx, name) is not None


def stack_outputs(stack: dict) -> dict[str, str]:
    """Map OutputKey to OutputValue."""
    return {o["OutputKey"]: o.get("OutputValue", "") for o in stack.get("Outputs", [])}


@aws_retry
def list_stack_names(ctx: AwsContext, statuses: list[str] | None = None) -> list[str]:
    """All stack names in the given statuses (default: active ones)."""
    paginator = ctx.client("cloudformation").get_paginator("list_stacks")
    names = []
    for page in paginator.paginate(StackStatusFilter=statuses or ACTIVE_STATUSES):
        names.extend(s["StackName"] for s in page.get("StackSummaries", []))
    return names


def find_stacks(ctx: AwsContext, *patterns: str) -> list[str]:
    """
    Find active stacks whose name contains every pattern.

    Matching is case-sensitive substring containment, the same as a
    JMESPath contains() filter on StackName.
    """
    return [name for name in list_stack_names(ctx) if all(p in name for p in patterns)]


@aws_retry
def list_active_resources(ctx: AwsContext, name: str) -> list[dict]:
    """Stack resources whose status is not DELETE_COMPLETE."""
    paginator = ctx.client("cloudformation").get_paginator("list_stack_resources")
    resources = []
    for page in paginator.paginate(StackName=name):
        for resource in page.get("StackResourceSummaries", []):
            if resource.get("ResourceStatus") != "DELETE_COMPLETE":
                resources.append(resource)
    return resources


def is_vpc_stack(ctx: AwsContext, name: str) -> bool:
    """True when the stack holds an AWS::EC2::VPC resource."""
    return any(r.get("ResourceType") == "AWS::EC2::VPC" for r in list_active_resources(ctx, name))


def stack_details(stack: dict) -> dict[str, str]:
    """Display fields for a stack."""
    return {
        "Stack": stack.get("StackName", ""),
        "Status": stack.get("StackStatus", ""),
        "Created": str(stack.get("CreationTime", "")),
        "Description": stack.get("Description", ""),
    }


def delete_stack(ctx: AwsContext, name: str, dry_run: bool = False) -> bool:
    """
    Request stack deletion.

    Returns:
        True if the delete was requested, False in dry-run mode
    """
    if dry_run:
        logger.info("Dry run: would delete stack %s", name)
        return False
    logger.info("Deleting stack %s in %s", name, ctx.region)
    ctx.client("cloudformation").delete_stack(StackName=name)
    return True


def _wait(ctx: AwsContext, waiter_name: str, name: str, operation: str, delay: int, attempts: int):
    waiter = ctx.client("cloudformation").get_waiter(waiter_name)
    try:
        waiter.wait(StackName=name, WaiterConfig={"Delay": delay, "MaxAttempts": attempts})
    except WaiterError as e:
        stack = describe_stack(ctx, name)
        status = stack.get("StackStatus") if stack else None
        reason = (stack or {}).get("StackStatusReason") or str(e)
        raise StackOperationError(name, operation, status, reason) from e


def wait_for_create(ctx: AwsContext, name: str, delay: int = 30, max_attempts: int = 120) -> None:
    """Block until the stack reaches CREATE_COMPLETE."""
    _wait(ctx, "stack_create_complete", name, "create", delay, max_attempts)


def wait_for_delete(ctx: AwsContext, name: str, delay: int = 30, max_attempts: int = 120) -> None:
    """Block until the stack reaches DELETE_COMPLETE or disappears."""
    _wait(ctx, "stack_delete_complete", name, "delete", delay, max_attempts)


def poll_for_delete(
    ctx: AwsContext,
    name: str,
    max_wait: int = 1800,
    interval: int = 30,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    Poll a deleting stack until it is gone, failed, or max_wait elapses.

    Returns:
        DELETED, FAILED or TIMED_OUT
    """
    elapsed = 0
    while elapsed < max_wait:
        stack = describe_stack(ctx, name)
        status = stack.get("StackStatus") if stack else "DELETE_COMPLETE"

        if status == "DELETE_COMPLETE":
            logger.info("Stack %s deleted", name)
            return DELETED
        if status == "DELETE_FAILED":
            logger.error("Stack %s deletion failed: %s", name, stack.get("StackStatusReason"))
            return FAILED

        logger.debug("Stack %s status %s (%ds elapsed)", name, status, elapsed)
        sleep(interval)
        elapsed += interval

    logger.warning("Timed out after %ds waiting for stack %s", max_wait, name)
    return TIMED_OUT
