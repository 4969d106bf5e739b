"""
VPC creation through the bundled CloudFormation template.
"""

import ipaddress
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from ocp_provision.aws import stacks
from ocp_provision.aws.session import AwsContext, aws_retry
from ocp_provision.exceptions import InvalidParameterError
from ocp_provision.util.files import ensure_dir, write_text
from ocp_provision.util.progress import console, operation_status, print_dry_run, show_summary
from ocp_provision.util.templates import TemplateLoader
from ocp_provision.vpc.outputs import SUMMARY_FILE, VpcOutputs

logger = logging.getLogger(__name__)

TEMPLATE_FILE = Path(__file__).parent.parent / "cloudformation" / "vpc-template.yaml"

MIN_PREFIX, MAX_PREFIX = 16, 24
MIN_AZ_COUNT, MAX_AZ_COUNT = 1, 3
MIN_SUBNET_BITS, MAX_SUBNET_BITS = 5, 13
MAX_ADDITIONAL_SUBNETS = 1

CREATED_BY = "ocp-provision"


@dataclass
class VpcCreateOptions:
    cluster_name: str = "my-cluster"
    vpc_cidr: str = "10.0.0.0/16"
    availability_zone_count: int = 3
    subnet_bits: int = 12
    zones: list[str] = field(default_factory=list)
    public_only: bool = False
    shared_vpc: bool = False
    resource_share_principals: str = ""
    additional_subnets: int = 0
    dhcp_options: bool = False
    output_dir: Path = Path("vpc-output")


def validate_cidr(cidr: str) -> ipaddress.IPv4Network:
    """Parse an IPv4 network with a /16 to /24 prefix."""
    try:
        network = ipaddress.IPv4Network(cidr, strict=True)
    except ValueError as e:
        raise InvalidParameterError(
            "--vpc-cidr", cidr, f"an IPv4 network such as 10.0.0.0/16 ({e})"
        ) from e
    if not MIN_PREFIX <= network.prefixlen <= MAX_PREFIX:
        raise InvalidParameterError(
            "--vpc-cidr", cidr, f"a prefix length between /{MIN_PREFIX} and /{MAX_PREFIX}"
        )
    return network


def validate_options(options: VpcCreateOptions) -> None:
    """Range-check every option the template constrains."""
    validate_cidr(options.vpc_cidr)

    if not MIN_AZ_COUNT <= options.availability_zone_count <= MAX_AZ_COUNT:
        raise InvalidParameterError(
            "--availability-zone-count",
            options.availability_zone_count,
            f"a number between {MIN_AZ_COUNT} and {MAX_AZ_COUNT}",
        )
    if not MIN_SUBNET_BITS <= options.subnet_bits <= MAX_SUBNET_BITS:
        raise InvalidParameterError(
            "--subnet-bits",
            options.subnet_bits,
            f"a number between {MIN_SUBNET_BITS} (/27) and {MAX_SUBNET_BITS} (/19)",
        )
    if not 0 <= options.additional_subnets <= MAX_ADDITIONAL_SUBNETS:
        raise InvalidParameterError("--additional-subnets", options.additional_subnets, "0 or 1")
    if options.zones and len(options.zones) < options.availability_zone_count:
        raise InvalidParameterError(
            "--zones-list",
            ",".join(options.zones),
            f"at least {options.availability_zone_count} availability zones",
        )
    if options.shared_vpc and not options.resource_share_principals:
        raise InvalidParameterError(
            "--resource-share-principals",
            "",
            "an account id or organization ARN when --shared-vpc is set",
        )


@aws_retry
def select_availability_zones(ctx: AwsContext, count: int) -> list[str]:
    """First count available standard zones in the region."""
    response = ctx.client("ec2").describe_availability_zones(
        Filters=[
            {"Name": "state", "Values": ["available"]},
            {"Name": "zone-type", "Values": ["availability-zone"]},
        ]
    )
    zones = sorted(z["ZoneName"] for z in response.get("AvailabilityZones", []))
    if len(zones) < count:
        raise InvalidParameterError(
            "--availability-zone-count", count, f"at most {len(zones)} for region {ctx.region}"
        )
    return zones[:count]


def build_parameters(options: VpcCreateOptions, zones: list[str]) -> list[dict[str, str]]:
    """CloudFormation parameter list for the VPC template."""
    values = {
        "VpcCidr": options.vpc_cidr,
        "AvailabilityZoneCount": str(options.availability_zone_count),
        "SubnetBits": str(options.subnet_bits),
        "DhcpOptionSet": "yes" if options.dhcp_options else "no",
        "OnlyPublicSubnets": "yes" if options.public_only else "no",
        "AllowedAvailabilityZoneList": ",".join(zones),
        "ResourceSharePrincipals": options.resource_share_principals if options.shared_vpc else "",
        "AdditionalSubnetsCount": str(options.additional_subnets),
    }
    return [{"ParameterKey": k, "ParameterValue": v} for k, v in values.items()]


def stack_name_for(cluster_name: str, timestamp: int | None = None) -> str:
    """<cluster>-vpc-<unix-seconds>"""
    return f"{cluster_name}-vpc-{int(timestamp if timestamp is not None else time.time())}"


def create_vpc(
    ctx: AwsContext,
    options: VpcCreateOptions,
    dry_run: bool = False,
    timestamp: int | None = None,
) -> VpcOutputs | None:
    """
    Create the VPC stack and record its outputs.

    Args:
        ctx: AWS context for the target region
        options: Validated creation options
        dry_run: Write template and parameters only
        timestamp: Override for the stack-name suffix

    Returns:
        The recorded VpcOutputs, or None for a dry run
    """
    validate_options(options)
    ctx.validate_credentials()

    zones = options.zones[: options.availability_zone_count] or select_availability_zones(
        ctx, options.availability_zone_count
    )
    stack_name = stack_name_for(options.cluster_name, timestamp)
    output_dir = ensure_dir(options.output_dir)

    show_summary(
        "VPC Configuration",
        {
            "Stack": stack_name,
            "Region": ctx.region,
            "VPC CIDR": options.vpc_cidr,
            "Cluster": options.cluster_name,
            "Zones": ",".join(zones),
            "Subnet bits": options.subnet_bits,
            "Public only": "yes" if options.public_only else "no",
            "Shared VPC": "yes" if options.shared_vpc else "no",
            "Output dir": str(output_dir),
        },
    )

    template_body = TEMPLATE_FILE.read_text()
    parameters = build_parameters(options, zones)
    write_text(output_dir / "vpc-template.yaml", template_body)
    write_text(output_dir / "vpc-params.json", json.dumps(parameters, indent=2) + "\n")

    if dry_run:
        print_dry_run(f"Would create stack {stack_name}")
        console.print(
            ctx.cli_hint(
                "cloudformation",
                "create-stack",
                "--stack-name",
                stack_name,
                "--template-body",
                f"file://{output_dir / 'vpc-template.yaml'}",
                "--parameters",
                f"file://{output_dir / 'vpc-params.json'}",
                "--capabilities",
                "CAPABILITY_IAM",
            )
        )
        return None

    tags = {"Name": stack_name, "CreatedBy": CREATED_BY, "ClusterName": options.cluster_name}
    with operation_status(f"Creating VPC stack {stack_name}"):
        stacks.create_stack(ctx, stack_name, template_body, parameters, tags)
        stacks.wait_for_create(ctx, stack_name)

    stack = stacks.describe_stack(ctx, stack_name) or {}
    write_text(
        output_dir / "stack-output.json",
        json.dumps({"Stacks": [stack]}, indent=2, default=str) + "\n",
    )

    outputs = VpcOutputs.from_stack_outputs(
        stacks.stack_outputs(stack), stack_name, ctx.region, options.vpc_cidr
    )
    outputs.write(output_dir)

    TemplateLoader().render_template(
        "vpc-summary.txt.j2",
        {
            "outputs": outputs,
            "options": options,
            "output_dir": str(output_dir),
            "delete_hint": ctx.cli_hint(
                "cloudformation", "delete-stack", "--stack-name", stack_name
            ),
        },
        output_dir / SUMMARY_FILE,
    )
    logger.info("VPC %s created by stack %s", outputs.vpc_id, stack_name)
    return outputs
