"""
VPC output directory: the status files other commands read.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from ocp_provision.exceptions import OutputFilesMissingError
from ocp_provision.util.files import ensure_dir, read_value, write_value

DEFAULT_REGION = "us-east-1"

VPC_ID_FILE = "vpc-id"
PUBLIC_SUBNETS_FILE = "public-subnet-ids"
PRIVATE_SUBNETS_FILE = "private-subnet-ids"
ZONES_FILE = "availability-zones"
STACK_NAME_FILE = "stack-name"
REGION_FILE = "region"
CIDR_FILE = "vpc-cidr"
SUMMARY_FILE = "vpc-summary.txt"

BASTION_REQUIRED = [VPC_ID_FILE, PUBLIC_SUBNETS_FILE, ZONES_FILE, SUMMARY_FILE]
DEPLOY_REQUIRED = [VPC_ID_FILE, PRIVATE_SUBNETS_FILE, ZONES_FILE, SUMMARY_FILE]

_REGION_LINE = re.compile(r"^Region:\s*(\S+)", re.MULTILINE)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class VpcOutputs:
    """Values recorded after a VPC stack is created."""

    vpc_id: str
    stack_name: str
    region: str
    vpc_cidr: str = ""
    public_subnet_ids: list[str] = field(default_factory=list)
    private_subnet_ids: list[str] = field(default_factory=list)
    availability_zones: list[str] = field(default_factory=list)

    @classmethod
    def from_stack_outputs(
        cls, outputs: dict[str, str], stack_name: str, region: str, vpc_cidr: str
    ) -> "VpcOutputs":
        return cls(
            vpc_id=outputs.get("VpcId", ""),
            stack_name=outputs.get("StackName", stack_name),
            region=region,
            vpc_cidr=vpc_cidr,
            public_subnet_ids=_split(outputs.get("PublicSubnetIds")),
            private_subnet_ids=_split(outputs.get("PrivateSubnetIds")),
            availability_zones=_split(outputs.get("AvailabilityZones")),
        )

    def write(self, directory: str | Path) -> None:
        """Write one file per value. Private subnets may be empty."""
        d = ensure_dir(directory)
        write_value(d / VPC_ID_FILE, self.vpc_id)
        write_value(d / STACK_NAME_FILE, self.stack_name)
        write_value(d / REGION_FILE, self.region)
        write_value(d / CIDR_FILE, self.vpc_cidr)
        write_value(d / PUBLIC_SUBNETS_FILE, ",".join(self.public_subnet_ids))
        write_value(d / PRIVATE_SUBNETS_FILE, ",".join(self.private_subnet_ids))
        write_value(d / ZONES_FILE, ",".join(self.availability_zones))

    @classmethod
    def read(cls, directory: str | Path, required: list[str] | None = None) -> "VpcOutputs":
        """
        Load outputs from a directory.

        Args:
            directory: VPC output directory
            required: Files that must be present (raises OutputFilesMissingError)
        """
        d = Path(directory)
        if required:
            missing = missing_files(d, required)
            if missing:
                raise OutputFilesMissingError(
                    str(d), missing, f"ocp-provision vpc create --output-dir {d}"
                )
        return cls(
            vpc_id=read_value(d / VPC_ID_FILE, ""),
            stack_name=read_value(d / STACK_NAME_FILE, ""),
            region=region_of(d),
            vpc_cidr=read_value(d / CIDR_FILE, ""),
            public_subnet_ids=_split(read_value(d / PUBLIC_SUBNETS_FILE)),
            private_subnet_ids=_split(read_value(d / PRIVATE_SUBNETS_FILE)),
            availability_zones=_split(read_value(d / ZONES_FILE)),
        )


def missing_files(directory: str | Path, required: list[str]) -> list[str]:
    """Names from required that do not exist in directory."""
    d = Path(directory)
    return [name for name in required if not (d / name).is_file()]


def region_of(directory: str | Path, default: str = DEFAULT_REGION) -> str:
    """
    Region recorded for a VPC output directory.

    Reads the region file, then the Region: line of vpc-summary.txt, then
    falls back to default.
    """
    d = Path(directory)
    region = read_value(d / REGION_FILE)
    if region:
        return region

    summary = d / SUMMARY_FILE
    if summary.is_file():
        match = _REGION_LINE.search(summary.read_text())
        if match:
            return match.group(1)

    return default
