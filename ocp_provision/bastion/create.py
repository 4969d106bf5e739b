"""
Bastion host creation in the public subnet of an existing VPC.
"""

import base64
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from botocore.exceptions import ClientError

from ocp_provision.aws.session import AwsContext, aws_retry, error_code
from ocp_provision.bastion.ami import select_ami
from ocp_provision.exceptions import KeyPairExistsError
from ocp_provision.util.files import ensure_dir, write_secret, write_text, write_value
from ocp_provision.util.progress import (
    operation_status,
    print_info,
    print_success,
    print_warning,
    show_summary,
)
from ocp_provision.util.templates import TemplateLoader
from ocp_provision.vpc.outputs import BASTION_REQUIRED, VpcOutputs

logger = logging.getLogger(__name__)

MIRROR_URL = "https://mirror.openshift.com/pub/openshift-v4/clients/ocp"
S3_READ_ONLY_POLICY = "arn:aws:iam::aws:policy/AmazonS3ReadOnlyAccess"

# tcp ports opened on top of ssh with enhanced security
ENHANCED_TCP_PORTS = [873, 3128, 3129, 5000, 6001, 6002, 80, 8080]

EC2_TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "ec2.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}

INSTANCE_ID_FILE = "bastion-instance-id"
PUBLIC_IP_FILE = "bastion-public-ip"
SECURITY_GROUP_FILE = "bastion-security-group-id"
KEY_NAME_FILE = "bastion-ssh-key-name"
SSH_USER_FILE = "bastion-ssh-user"
REGION_FILE = "bastion-region"
IAM_ROLE_FILE = "bastion-iam-role-name"
CONTROL_PLANE_SG_FILE = "control-plane-security-group-id"
SUMMARY_FILE = "bastion-summary.txt"


@dataclass
class BastionOptions:
    cluster_name: str = "my-cluster"
    vpc_output_dir: Path = Path("vpc-output")
    output_dir: Path = Path("bastion-output")
    instance_type: str = "t3.large"
    ssh_key_name: str | None = None
    openshift_version: str = "4.18.15"
    use_rhcos: bool = False
    create_iam_role: bool = False
    enhanced_security: bool = False
    integrate_control_plane_sg: bool = False

    @property
    def key_name(self) -> str:
        return self.ssh_key_name or default_key_name(self.cluster_name)


@dataclass
class BastionInfo:
    instance_id: str
    public_ip: str
    security_group_id: str
    key_name: str
    ssh_user: str
    region: str
    vpc_id: str
    subnet_id: str
    availability_zone: str
    instance_type: str
    ami_id: str
    iam_role_name: str | None = None
    control_plane_sg_id: str | None = None


def default_key_name(cluster_name: str) -> str:
    return f"{cluster_name}-bastion-key"


def instance_type_for_region(region: str, instance_type: str) -> str:
    """GovCloud has no t2.medium; substitute t3a.medium."""
    if region in ("us-gov-east-1", "us-gov-west-1") and instance_type == "t2.medium":
        return "t3a.medium"
    return instance_type


def key_pair_exists(ctx: AwsContext, key_name: str) -> bool:
    try:
        ctx.client("ec2").describe_key_pairs(KeyNames=[key_name])
    except ClientError as e:
        if error_code(e) == "InvalidKeyPair.NotFound":
            return False
        raise
    return True


def create_key_pair(ctx: AwsContext, key_name: str, output_dir: Path) -> Path:
    """Create a key pair and save its private key as <name>.pem (0400)."""
    if key_pair_exists(ctx, key_name):
        raise KeyPairExistsError(key_name, ctx.region)

    response = ctx.client("ec2").create_key_pair(KeyName=key_name)
    key_file = output_dir / f"{key_name}.pem"
    write_secret(key_file, response["KeyMaterial"], mode=0o400)
    print_success(f"SSH key pair created: {key_file}")
    return key_file


def ingress_permissions(enhanced_security: bool) -> list[dict]:
    """IpPermissions for the bastion security group."""
    anywhere = [{"CidrIp": "0.0.0.0/0"}]
    permissions = [{"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22, "IpRanges": anywhere}]
    if enhanced_security:
        permissions.append(
            {"IpProtocol": "icmp", "FromPort": -1, "ToPort": -1, "IpRanges": anywhere}
        )
        permissions.extend(
            {"IpProtocol": "tcp", "FromPort": port, "ToPort": port, "IpRanges": anywhere}
            for port in ENHANCED_TCP_PORTS
        )
    return permissions


@aws_retry
def find_security_group(ctx: AwsContext, vpc_id: str, group_name: str) -> str | None:
    """Id of the first group in vpc_id whose name matches (wildcards allowed)."""
    response = ctx.client("ec2").describe_security_groups(
        Filters=[
            {"Name": "group-name", "Values": [group_name]},
            {"Name": "vpc-id", "Values": [vpc_id]},
        ]
    )
    groups = response.get("SecurityGroups", [])
    return groups[0]["GroupId"] if groups else None


def ensure_security_group(
    ctx: AwsContext, vpc_id: str, cluster_name: str, enhanced_security: bool
) -> str:
    """Reuse <cluster>-bastion-sg if it exists, else create it with ingress rules."""
    group_name = f"{cluster_name}-bastion-sg"
    existing = find_security_group(ctx, vpc_id, group_name)
    if existing:
        print_warning(f"Security group '{group_name}' already exists: {existing}")
        return existing

    ec2 = ctx.client("ec2")
    group_id = ec2.create_security_group(
        GroupName=group_name,
        Description="Security group for bastion host",
        VpcId=vpc_id,
        TagSpecifications=[
            {
                "ResourceType": "security-group",
                "Tags": [
                    {"Key": "Name", "Value": group_name},
                    {"Key": "ClusterName", "Value": cluster_name},
                ],
            }
        ],
    )["GroupId"]
    ec2.authorize_security_group_ingress(
        GroupId=group_id, IpPermissions=ingress_permissions(enhanced_security)
    )
    print_success(f"Security group created: {group_id}")
    return group_id


def ensure_iam_role(ctx: AwsContext, role_name: str) -> str:
    """
    Ensure an EC2 role with S3 read access and a same-named instance profile.

    Returns:
        The instance profile name
    """
    iam = ctx.client("iam")

    try:
        iam.get_role(RoleName=role_name)
        logger.info("Using existing IAM role %s", role_name)
    except ClientError as e:
        if error_code(e) != "NoSuchEntity":
            raise
        iam.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=json.dumps(EC2_TRUST_POLICY),
            Description="Bastion host role for OpenShift cluster operations",
        )
        print_success(f"IAM role created: {role_name}")

    iam.attach_role_policy(RoleName=role_name, PolicyArn=S3_READ_ONLY_POLICY)

    try:
        profile = iam.get_instance_profile(InstanceProfileName=role_name)["InstanceProfile"]
    except ClientError as e:
        if error_code(e) != "NoSuchEntity":
            raise
        profile = iam.create_instance_profile(InstanceProfileName=role_name)["InstanceProfile"]

    if not any(r.get("RoleName") == role_name for r in profile.get("Roles", [])):
        iam.add_role_to_instance_profile(InstanceProfileName=role_name, RoleName=role_name)

    iam.get_waiter("instance_profile_exists").wait(InstanceProfileName=role_name)
    return role_name


def ignition_config(hostname: str) -> str:
    """Minimal Ignition 3.2.0 config that only sets the hostname."""
    encoded = base64.b64encode(hostname.encode()).decode()
    config = {
        "ignition": {"version": "3.2.0"},
        "storage": {
            "files": [
                {
                    "path": "/etc/hostname",
                    "mode": 420,
                    "overwrite": True,
                    "contents": {"source": f"data:text/plain;charset=utf-8;base64,{encoded}"},
                }
            ]
        },
    }
    return json.dumps(config, indent=2)


def build_user_data(
    options: BastionOptions, vpc: VpcOutputs, ssh_user: str, is_rhcos: bool
) -> tuple[str, str]:
    """
    Returns:
        (file name, user data) to record and submit
    """
    if is_rhcos:
        return "bastion-ignition.json", ignition_config(f"{options.cluster_name}-bastion")

    script = TemplateLoader().render(
        "bastion-userdata.sh.j2",
        {
            "ssh_user": ssh_user,
            "cluster_name": options.cluster_name,
            "region": vpc.region,
            "vpc_id": vpc.vpc_id,
            "openshift_version": options.openshift_version,
            "mirror_url": MIRROR_URL,
        },
    )
    return "bastion-userdata.sh", script


def create_bastion(ctx: AwsContext, options: BastionOptions) -> BastionInfo:
    """
    Launch the bastion host and write its status files.

    Args:
        ctx: AWS context; its region must match the VPC outputs
        options: Bastion options

    Returns:
        BastionInfo for the running instance
    """
    vpc = VpcOutputs.read(options.vpc_output_dir, required=BASTION_REQUIRED)
    ctx.validate_credentials()

    output_dir = ensure_dir(options.output_dir)
    subnet_id = vpc.public_subnet_ids[0]
    availability_zone = vpc.availability_zones[0] if vpc.availability_zones else ""
    key_name = options.key_name

    print_info(f"VPC {vpc.vpc_id}, subnet {subnet_id}, region {ctx.region}")

    create_key_pair(ctx, key_name, output_dir)
    security_group_id = ensure_security_group(
        ctx, vpc.vpc_id, options.cluster_name, options.enhanced_security
    )

    control_plane_sg_id = None
    if options.integrate_control_plane_sg:
        control_plane_sg_id = find_security_group(ctx, vpc.vpc_id, "*controlplane*")
        if control_plane_sg_id:
            print_success(f"Found control plane security group: {control_plane_sg_id}")
        else:
            print_warning("Control plane security group not found, continuing without it")

    iam_role_name = None
    if options.create_iam_role:
        iam_role_name = ensure_iam_role(ctx, f"{options.cluster_name}-bastion-role")

    ami_id, ssh_user, is_rhcos = select_ami(ctx, options.use_rhcos, options.openshift_version)
    instance_type = instance_type_for_region(ctx.region, options.instance_type)

    user_data_file, user_data = build_user_data(options, vpc, ssh_user, is_rhcos)
    write_text(output_dir / user_data_file, user_data)

    params = {
        "ImageId": ami_id,
        "InstanceType": instance_type,
        "KeyName": key_name,
        "MinCount": 1,
        "MaxCount": 1,
        "UserData": user_data,
        "NetworkInterfaces": [
            {
                "DeviceIndex": 0,
                "SubnetId": subnet_id,
                "AssociatePublicIpAddress": True,
                "Groups": [g for g in (security_group_id, control_plane_sg_id) if g],
            }
        ],
        "TagSpecifications": [
            {
                "ResourceType": "instance",
                "Tags": [
                    {"Key": "Name", "Value": f"{options.cluster_name}-bastion"},
                    {"Key": "ClusterName", "Value": options.cluster_name},
                ],
            }
        ],
    }
    if iam_role_name:
        params["IamInstanceProfile"] = {"Name": iam_role_name}

    ec2 = ctx.client("ec2")
    with operation_status("Launching bastion host"):
        instance_id = ec2.run_instances(**params)["Instances"][0]["InstanceId"]
        ec2.get_waiter("instance_running").wait(InstanceIds=[instance_id])
        reservation = ec2.describe_instances(InstanceIds=[instance_id])["Reservations"][0]
        public_ip = reservation["Instances"][0].get("PublicIpAddress", "")

    info = BastionInfo(
        instance_id=instance_id,
        public_ip=public_ip,
        security_group_id=security_group_id,
        key_name=key_name,
        ssh_user=ssh_user,
        region=ctx.region,
        vpc_id=vpc.vpc_id,
        subnet_id=subnet_id,
        availability_zone=availability_zone,
        instance_type=instance_type,
        ami_id=ami_id,
        iam_role_name=iam_role_name,
        control_plane_sg_id=control_plane_sg_id,
    )
    write_bastion_files(info, output_dir)

    TemplateLoader().render_template(
        "bastion-summary.txt.j2",
        {
            "info": info,
            "options": options,
            "output_dir": str(output_dir),
            "key_file": str(output_dir / f"{key_name}.pem"),
        },
        output_dir / SUMMARY_FILE,
    )

    show_summary(
        "Bastion Host",
        {
            "Instance ID": instance_id,
            "Public IP": public_ip,
            "SSH": f"ssh -i {output_dir / (key_name + '.pem')} {ssh_user}@{public_ip}",
        },
    )
    logger.info("Bastion %s running at %s", instance_id, public_ip)
    return info


def write_bastion_files(info: BastionInfo, output_dir: Path) -> None:
    write_value(output_dir / INSTANCE_ID_FILE, info.instance_id)
    write_value(output_dir / PUBLIC_IP_FILE, info.public_ip)
    write_value(output_dir / SECURITY_GROUP_FILE, info.security_group_id)
    write_value(output_dir / KEY_NAME_FILE, info.key_name)
    write_value(output_dir / SSH_USER_FILE, info.ssh_user)
    write_value(output_dir / REGION_FILE, info.region)
    if info.iam_role_name:
        write_value(output_dir / IAM_ROLE_FILE, info.iam_role_name)
    if info.control_plane_sg_id:
        write_value(output_dir / CONTROL_PLANE_SG_FILE, info.control_plane_sg_id)
