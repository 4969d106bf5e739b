"""
Cluster metadata and access guidance for installed clusters.
"""

import json
from dataclasses import dataclass
from pathlib import Path

import yaml

from ocp_provision.cluster.install_config import latest_backup
from ocp_provision.cluster.installer import METADATA_FILE
from ocp_provision.exceptions import InstallDirError


@dataclass
class ClusterMetadata:
    cluster_name: str
    infra_id: str
    region: str
    cluster_domain: str
    publish: str | None = None

    @property
    def is_private(self) -> bool:
        return self.publish == "Internal"


def read_metadata(install_dir: str | Path) -> ClusterMetadata:
    """Parse metadata.json written by openshift-install."""
    d = Path(install_dir)
    path = d / METADATA_FILE
    if not path.is_file():
        raise InstallDirError(str(d), f"{METADATA_FILE} not found; was the cluster installed?")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise InstallDirError(str(d), f"{METADATA_FILE} is not valid JSON: {e.msg}") from e

    aws = data.get("aws", {})
    publish = None
    backup = latest_backup(d)
    if backup is not None:
        publish = (yaml.safe_load(backup.read_text()) or {}).get("publish")

    return ClusterMetadata(
        cluster_name=data.get("clusterName", ""),
        infra_id=data.get("infraID", ""),
        region=aws.get("region", ""),
        cluster_domain=aws.get("clusterDomain", ""),
        publish=publish,
    )


def access_guide(meta: ClusterMetadata, install_dir: str | Path) -> str:
    """How to reach a cluster installed with publish: Internal."""
    return f"""\
Private Cluster Access
======================
A cluster published as Internal is reachable only from inside its VPC.

Option 1: Bastion host
  ocp-provision bastion create --cluster-name {meta.cluster_name}
  ocp-provision bastion connect --copy-kubeconfig --install-dir {install_dir}
  # on the bastion
  export KUBECONFIG=~/openshift/kubeconfig
  oc get nodes

Option 2: AWS Systems Manager Session Manager
  aws ec2 describe-instances --region {meta.region} \\
    --filters "Name=tag:kubernetes.io/cluster/{meta.infra_id},Values=owned" \\
    --query 'Reservations[].Instances[0].InstanceId' --output text
  aws ssm start-session --region {meta.region} --target <instance-id>

Option 3: VPN or Direct Connect into the VPC

Option 4: Recreate with external access
  ocp-provision cluster destroy --install-dir {install_dir}
  ocp-provision cluster deploy --publish-strategy External ...
"""


def dns_guide(meta: ClusterMetadata) -> str:
    """DNS troubleshooting commands for the cluster's API and ingress names."""
    return f"""\
DNS Troubleshooting
===================
1. Hosted zones and records:
   aws route53 list-hosted-zones
   aws route53 list-resource-record-sets --hosted-zone-id <zone-id>

2. Resolve the API endpoint:
   dig api.{meta.cluster_domain}
   dig test.apps.{meta.cluster_domain}

3. Cluster instances:
   aws ec2 describe-instances --region {meta.region} \\
     --filters "Name=tag:kubernetes.io/cluster/{meta.infra_id},Values=owned"

4. Internal load balancer:
   aws elbv2 describe-load-balancers --region {meta.region} --names {meta.infra_id}-int

5. Private clusters (publish: Internal) resolve only inside the VPC;
   use a bastion host or VPN.
"""
