"""
ocp-provision: OpenShift on AWS provisioning toolkit.

Creates and tears down the AWS infrastructure around an OpenShift IPI install
by driving CloudFormation, EC2, IAM and the openshift-install binary.

Main features:
- CloudFormation-backed VPC lifecycle (create, discover, delete by stack,
  cluster, VPC name or owner) with dry-run and confirmation gating
- Bastion host provisioning and SSH access
- install-config.yaml generation and cluster deploy/destroy
- Full teardown, output backups and release image checks
"""

__version__ = "0.1.0"
