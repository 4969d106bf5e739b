"""CloudFormation-backed VPC lifecycle."""
