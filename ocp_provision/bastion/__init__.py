"""Bastion host provisioning and access."""
