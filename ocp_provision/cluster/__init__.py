"""OpenShift install-config generation and installer driving."""
