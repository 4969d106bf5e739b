"""Configuration utility functions."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class Settings:
    """Resolved settings for one command invocation."""

    region: str
    profile: str | None
    cluster_name: str
    base_domain: str
    openshift_version: str
    vpc_output: Path
    bastion_output: Path
    install_dir: Path
    logs_dir: Path
    backups_dir: Path
    retry_strategy: str


def load_settings(
    region: str | None = None,
    profile: str | None = None,
    root: Path | None = None,
) -> Settings:
    """
    Resolve settings for a command.

    Precedence is CLI flag, then AWS_REGION/AWS_PROFILE, then the workspace
    config in the current directory, then built-in defaults. A missing config
    file is fine; an invalid one raises InvalidConfigError.
    """
    from ocp_provision.workspace import Workspace

    ws = Workspace(root or Path.cwd())
    config = ws.effective_config()

    aws = config["aws"]
    cluster = config["cluster"]
    paths = config["paths"]

    return Settings(
        region=region or os.environ.get("AWS_REGION") or aws.get("region") or "us-east-1",
        profile=profile or os.environ.get("AWS_PROFILE") or aws.get("profile"),
        cluster_name=cluster["name"],
        base_domain=cluster["base_domain"],
        openshift_version=str(cluster["openshift_version"]),
        vpc_output=Path(paths["vpc_output"]),
        bastion_output=Path(paths["bastion_output"]),
        install_dir=Path(paths["install_dir"]),
        logs_dir=Path(paths["logs"]),
        backups_dir=Path(paths["backups"]),
        retry_strategy=config.get("retry", {}).get("strategy", "AWS_API"),
    )


def pick(value: Any, default: Any) -> Any:
    """Return value unless it is None."""
    return default if value is None else value
