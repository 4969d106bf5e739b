"""
Workspace management for ocp-provision.
"""

import copy
import json
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validate

from ocp_provision.exceptions import InvalidConfigError

SCHEMA_FILE = Path(__file__).parent / "schema" / "config.schema.json"

CONFIG_FILENAME = "ocp-provision.yaml"


class Workspace:
    """Manages the ocp-provision workspace directory and configuration."""

    REQUIRED_DIRS = [
        "logs",
        "backups",
    ]

    DEFAULT_CONFIG = {
        "aws": {
            "region": "us-east-1",
            "profile": None,
        },
        "cluster": {
            "name": "my-cluster",
            "base_domain": "example.com",
            "openshift_version": "4.18.15",
        },
        "paths": {
            "vpc_output": "vpc-output",
            "bastion_output": "bastion-output",
            "install_dir": "openshift-install",
            "logs": "logs",
            "backups": "backups",
        },
        "retry": {
            "strategy": "AWS_API",
        },
    }

    def __init__(self, root: Path):
        self.root = Path(root)
        self.config_file = self.root / CONFIG_FILENAME
        self._config_cache: dict[str, Any] | None = None

    def initialize(self) -> None:
        """Create workspace directories and write the default config."""
        for dir_path in self.REQUIRED_DIRS:
            (self.root / dir_path).mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w") as f:
            yaml.safe_dump(self.DEFAULT_CONFIG, f, default_flow_style=False, sort_keys=False)

    def load_config(self) -> dict[str, Any]:
        """Load and validate workspace configuration (cached)."""
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_file.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_file}")

        with open(self.config_file) as f:
            try:
                config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise InvalidConfigError(f"{self.config_file} is not valid YAML: {e}") from e

        if config is None:
            raise InvalidConfigError(f"{self.config_file} is empty")

        if not isinstance(config, dict):
            raise InvalidConfigError(f"expected a mapping, got {type(config).__name__}")

        self._validate_config_schema(config)
        self._config_cache = config

        return config

    def effective_config(self) -> dict[str, Any]:
        """Defaults overlaid with whatever sections the config file sets."""
        merged = copy.deepcopy(self.DEFAULT_CONFIG)
        if not self.config_file.exists():
            return merged
        for section, values in self.load_config().items():
            merged.setdefault(section, {}).update(values or {})
        return merged

    def _validate_config_schema(self, config: dict) -> None:
        """Validate config against JSON schema."""
        schema = json.loads(SCHEMA_FILE.read_text())
        try:
            validate(instance=config, schema=schema)
        except ValidationError as e:
            raise InvalidConfigError(
                f"{e.message} (at {'.'.join(str(p) for p in e.path) or '<root>'})"
            ) from e
