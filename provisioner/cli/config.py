"""CLI configuration loaded from defaults, a YAML file and the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".azprov" / "config.yaml"
PUBLIC_CLOUD_LOCATION = "westus"
SOVEREIGN_CLOUD_LOCATION = "local"
PUBLIC_CLOUD_GROUP_NAME = "azure-sample-compute-group"
SOVEREIGN_CLOUD_GROUP_NAME = "azurestack-sample-compute"

# Environment variable -> config field
ENV_OVERRIDES = {
    "AZPROV_GROUP_NAME": "group_name",
    "AZPROV_LOCATION": "location",
    "AZPROV_VM_NAME": "vm_name",
    "AZPROV_ADMIN_USERNAME": "admin_username",
    "AZPROV_ADMIN_PASSWORD": "admin_password",
    "AZPROV_TIMEOUT": "operation_timeout",
    "AZPROV_LOG_LEVEL": "log_level",
    "AZPROV_BLUEPRINT": "blueprint_path",
}


@dataclass
class Config:
    """Run configuration.

    Attributes:
        group_name: Resource group that owns the deployment; None picks a
            per-cloud default
        location: Region; None picks westus, or "local" when an ARM endpoint is set
        vm_name: Short VM name for the sample deployment
        admin_username: Guest OS admin user
        admin_password: Guest OS admin password (generated when unset)
        vm_size: Virtual machine size
        operation_timeout: Seconds to wait for long-running provider operations
        log_level: Logging level name
        blueprint_path: YAML blueprint used instead of the sample (optional)
        tags: Tags applied to every sample resource
    """

    group_name: Optional[str] = None
    location: Optional[str] = None
    vm_name: str = "firstvm"
    admin_username: str = "notAdmin"
    admin_password: Optional[str] = field(default=None, repr=False)
    vm_size: str = "Standard_DS2_v2"
    operation_timeout: float = 1800.0
    log_level: str = "INFO"
    blueprint_path: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """Load configuration.

        Precedence (lowest to highest): defaults, YAML file, environment.

        Args:
            path: YAML config file (default: ~/.azprov/config.yaml when it exists)
            environ: Environment mapping (default: os.environ)

        Raises:
            ValidationError: If an explicit file is missing or any value is invalid
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        config_path = Path(path).expanduser() if path else DEFAULT_CONFIG_PATH
        if config_path.exists():
            values.update(cls._read_file(config_path))
        elif path:
            raise ValidationError(f"Config file not found: {config_path}")

        for env_name, field_name in ENV_OVERRIDES.items():
            if environ.get(env_name):
                values[field_name] = environ[env_name]

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValidationError(f"Unknown configuration keys: {', '.join(unknown)}")

        if "operation_timeout" in values:
            try:
                values["operation_timeout"] = float(values["operation_timeout"])
            except (TypeError, ValueError):
                raise ValidationError(f"Invalid operation_timeout: {values['operation_timeout']!r}")
            if values["operation_timeout"] <= 0:
                raise ValidationError("operation_timeout must be positive")

        config = cls(**values)
        logger.debug(f"Loaded configuration: {config}")
        return config

    @staticmethod
    def _read_file(config_path: Path) -> Dict[str, Any]:
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Config file {config_path} must contain a mapping")
        return data

    def resolve_group_name(self, sovereign: bool) -> str:
        """Resource group name, defaulting by cloud type."""
        if self.group_name:
            return self.group_name
        return SOVEREIGN_CLOUD_GROUP_NAME if sovereign else PUBLIC_CLOUD_GROUP_NAME

    def resolve_location(self, sovereign: bool) -> str:
        """Location to deploy into, defaulting by cloud type."""
        if self.location:
            return self.location
        return SOVEREIGN_CLOUD_LOCATION if sovereign else PUBLIC_CLOUD_LOCATION
