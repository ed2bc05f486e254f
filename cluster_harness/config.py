"""Harness configuration."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from cluster_harness.exceptions import ConfigurationError
from cluster_harness.logging_config import get_logger

logger = get_logger(__name__)

SELECTORS = ["fixed-primary", "round-robin"]


class HarnessConfig(BaseModel):
    """How remote tooling is invoked and how long convergence is awaited."""

    kubectl_path: str = "./kubectl"
    kubeconfig: str = "/etc/kubernetes/kubeconfig"
    use_sudo: bool = True
    retry_delay: float = Field(default=10.0, ge=0)
    add_masters_attempts: int = Field(default=12, ge=1)
    node_check_attempts: int = Field(default=12, ge=1)
    command_timeout: float = Field(default=120.0, gt=0)
    selector: str = "fixed-primary"

    @field_validator("kubectl_path", "kubeconfig")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        """Validate paths are not empty."""
        if not v:
            raise ValueError("path cannot be empty")
        return v

    @field_validator("selector")
    @classmethod
    def validate_selector(cls, v: str) -> str:
        """Validate selector names a known target selection strategy."""
        if v not in SELECTORS:
            raise ValueError(f"selector must be one of {SELECTORS}, got '{v}'")
        return v

    def kubectl_command(self, subcommand: str) -> str:
        """Render the full remote command line for a kubectl subcommand."""
        command = f"{self.kubectl_path} --kubeconfig={self.kubeconfig} {subcommand}"
        if self.use_sudo:
            command = f"sudo {command}"
        return command

    def save(self, path: str | Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str | Path) -> "HarnessConfig":
        """Load configuration from YAML file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or invalid
        """
        logger.debug(f"Loading harness config: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(
                f"Config file not found: {path}",
                "Create the file or omit --config to use the defaults",
            )
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config file: {path}", str(e))

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {path}",
                f"Got {type(data).__name__} at the top level",
            )

        try:
            return cls(**data)
        except ValidationError as e:
            problems = "\n".join(
                f"  - {'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid config file: {path}", problems)
