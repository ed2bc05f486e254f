"""Data models for machine definitions and remote command results."""

import re

from pydantic import BaseModel, Field, IPvAnyAddress, field_validator

from cluster_harness.exceptions import ToolError

ROLES = ["control-plane", "worker", "spare"]


class CommandResult(BaseModel):
    """Captured output of one remote command."""

    command: str = ""
    stdout: bytes = b""
    stderr: bytes = b""
    exit_status: int = 0

    @property
    def ok(self) -> bool:
        """Whether the command exited with status zero."""
        return self.exit_status == 0

    def stripped(self) -> "CommandResult":
        """Return a copy with surrounding whitespace removed from stdout and stderr."""
        return self.model_copy(
            update={"stdout": self.stdout.strip(), "stderr": self.stderr.strip()}
        )

    def raise_for_status(self) -> None:
        """Raise ToolError if the command exited with a non-zero status."""
        if self.ok:
            return
        stderr = self.stderr.decode(errors="replace").strip()
        raise ToolError(
            f"'{self.command}' exited with status {self.exit_status}: {stderr}",
            stderr=stderr,
            exit_status=self.exit_status,
        )


class MachineSpec(BaseModel):
    """Inventory definition of a machine reachable over SSH."""

    hostname: str
    ansible_host: str
    private_ip: IPvAnyAddress
    role: str  # control-plane, worker or spare
    ssh_user: str = "core"
    ssh_port: int = Field(default=22, ge=1, le=65535)
    ssh_key_file: str | None = None

    @field_validator("hostname")
    @classmethod
    def validate_hostname(cls, v: str) -> str:
        """Validate hostname follows DNS naming conventions."""
        if not v:
            raise ValueError("hostname cannot be empty")
        if len(v) > 253:
            raise ValueError("hostname cannot exceed 253 characters")
        # RFC 1123 hostname validation
        hostname_pattern = re.compile(
            r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$", re.IGNORECASE
        )
        if not hostname_pattern.match(v):
            raise ValueError(
                f"hostname '{v}' must contain only alphanumeric characters, "
                "hyphens, and dots, and cannot start or end with a hyphen"
            )
        return v

    @field_validator("ansible_host")
    @classmethod
    def validate_ansible_host(cls, v: str) -> str:
        """Validate ansible_host is not empty."""
        if not v:
            raise ValueError("ansible_host cannot be empty")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        """Validate role is one of control-plane, worker or spare."""
        if v not in ROLES:
            raise ValueError(f"role must be one of {ROLES}, got '{v}'")
        return v

    def to_inventory_dict(self) -> dict:
        """Convert to Ansible inventory format."""
        result = {
            "ansible_host": self.ansible_host,
            "private_ip": str(self.private_ip),
        }

        if self.ssh_user != "core":
            result["ssh_user"] = self.ssh_user
        if self.ssh_port != 22:
            result["ssh_port"] = self.ssh_port
        if self.ssh_key_file:
            result["ssh_key_file"] = self.ssh_key_file

        return result

    @classmethod
    def from_inventory_dict(
        cls, hostname: str, data: dict, defaults: dict | None = None
    ) -> "MachineSpec":
        """Parse from Ansible inventory format, falling back to group-wide defaults."""
        merged = {**(defaults or {}), **data}
        return cls(
            hostname=hostname,
            ansible_host=merged["ansible_host"],
            private_ip=merged["private_ip"],
            role=merged.get("role", "worker"),
            ssh_user=merged.get("ssh_user", "core"),
            ssh_port=merged.get("ssh_port", 22),
            ssh_key_file=merged.get("ssh_key_file"),
        )
