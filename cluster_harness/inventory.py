"""Ansible-style inventory of cluster machines.

This module reads and updates the YAML inventory that lists a cluster's
control-plane, worker and spare machines, using ruamel.yaml for preserving
comments and formatting.
"""

import shutil
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap

from cluster_harness.exceptions import ClusterHarnessError
from cluster_harness.logging_config import get_logger
from cluster_harness.models.machine import MachineSpec

logger = get_logger(__name__)

GROUP_ROLES = {
    "control_plane": "control-plane",
    "workers": "worker",
    "spare": "spare",
}
REQUIRED_GROUPS = ["control_plane", "workers"]
SSH_VARS = ["ssh_user", "ssh_port", "ssh_key_file"]


class InventoryError(ClusterHarnessError):
    """Base exception for inventory operations."""

    pass


class InventoryValidationError(InventoryError):
    """Exception raised when inventory validation fails."""

    pass


class InventoryManager:
    """Manager for the machine inventory file."""

    def __init__(self, inventory_path: str | Path):
        """Initialize inventory manager.

        Args:
            inventory_path: Path to the inventory file
        """
        self.inventory_path = Path(inventory_path)
        self.yaml = YAML()
        self.yaml.preserve_quotes = True
        self.yaml.default_flow_style = False
        self.yaml.indent(mapping=2, sequence=2, offset=0)

    def read(self) -> dict:
        """Read inventory file and return parsed data.

        Raises:
            InventoryError: If file cannot be read or parsed
        """
        logger.debug(f"Reading inventory file: {self.inventory_path}")

        if not self.inventory_path.exists():
            logger.error(f"Inventory file not found: {self.inventory_path}")
            raise InventoryError(
                f"Inventory file not found: {self.inventory_path}",
                f"Expected location: {self.inventory_path.absolute()}\n"
                f"Create the file or specify a different path with --inventory",
            )

        try:
            with open(self.inventory_path) as f:
                data = self.yaml.load(f)
        except Exception as e:
            logger.error(f"Failed to read inventory file: {e}", exc_info=True)
            raise InventoryError(
                f"Failed to read inventory file: {e}",
                f"The file may be corrupted or have invalid YAML syntax. "
                f"Check the file at: {self.inventory_path.absolute()}",
            )

        if data is None:
            logger.error("Inventory file is empty")
            raise InventoryError(
                "Inventory file is empty",
                "The inventory file exists but contains no data.",
            )

        logger.debug(f"Successfully read inventory with {len(data)} top-level keys")
        return data

    def write(self, data: dict) -> None:
        """Write inventory data to file, keeping a backup of the previous version.

        Raises:
            InventoryError: If file cannot be written
        """
        logger.debug(f"Writing inventory file: {self.inventory_path}")

        try:
            self.inventory_path.parent.mkdir(parents=True, exist_ok=True)

            if self.inventory_path.exists():
                backup_path = self.inventory_path.with_suffix(".yml.backup")
                logger.debug(f"Creating backup at: {backup_path}")
                shutil.copy2(self.inventory_path, backup_path)

            with open(self.inventory_path, "w") as f:
                self.yaml.dump(data, f)

            logger.info(f"Successfully wrote inventory file: {self.inventory_path}")

        except PermissionError as e:
            logger.error(f"Permission denied writing inventory file: {e}")
            raise InventoryError(
                f"Permission denied writing inventory file: {self.inventory_path}",
                "Check file permissions or try running with appropriate privileges",
            )
        except OSError as e:
            logger.error(f"OS error writing inventory file: {e}")
            raise InventoryError(
                f"Failed to write inventory file: {e}",
                "Check disk space and file system permissions",
            )

    def validate(self, data: dict) -> None:
        """Validate inventory structure and every host entry.

        Raises:
            InventoryValidationError: If validation fails
        """
        if not isinstance(data, dict):
            raise InventoryValidationError("Inventory must be a dictionary")

        if "all" not in data:
            raise InventoryValidationError("Inventory must have 'all' group")

        all_group = data["all"]
        if not isinstance(all_group, dict):
            raise InventoryValidationError("'all' group must be a dictionary")

        if "children" not in all_group:
            raise InventoryValidationError("'all' group must have 'children'")

        children = all_group["children"]
        if not isinstance(children, dict):
            raise InventoryValidationError("'children' must be a dictionary")

        for group in REQUIRED_GROUPS:
            if group not in children:
                raise InventoryValidationError(f"Missing required group: {group}")

        seen_hostnames = set()
        seen_ips = {}
        for group in GROUP_ROLES:
            if group not in children:
                continue

            group_data = children[group]
            if not isinstance(group_data, dict):
                raise InventoryValidationError(f"Group '{group}' must be a dictionary")

            hosts = group_data.get("hosts") or {}
            if not isinstance(hosts, dict):
                raise InventoryValidationError(f"'hosts' in group '{group}' must be a dictionary")

            for hostname, host_data in hosts.items():
                spec = self._validate_host(hostname, host_data, group, self._defaults(data, group))

                if hostname in seen_hostnames:
                    raise InventoryValidationError(
                        f"Host '{hostname}' appears in more than one group"
                    )
                seen_hostnames.add(hostname)

                private_ip = str(spec.private_ip)
                if private_ip in seen_ips:
                    raise InventoryValidationError(
                        f"Private IP '{private_ip}' is used by both '{seen_ips[private_ip]}' "
                        f"and '{hostname}'",
                        "Each node must have a unique private IP address",
                    )
                seen_ips[private_ip] = hostname

    def _validate_host(
        self, hostname: str, host_data: dict, group: str, defaults: dict
    ) -> MachineSpec:
        """Validate a single host entry.

        Raises:
            InventoryValidationError: If host validation fails
        """
        if not isinstance(host_data, dict):
            raise InventoryValidationError(
                f"Host '{hostname}' in group '{group}' must be a dictionary"
            )

        for field in ["ansible_host", "private_ip"]:
            if field not in host_data:
                raise InventoryValidationError(
                    f"Host '{hostname}' in group '{group}' missing required field: {field}"
                )

        try:
            return MachineSpec.from_inventory_dict(
                hostname, {**host_data, "role": GROUP_ROLES[group]}, defaults
            )
        except Exception as e:
            raise InventoryValidationError(
                f"Host '{hostname}' in group '{group}' validation failed: {e}"
            )

    def _defaults(self, data: dict, group: str) -> dict:
        """SSH settings from 'all' vars, overridden by the group's own vars."""
        all_vars = data["all"].get("vars") or {}
        group_vars = data["all"]["children"][group].get("vars") or {}
        merged = {**all_vars, **group_vars}
        return {k: merged[k] for k in SSH_VARS if k in merged}

    def get_machines(self, group: str | None = None) -> list[MachineSpec]:
        """Get machines from inventory in file order, optionally filtered by group.

        Args:
            group: Optional group name ('control_plane', 'workers' or 'spare')

        Raises:
            InventoryError: If inventory cannot be read or parsed, or group is unknown
        """
        if group is not None and group not in GROUP_ROLES:
            raise InventoryError(
                f"Unknown inventory group: {group}",
                f"Valid groups: {', '.join(GROUP_ROLES)}",
            )

        data = self.read()
        self.validate(data)

        machines = []
        children = data["all"]["children"]
        groups_to_process = [group] if group else list(GROUP_ROLES)

        for group_name in groups_to_process:
            if group_name not in children:
                continue

            hosts = children[group_name].get("hosts") or {}
            defaults = self._defaults(data, group_name)
            for hostname, host_data in hosts.items():
                machines.append(
                    MachineSpec.from_inventory_dict(
                        hostname, {**host_data, "role": GROUP_ROLES[group_name]}, defaults
                    )
                )

        return machines

    def get_machine(self, hostname: str) -> MachineSpec:
        """Look up a single machine by hostname.

        Raises:
            InventoryError: If no such host exists
        """
        machine = next((m for m in self.get_machines() if m.hostname == hostname), None)
        if machine is None:
            raise InventoryError(f"Host '{hostname}' not found in inventory")
        return machine

    def promote(self, hostnames: list[str]) -> None:
        """Move spare hosts into the control_plane group, in the given order.

        Raises:
            InventoryError: If any host is not in the spare group
        """
        data = self.read()
        self.validate(data)

        children = data["all"]["children"]
        spare_hosts = (children.get("spare") or {}).get("hosts") or {}

        missing = [h for h in hostnames if h not in spare_hosts]
        if missing:
            raise InventoryError(f"Host(s) not in spare group: {', '.join(missing)}")

        control_plane = children["control_plane"]
        if control_plane.get("hosts") is None:
            logger.debug("Creating hosts section in group: control_plane")
            control_plane["hosts"] = CommentedMap()

        for hostname in hostnames:
            control_plane["hosts"][hostname] = spare_hosts.pop(hostname)
            logger.debug(f"Moved '{hostname}' from spare to control_plane")

        self.write(data)
        logger.info(f"Promoted {len(hostnames)} spare host(s) to control plane")
