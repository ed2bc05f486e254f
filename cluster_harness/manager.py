"""Cluster manager backed by a pool of pre-provisioned spare machines."""

from collections.abc import Callable
from functools import partial
from pathlib import Path

from cluster_harness.cluster import Cluster
from cluster_harness.config import HarnessConfig
from cluster_harness.exceptions import ProvisioningError, ValidationError
from cluster_harness.inventory import InventoryError, InventoryManager
from cluster_harness.logging_config import get_logger
from cluster_harness.machine import Machine
from cluster_harness.models.machine import MachineSpec
from cluster_harness.ssh import SSHMachine

logger = get_logger(__name__)


class PoolManager:
    """Adds control-plane nodes by promoting hosts from the inventory's spare group.

    The spare hosts must already be running and configured to join the cluster
    as control-plane nodes; promotion only records the new membership and hands
    back machine handles.
    """

    def __init__(
        self,
        inventory: InventoryManager,
        connect: Callable[[MachineSpec], Machine] = SSHMachine.from_spec,
    ):
        self.inventory = inventory
        self.connect = connect

    def add_masters(self, count: int) -> list[Machine]:
        """Promote the first ``count`` spare hosts, in inventory order.

        Raises:
            ProvisioningError: If there are not enough spare hosts or the
                inventory cannot be updated; the inventory is left untouched
        """
        if count < 1:
            raise ValidationError(
                f"Cannot add {count} control-plane nodes", "count must be at least 1"
            )

        try:
            spares = self.inventory.get_machines("spare")
        except InventoryError as e:
            raise ProvisioningError(f"Cannot read spare pool: {e.message}", e.details)

        if len(spares) < count:
            raise ProvisioningError(
                f"Requested {count} control-plane node(s) but only {len(spares)} "
                "spare host(s) available",
                f"Add hosts to the 'spare' group in {self.inventory.inventory_path}",
            )

        chosen = spares[:count]
        try:
            self.inventory.promote([spec.hostname for spec in chosen])
        except InventoryError as e:
            raise ProvisioningError(f"Cannot promote spare hosts: {e.message}", e.details)

        logger.info(f"Provisioned control-plane node(s): {', '.join(s.hostname for s in chosen)}")
        return [self.connect(spec) for spec in chosen]


def cluster_from_inventory(
    inventory_path: str | Path,
    config: HarnessConfig | None = None,
    connect: Callable[[MachineSpec], Machine] | None = None,
) -> Cluster:
    """Build a Cluster from an inventory's control_plane and workers groups.

    Machines are connected with ``SSHMachine`` using the config's command
    timeout unless ``connect`` is given.

    Raises:
        InventoryError: If the inventory cannot be read or is invalid
        ValidationError: If the control_plane group is empty
    """
    config = config or HarnessConfig()
    if connect is None:
        connect = partial(SSHMachine.from_spec, command_timeout=config.command_timeout)

    inventory = InventoryManager(inventory_path)
    masters = [connect(spec) for spec in inventory.get_machines("control_plane")]
    workers = [connect(spec) for spec in inventory.get_machines("workers")]

    if not masters:
        raise ValidationError(
            f"No control-plane hosts in {inventory_path}",
            "Add at least one host to the 'control_plane' group",
        )

    logger.debug(f"Loaded cluster with {len(masters)} master(s) and {len(workers)} worker(s)")
    return Cluster(PoolManager(inventory, connect), masters, workers, config=config)
