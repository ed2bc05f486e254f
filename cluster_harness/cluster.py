"""Handle on a running Kubernetes cluster under test."""

from collections.abc import Sequence

from cluster_harness.config import HarnessConfig
from cluster_harness.exceptions import (
    ClusterHarnessError,
    ConvergenceError,
    ExecutionError,
    ToolError,
    TransportError,
    ValidationError,
)
from cluster_harness.logging_config import get_logger
from cluster_harness.machine import Machine, Manager
from cluster_harness.models.machine import CommandResult
from cluster_harness.models.snapshot import NodeSnapshot
from cluster_harness.retry import retry
from cluster_harness.selection import TargetSelector, get_selector

logger = get_logger(__name__)


class Cluster:
    """A set of control-plane and worker machines forming one cluster.

    Tests build a Cluster from machines that are already running and a Manager
    that knows how to provision more control-plane nodes on the same platform.
    The Cluster never creates or destroys machines itself; it only holds
    references to them.

    Operations are blocking and not thread-safe. Callers running operations
    concurrently against the same Cluster must serialize them.
    """

    def __init__(
        self,
        manager: Manager,
        masters: Sequence[Machine],
        workers: Sequence[Machine] = (),
        config: HarnessConfig | None = None,
        selector: TargetSelector | None = None,
    ):
        """Initialize the cluster handle.

        Args:
            manager: Provisions additional control-plane nodes
            masters: Control-plane machines in provisioning order
            workers: Worker machines, may be empty
            config: Remote tooling and retry settings, defaults if omitted
            selector: Chooses the machine commands run on, from config if omitted
        """
        self.manager = manager
        self.masters: list[Machine] = list(masters)
        self.workers: list[Machine] = list(workers)
        self.config = config or HarnessConfig()
        self.selector = selector or get_selector(self.config.selector)

    @property
    def machines(self) -> list[Machine]:
        """All known machines, workers first."""
        return [*self.workers, *self.masters]

    def expected_addresses(self) -> list[str]:
        return [m.private_ip for m in self.machines]

    def kubectl(self, cmd: str) -> str:
        """Run a kubectl subcommand with admin credentials on the control plane.

        Args:
            cmd: kubectl arguments, e.g. ``"get nodes"``

        Returns:
            kubectl stdout

        Raises:
            ValidationError: If the cluster has no control-plane machines
            TransportError: If the machine cannot be reached
            ToolError: If kubectl exits non-zero; the message carries its stderr
        """
        machine = self.selector.select(self.masters)
        command = self.config.kubectl_command(cmd)

        try:
            with machine.open_session() as session:
                result = session.run(command)
        except TransportError as e:
            raise TransportError(f"kubectl: {cmd}: {e.message}", e.details)

        if not result.ok:
            stderr = result.stderr.decode(errors="replace")
            raise ToolError(f"kubectl: {stderr}", stderr=stderr, exit_status=result.exit_status)

        return result.stdout.decode(errors="replace")

    def ssh(self, cmd: str) -> CommandResult:
        """Run an arbitrary command on the control plane.

        Unlike ``kubectl``, a non-zero exit status is not raised. stdout and
        stderr come back trimmed so retry loops can decide what is worth
        reporting; use ``result.ok`` or ``result.raise_for_status()``.

        Raises:
            ValidationError: If the cluster has no control-plane machines
            TransportError: If the machine cannot be reached
        """
        machine = self.selector.select(self.masters)

        with machine.open_session() as session:
            result = session.run(cmd)

        return result.stripped()

    def add_masters(self, n: int) -> list[Machine]:
        """Provision ``n`` control-plane nodes and block until the cluster sees them.

        If the convergence check fails the new machines stay in ``masters``:
        they were provisioned but are not confirmed ready.

        Returns:
            The newly added machines, in the order the manager returned them

        Raises:
            ValidationError: If n is less than 1
            ProvisioningError: If the manager could not create the nodes
            ConvergenceError: If the cluster did not report the new nodes in time
        """
        if n < 1:
            raise ValidationError(f"Cannot add {n} control-plane nodes", "n must be at least 1")

        logger.info(f"Adding {n} control-plane node(s)")
        nodes = list(self.manager.add_masters(n))
        self.masters.extend(nodes)
        logger.debug(f"Appended {[m.private_ip for m in nodes]} to control plane")

        try:
            self.node_check(self.config.add_masters_attempts)
        except ClusterHarnessError:
            logger.warning(
                f"New control-plane node(s) {[m.private_ip for m in nodes]} were provisioned "
                "but not confirmed ready"
            )
            raise

        return nodes

    def node_check(self, retry_attempts: int) -> NodeSnapshot:
        """Wait until ``kubectl get nodes`` lists exactly the known machines.

        Each attempt lists nodes on the control plane and compares the first
        column against every machine's private IP. Remote execution and
        convergence errors count as a failed attempt; attempts are spaced
        ``config.retry_delay`` seconds apart.

        Args:
            retry_attempts: Maximum number of attempts

        Returns:
            The snapshot from the successful attempt

        Raises:
            ClusterHarnessError: The final attempt's error, e.g. DivergenceError
                or MissingNodeError
        """

        def attempt() -> NodeSnapshot:
            snapshot = NodeSnapshot.from_kubectl_output(self.kubectl("get nodes"))
            snapshot.verify(self.expected_addresses())
            return snapshot

        snapshot = retry(
            retry_attempts,
            self.config.retry_delay,
            attempt,
            retry_on=(ExecutionError, ConvergenceError),
        )
        logger.info(f"All {len(snapshot.addresses)} node(s) registered")
        return snapshot
