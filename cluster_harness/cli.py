"""Main CLI entry point for cluster verification."""

import shlex
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cluster_harness.exceptions import ClusterHarnessError, ConvergenceError, ToolError
from cluster_harness.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="cluster-harness",
    help="Verify that provisioned machines form a working Kubernetes cluster",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

INVENTORY_OPTION = typer.Option(
    "inventory/hosts.yml", "--inventory", "-i", help="Path to the machine inventory file"
)
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to a harness config file")


# Global callback to set up logging
@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")


def _load_cluster(inventory_path: str, config_path: str | None):
    from cluster_harness.config import HarnessConfig
    from cluster_harness.manager import cluster_from_inventory

    config = HarnessConfig.load(config_path) if config_path else HarnessConfig()
    return cluster_from_inventory(inventory_path, config)


def _fail(e: ClusterHarnessError, label: str = "Error") -> None:
    logger.error(f"{label}: {e.message}")
    console.print(f"[red]{label}:[/red] {e.message}")
    if e.details:
        console.print(f"\n{e.details}")
    raise typer.Exit(code=1)


def _print_membership(cluster, observed: set[str] | None) -> None:
    table = Table(title="Cluster Nodes")
    table.add_column("Name", style="cyan")
    table.add_column("Private IP", style="magenta")
    table.add_column("Role", style="yellow")
    table.add_column("Registered", style="green")

    roles = [("control-plane", m) for m in cluster.masters]
    roles += [("worker", m) for m in cluster.workers]
    for role, machine in roles:
        if observed is None:
            registered = "?"
        elif machine.private_ip in observed:
            registered = "[green]✓ Yes[/green]"
        else:
            registered = "[red]✗ No[/red]"
        name = getattr(machine, "name", machine.private_ip)
        table.add_row(name, machine.private_ip, role, registered)

    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    from cluster_harness import __version__

    typer.echo(f"cluster-harness version {__version__}")


@app.command()
def nodes(
    attempts: int | None = typer.Option(
        None, "--attempts", "-a", min=1, help="Maximum number of checks (default from config)"
    ),
    inventory_path: str = INVENTORY_OPTION,
    config_path: str | None = CONFIG_OPTION,
) -> None:
    """
    Check that every inventory machine is registered with the cluster.

    Lists nodes with kubectl on the control plane and compares them with the
    control_plane and workers groups, retrying until they match or the
    attempts run out.
    """
    try:
        cluster = _load_cluster(inventory_path, config_path)
        attempts = attempts or cluster.config.node_check_attempts
        console.print(f"Checking {len(cluster.machines)} node(s), up to {attempts} attempt(s)...")

        try:
            snapshot = cluster.node_check(attempts)
        except ConvergenceError as e:
            _print_membership(cluster, getattr(e, "observed", None))
            _fail(e, "Convergence Error")

        _print_membership(cluster, set(snapshot.addresses))
        console.print(f"\n[green]✓ All {len(snapshot.addresses)} node(s) registered[/green]")

    except ClusterHarnessError as e:
        _fail(e)


@app.command(context_settings={"allow_extra_args": True, "ignore_unknown_options": True})
def kubectl(
    args: list[str] = typer.Argument(..., help="kubectl arguments, e.g. 'get pods -A'"),
    inventory_path: str = INVENTORY_OPTION,
    config_path: str | None = CONFIG_OPTION,
) -> None:
    """Run kubectl with admin credentials on the first control-plane node."""
    try:
        cluster = _load_cluster(inventory_path, config_path)
        output = cluster.kubectl(shlex.join(args))
        console.print(output, end="", markup=False, highlight=False)
    except ToolError as e:
        _fail(e, "kubectl Error")
    except ClusterHarnessError as e:
        _fail(e)


@app.command()
def ssh(
    command: str = typer.Argument(..., help="Shell command to run"),
    inventory_path: str = INVENTORY_OPTION,
    config_path: str | None = CONFIG_OPTION,
) -> None:
    """Run a shell command on the first control-plane node."""
    try:
        cluster = _load_cluster(inventory_path, config_path)
        result = cluster.ssh(command)
    except ClusterHarnessError as e:
        _fail(e)

    if result.stdout:
        console.print(result.stdout.decode(errors="replace"), markup=False, highlight=False)
    if result.stderr:
        console.print(f"[yellow]{result.stderr.decode(errors='replace')}[/yellow]", highlight=False)
    if not result.ok:
        raise typer.Exit(code=result.exit_status)


@app.command()
def add_masters(
    count: int = typer.Argument(..., min=1, help="Number of control-plane nodes to add"),
    inventory_path: str = INVENTORY_OPTION,
    config_path: str | None = CONFIG_OPTION,
) -> None:
    """
    Add control-plane nodes from the spare pool and wait until they are registered.

    Spare hosts are promoted in inventory order. If they do not register in
    time they stay in the control_plane group and the command fails.
    """
    try:
        cluster = _load_cluster(inventory_path, config_path)
        added = cluster.add_masters(count)
    except ConvergenceError as e:
        _fail(e, "Convergence Error")
    except ClusterHarnessError as e:
        _fail(e)

    for machine in added:
        name = getattr(machine, "name", machine.private_ip)
        console.print(
            f"[green]✓[/green] Added control-plane node '{name}' ({machine.private_ip})"
        )
    console.print(f"\n[bold]Control plane size:[/bold] {len(cluster.masters)}")


@app.command()
def reboot(
    hostname: str = typer.Argument(..., help="Inventory hostname of the machine to reboot"),
    attempts: int | None = typer.Option(
        None, "--attempts", "-a", min=1, help="Maximum number of node checks after reboot"
    ),
    inventory_path: str = INVENTORY_OPTION,
    config_path: str | None = CONFIG_OPTION,
) -> None:
    """Reboot a cluster machine and check that the cluster recovers."""
    try:
        cluster = _load_cluster(inventory_path, config_path)
        machine = next((m for m in cluster.machines if getattr(m, "name", None) == hostname), None)
        if machine is None:
            console.print(f"[red]Error:[/red] Host '{hostname}' is not a cluster member")
            raise typer.Exit(code=1)

        console.print(f"[yellow]Rebooting '{hostname}'...[/yellow]")
        machine.reboot()
        console.print(f"[green]✓[/green] '{hostname}' is back")

        cluster.node_check(attempts or cluster.config.node_check_attempts)
        console.print("[green]✓ All nodes registered after reboot[/green]")

    except ConvergenceError as e:
        _fail(e, "Convergence Error")
    except ClusterHarnessError as e:
        _fail(e)


if __name__ == "__main__":
    app()
