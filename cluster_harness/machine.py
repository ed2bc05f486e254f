"""Interfaces the cluster expects from its machines and its cluster manager."""

from typing import Protocol, runtime_checkable

from cluster_harness.models.machine import CommandResult


@runtime_checkable
class Session(Protocol):
    """A remote shell session. Closed by the caller, usually via ``with``."""

    def run(self, command: str) -> CommandResult:
        """Run a command and capture its output.

        A non-zero exit status is reported in the result, not raised.
        Connection problems raise TransportError.
        """
        ...

    def close(self) -> None: ...

    def __enter__(self) -> "Session": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


@runtime_checkable
class Machine(Protocol):
    """A running machine. Its lifetime belongs to whoever provisioned it."""

    @property
    def private_ip(self) -> str: ...

    def open_session(self) -> Session:
        """Open a new session, raising TransportError if the machine is unreachable."""
        ...

    def ssh(self, command: str) -> bytes:
        """Run a command and return trimmed stdout, raising ToolError on failure."""
        ...

    def reboot(self) -> None:
        """Reboot the machine and block until it is reachable again."""
        ...


class Manager(Protocol):
    """Provisions control-plane nodes on whatever platform the cluster runs on."""

    def add_masters(self, count: int) -> list[Machine]:
        """Create ``count`` control-plane nodes and return them once they are running.

        Raises:
            ProvisioningError: If the nodes could not be created
        """
        ...
