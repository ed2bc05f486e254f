"""SSH access to cluster machines using paramiko."""

import time

import paramiko

from cluster_harness.exceptions import ExecutionError, TransportError
from cluster_harness.logging_config import get_logger
from cluster_harness.models.machine import CommandResult, MachineSpec
from cluster_harness.retry import retry

logger = get_logger(__name__)

BOOT_ID_COMMAND = "cat /proc/sys/kernel/random/boot_id"
REBOOT_COMMAND = "sudo systemctl reboot"
DEFAULT_COMMAND_TIMEOUT = 120.0
RECV_BUFFER_SIZE = 32768
POLL_INTERVAL = 0.1


class SSHSession:
    """One authenticated SSH connection; each ``run`` opens a fresh channel."""

    def __init__(
        self,
        client: paramiko.SSHClient,
        host: str,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        self._client = client
        self.host = host
        self.command_timeout = command_timeout

    def run(self, command: str) -> CommandResult:
        """Execute a command and capture stdout, stderr and exit status.

        stdout and stderr are read as data arrives so a command that fills one
        stream never stalls waiting for the other to be read.

        Raises:
            TransportError: If the channel cannot be opened, drops mid-command,
                or the command does not finish within ``command_timeout`` seconds
        """
        logger.debug(f"{self.host}$ {command}")

        transport = self._client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportError(f"SSH connection to {self.host} is closed")

        try:
            channel = transport.open_session()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"Failed to open SSH channel on {self.host}", str(e))

        try:
            channel.settimeout(self.command_timeout)
            channel.exec_command(command)
            stdout, stderr = self._drain(channel, command)
            exit_status = channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"Command failed on {self.host}: {command}", str(e))
        finally:
            channel.close()

        # -1 means the server closed the channel without reporting a status
        if exit_status == -1:
            raise TransportError(
                f"Connection to {self.host} closed before '{command}' reported an exit status"
            )

        logger.debug(f"{self.host}: '{command}' exited with status {exit_status}")
        return CommandResult(command=command, stdout=stdout, stderr=stderr, exit_status=exit_status)

    def _drain(self, channel: paramiko.Channel, command: str) -> tuple[bytes, bytes]:
        deadline = time.monotonic() + self.command_timeout
        stdout, stderr = [], []

        while True:
            if channel.recv_ready():
                stdout.append(channel.recv(RECV_BUFFER_SIZE))
                continue
            if channel.recv_stderr_ready():
                stderr.append(channel.recv_stderr(RECV_BUFFER_SIZE))
                continue
            # output sent before the exit status is already buffered
            if channel.exit_status_ready():
                return b"".join(stdout), b"".join(stderr)
            if time.monotonic() >= deadline:
                raise TransportError(
                    f"'{command}' on {self.host} timed out after {self.command_timeout}s"
                )
            time.sleep(POLL_INTERVAL)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SSHSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SSHMachine:
    """A machine reachable over SSH, addressed inside the cluster by its private IP."""

    def __init__(
        self,
        name: str,
        host: str,
        private_ip: str,
        user: str = "core",
        port: int = 22,
        key_file: str | None = None,
        connect_timeout: float = 10,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ):
        """Initialize the machine handle. No connection is made until needed.

        Args:
            name: Inventory hostname, used in log and error messages
            host: Address SSH connects to
            private_ip: Address the cluster knows the node by
            user: SSH login user
            port: SSH port
            key_file: Private key path; agent and default keys are used if omitted
            connect_timeout: Seconds to wait for the TCP connection and handshake
            command_timeout: Seconds a single command may run before it is abandoned
        """
        self.name = name
        self.host = host
        self._private_ip = private_ip
        self.user = user
        self.port = port
        self.key_file = key_file
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    @classmethod
    def from_spec(
        cls,
        spec: MachineSpec,
        connect_timeout: float = 10,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
    ) -> "SSHMachine":
        return cls(
            name=spec.hostname,
            host=spec.ansible_host,
            private_ip=str(spec.private_ip),
            user=spec.ssh_user,
            port=spec.ssh_port,
            key_file=spec.ssh_key_file,
            connect_timeout=connect_timeout,
            command_timeout=command_timeout,
        )

    @property
    def private_ip(self) -> str:
        return self._private_ip

    def open_session(self) -> SSHSession:
        """Connect and authenticate.

        Raises:
            TransportError: If the machine cannot be reached or authentication fails
        """
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                self.host,
                port=self.port,
                username=self.user,
                key_filename=self.key_file,
                timeout=self.connect_timeout,
                banner_timeout=self.connect_timeout,
                auth_timeout=self.connect_timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise TransportError(
                f"Failed to connect to {self.name} ({self.user}@{self.host}:{self.port})", str(e)
            )
        return SSHSession(client, self.name, self.command_timeout)

    def run(self, command: str) -> CommandResult:
        """Run a command in a fresh session and return the untrimmed result."""
        with self.open_session() as session:
            return session.run(command)

    def ssh(self, command: str) -> bytes:
        """Run a command and return trimmed stdout.

        Raises:
            TransportError: If the machine cannot be reached
            ToolError: If the command exits with a non-zero status
        """
        result = self.run(command)
        result.raise_for_status()
        return result.stdout.strip()

    def reboot(self, attempts: int = 30, delay: float = 10.0) -> None:
        """Reboot and block until the machine is back with a new boot id.

        Raises:
            ExecutionError: If the machine did not come back within the retry budget
        """
        old_boot_id = self._boot_id()
        logger.info(f"Rebooting {self.name} (boot id {old_boot_id})")

        try:
            self.run(REBOOT_COMMAND).raise_for_status()
        except TransportError as e:
            # sshd usually goes away before the exit status is sent
            logger.debug(f"Connection to {self.name} dropped during reboot: {e}")

        def rebooted() -> None:
            boot_id = self._boot_id()
            if boot_id == old_boot_id:
                raise TransportError(
                    f"{self.name} has not rebooted yet", f"boot id still {boot_id}"
                )

        retry(attempts, delay, rebooted, retry_on=ExecutionError)
        logger.info(f"{self.name} is back after reboot")

    def _boot_id(self) -> str:
        return self.ssh(BOOT_ID_COMMAND).decode()

    def __repr__(self) -> str:
        return f"SSHMachine(name={self.name!r}, host={self.host!r}, private_ip={self.private_ip!r})"
