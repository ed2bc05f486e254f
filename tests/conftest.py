"""Pytest configuration and shared fixtures."""

from unittest.mock import patch

import pytest
from hypothesis import Verbosity, settings

from cluster_harness.models.machine import CommandResult

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")

NODES_HEADER = "NAME         STATUS    AGE"


def render_nodes(*addresses: str) -> str:
    """Render ``kubectl get nodes`` output listing the given node names."""
    lines = [NODES_HEADER] + [f"{address}   Ready     5m" for address in addresses]
    return "\n".join(lines) + "\n"


def ok(stdout: str = "", stderr: str = "") -> CommandResult:
    return CommandResult(stdout=stdout.encode(), stderr=stderr.encode(), exit_status=0)


def failed(stderr: str, exit_status: int = 1, stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout.encode(), stderr=stderr.encode(), exit_status=exit_status)


class FakeSession:
    """Session that replays the owning machine's scripted responses."""

    def __init__(self, machine: "FakeMachine"):
        self.machine = machine
        self.closed = False

    def run(self, command: str) -> CommandResult:
        self.machine.commands.append(command)
        response = self.machine.next_response()
        if isinstance(response, Exception):
            raise response
        return response.model_copy(update={"command": command})

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FakeMachine:
    """In-memory machine. Responses are consumed in order; the last one repeats."""

    def __init__(self, private_ip: str, name: str | None = None, responses=None, open_error=None):
        self._private_ip = private_ip
        self.name = name or f"node-{private_ip.replace('.', '-')}"
        self.responses = list(responses or [ok()])
        self.open_error = open_error
        self.sessions: list[FakeSession] = []
        self.commands: list[str] = []
        self.reboots = 0

    @property
    def private_ip(self) -> str:
        return self._private_ip

    def next_response(self):
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    def open_session(self) -> FakeSession:
        if self.open_error is not None:
            raise self.open_error
        session = FakeSession(self)
        self.sessions.append(session)
        return session

    def ssh(self, command: str) -> bytes:
        with self.open_session() as session:
            result = session.run(command)
        result.raise_for_status()
        return result.stdout.strip()

    def reboot(self) -> None:
        self.reboots += 1


class FakeManager:
    """Manager that hands out prepared machines or raises a prepared error."""

    def __init__(self, machines=None, error: Exception | None = None):
        self.machines = list(machines or [])
        self.error = error
        self.calls: list[int] = []

    def add_masters(self, count: int):
        self.calls.append(count)
        if self.error is not None:
            raise self.error
        return self.machines[:count]


@pytest.fixture
def make_machine():
    """Factory for FakeMachine instances."""
    return FakeMachine


@pytest.fixture
def make_manager():
    """Factory for FakeManager instances."""
    return FakeManager


@pytest.fixture
def no_sleep():
    """Patch out the retry delay and expose the mock for assertions."""
    with patch("cluster_harness.retry.time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def sample_inventory_data():
    """Sample inventory data for testing."""
    return {
        "all": {
            "vars": {
                "ssh_user": "core",
                "ssh_key_file": "~/.ssh/harness",
            },
            "children": {
                "control_plane": {
                    "hosts": {
                        "master-1": {
                            "ansible_host": "203.0.113.10",
                            "private_ip": "10.0.0.10",
                        }
                    }
                },
                "workers": {
                    "hosts": {
                        "worker-1": {
                            "ansible_host": "203.0.113.20",
                            "private_ip": "10.0.0.20",
                            "ssh_port": 2222,
                        }
                    }
                },
                "spare": {
                    "hosts": {
                        "master-2": {
                            "ansible_host": "203.0.113.11",
                            "private_ip": "10.0.0.11",
                        },
                        "master-3": {
                            "ansible_host": "203.0.113.12",
                            "private_ip": "10.0.0.12",
                        },
                    }
                },
            },
        }
    }


@pytest.fixture
def inventory_file(tmp_path, sample_inventory_data):
    """Sample inventory written to a temporary hosts.yml."""
    import yaml

    path = tmp_path / "hosts.yml"
    with open(path, "w") as f:
        yaml.safe_dump(sample_inventory_data, f, sort_keys=False)
    return path


@pytest.fixture
def nodes_output():
    """Renderer for ``kubectl get nodes`` output."""
    return render_nodes


@pytest.fixture
def ok_result():
    """Builder for successful CommandResults."""
    return ok


@pytest.fixture
def failed_result():
    """Builder for failed CommandResults."""
    return failed
