"""Tests for error handling across components."""

import pytest

from cluster_harness.exceptions import (
    ClusterHarnessError,
    ConfigurationError,
    ConvergenceError,
    DivergenceError,
    ExecutionError,
    MissingNodeError,
    ProvisioningError,
    ToolError,
    TransportError,
    ValidationError,
)
from cluster_harness.inventory import InventoryError, InventoryValidationError
from cluster_harness.logging_config import get_logger, setup_logging


def test_custom_exception_with_details():
    """Test that custom exceptions support message and details."""
    error = TransportError("Failed to connect to master-1", "Connection refused")

    assert error.message == "Failed to connect to master-1"
    assert error.details == "Connection refused"
    assert "Failed to connect to master-1" in str(error)
    assert "Connection refused" in str(error)


def test_custom_exception_without_details():
    """Test that custom exceptions work without details."""
    error = ValidationError("Invalid input")

    assert error.message == "Invalid input"
    assert error.details is None
    assert str(error) == "Invalid input"


def test_exception_hierarchy():
    """Test that all custom exceptions inherit from ClusterHarnessError."""
    assert issubclass(ExecutionError, ClusterHarnessError)
    assert issubclass(TransportError, ExecutionError)
    assert issubclass(ToolError, ExecutionError)
    assert issubclass(ConvergenceError, ClusterHarnessError)
    assert issubclass(DivergenceError, ConvergenceError)
    assert issubclass(MissingNodeError, ConvergenceError)
    assert issubclass(ProvisioningError, ClusterHarnessError)
    assert issubclass(ValidationError, ClusterHarnessError)
    assert issubclass(ConfigurationError, ClusterHarnessError)
    assert issubclass(InventoryError, ClusterHarnessError)
    assert issubclass(InventoryValidationError, InventoryError)


def test_provisioning_error_is_not_retryable_kind():
    """Provisioning failures are outside the execution and convergence families."""
    assert not issubclass(ProvisioningError, (ExecutionError, ConvergenceError))


def test_tool_error_carries_stderr():
    """ToolError keeps the remote stderr and exit status for callers."""
    error = ToolError("kubectl: connection refused", stderr="connection refused", exit_status=1)

    assert error.stderr == "connection refused"
    assert error.exit_status == 1
    assert str(error) == "kubectl: connection refused"


def test_divergence_error_carries_both_sets():
    """DivergenceError reports the observed and expected node sets."""
    error = DivergenceError({"10.0.0.1"}, {"10.0.0.1", "10.0.0.2"})

    assert error.observed == {"10.0.0.1"}
    assert error.expected == {"10.0.0.1", "10.0.0.2"}
    assert "observed 1 node(s)" in str(error)
    assert "expected 2 node(s)" in str(error)
    assert "10.0.0.2" in str(error)


def test_missing_node_error_names_address():
    """MissingNodeError names the address that was not found."""
    error = MissingNodeError("10.0.0.3", {"10.0.0.1", "10.0.0.2"})

    assert error.address == "10.0.0.3"
    assert "10.0.0.3" in error.message
    assert "10.0.0.2" in error.details


def test_missing_node_error_without_observed_set():
    """MissingNodeError works without an observed set."""
    error = MissingNodeError("C")

    assert error.address == "C"
    assert error.observed == set()
    assert error.details is None


def test_logging_setup():
    """Test that logging can be configured."""
    setup_logging(level="INFO", verbose=False)

    logger = get_logger("test")
    assert logger is not None
    assert logger.name == "test"


def test_logging_with_verbose():
    """Test that verbose mode sets DEBUG level."""
    import logging

    setup_logging(verbose=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("paramiko").level == logging.WARNING


def test_logging_to_file(tmp_path):
    """Test that a log file handler writes debug output."""
    log_file = tmp_path / "logs" / "harness.log"
    setup_logging(log_file=log_file, verbose=True)

    get_logger("cluster_harness.test").debug("written to file")
    for handler in get_logger("").handlers:
        handler.flush()

    assert "written to file" in log_file.read_text()


def test_console_format_depends_on_verbosity():
    """Quiet console output is short; verbose output carries timestamps and names."""
    import logging

    from cluster_harness.logging_config import CONSOLE_FORMAT, DETAILED_FORMAT

    setup_logging(verbose=False)
    console = logging.getLogger().handlers[0]
    assert console.level == logging.WARNING
    assert console.formatter._fmt == CONSOLE_FORMAT

    setup_logging(verbose=True)
    console = logging.getLogger().handlers[0]
    assert console.level == logging.DEBUG
    assert console.formatter._fmt == DETAILED_FORMAT


def test_unwritable_log_file_keeps_console_logging(tmp_path):
    """A log file that cannot be created does not break logging setup."""
    import logging

    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")

    setup_logging(log_file=blocker / "harness.log")

    assert len(logging.getLogger().handlers) == 1


def test_inventory_error_messages():
    """Test that inventory errors have helpful messages."""
    from cluster_harness.inventory import InventoryManager

    mgr = InventoryManager("nonexistent.yml")

    with pytest.raises(InventoryError) as exc_info:
        mgr.read()

    error_msg = str(exc_info.value)
    assert "not found" in error_msg.lower()
    assert "nonexistent.yml" in error_msg


def test_exception_can_be_caught_as_base_class():
    """Test that specific exceptions can be caught as ClusterHarnessError."""
    try:
        raise MissingNodeError("10.0.0.1")
    except ClusterHarnessError as e:
        assert isinstance(e, ConvergenceError)
        assert e.address == "10.0.0.1"
