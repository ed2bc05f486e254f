"""Custom exceptions for the cluster harness."""


class ClusterHarnessError(Exception):
    """Base exception for all cluster harness errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ExecutionError(ClusterHarnessError):
    """Exception raised when a remote command cannot be executed successfully."""

    pass


class TransportError(ExecutionError):
    """Exception raised when an SSH connection, session or channel fails."""

    pass


class ToolError(ExecutionError):
    """Exception raised when a remote command exits with a non-zero status."""

    def __init__(self, message: str, stderr: str = "", exit_status: int | None = None):
        self.stderr = stderr
        self.exit_status = exit_status
        super().__init__(message)


class ConvergenceError(ClusterHarnessError):
    """Exception raised when the cluster does not report the expected nodes."""

    pass


class DivergenceError(ConvergenceError):
    """Exception raised when the observed node count differs from the expected count."""

    def __init__(self, observed: set[str], expected: set[str]):
        self.observed = set(observed)
        self.expected = set(expected)
        super().__init__(
            "cannot detect all nodes in kubectl output",
            f"observed {len(self.observed)} node(s): {sorted(self.observed)}\n"
            f"expected {len(self.expected)} node(s): {sorted(self.expected)}",
        )


class MissingNodeError(ConvergenceError):
    """Exception raised when an expected node address is absent from kubectl output."""

    def __init__(self, address: str, observed: set[str] | None = None):
        self.address = address
        self.observed = set(observed or ())
        super().__init__(
            f"node IP {address} missing from kubectl get nodes",
            f"observed: {sorted(self.observed)}" if self.observed else None,
        )


class ProvisioningError(ClusterHarnessError):
    """Exception raised when the cluster manager cannot create requested nodes."""

    pass


class ValidationError(ClusterHarnessError):
    """Exception raised for validation errors."""

    pass


class ConfigurationError(ClusterHarnessError):
    """Exception raised for configuration errors."""

    pass
