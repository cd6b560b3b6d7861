"""Custom exceptions for the operator."""


class OperatorError(Exception):
    """Base exception for all operator errors."""

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


class FetchError(OperatorError):
    """Exception raised when observed state cannot be loaded."""

    pass


class KubernetesError(OperatorError):
    """Exception raised for failed writes against the Kubernetes API."""

    pass


class ConflictError(KubernetesError):
    """Exception raised when a write lost an optimistic concurrency race."""

    pass


class ValidationError(OperatorError):
    """Exception raised for validation errors."""

    pass


class ConfigurationError(OperatorError):
    """Exception raised for configuration errors."""

    pass


class InvariantViolationError(OperatorError):
    """Exception raised when a side-effect free status pass fails.

    This signals a programming defect and aborts the current reconcile
    invocation instead of reporting a misleading status.
    """

    pass
