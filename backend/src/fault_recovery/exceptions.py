"""
Exceptions for the fault recovery system.
"""
from typing import Optional


class RecoveryError(Exception):
    """Base exception for the fault recovery system."""


class RecoveryConfigError(RecoveryError, ValueError):
    """Raised when a recovery configuration value is invalid."""

    def __init__(self, message: str, field_name: str):
        super().__init__(message)
        self.field_name = field_name


class ControllerDisposedError(RecoveryError):
    """Raised when a disposed controller receives a command."""

    def __init__(self, operation_name: str, command: str):
        super().__init__(
            f"Recovery controller for {operation_name} is disposed; "
            f"'{command}' is not allowed"
        )
        self.operation_name = operation_name
        self.command = command


class UpstreamError(RecoveryError):
    """
    A failed call to a downstream service, normalised so its message
    carries the signals the classifier looks for (status code or
    "network error").
    """

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url
