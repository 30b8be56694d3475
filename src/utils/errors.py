"""
Error Taxonomy for the SQL Poller

Fatal errors propagate to the command line entry point; only rows without a
name/value pair are treated as an expected, non-error condition.
"""

from typing import Optional


class PollerError(Exception):
    """Base class for all poller errors."""
    pass


class ConfigError(PollerError):
    """Configuration source missing, unreadable or incomplete."""
    pass


class StatementSourceError(ConfigError):
    """Statement set file missing, unreadable or malformed."""
    pass


class DatabaseConnectionError(PollerError, ConnectionError):
    """Database unreachable or credentials rejected."""
    pass


class StatementExecutionError(PollerError):
    """A single statement failed to execute."""

    def __init__(self, message: str, identifier: Optional[str] = None, sql: Optional[str] = None):
        """
        Initialize statement execution error.

        Args:
            message: Error description
            identifier: Identifier of the failing statement
            sql: Statement text
        """
        super().__init__(message)
        self.identifier = identifier
        self.sql = sql

    def __str__(self) -> str:
        message = super().__str__()
        if self.identifier:
            return f"[{self.identifier}] {message}"
        return message


class SinkDeliveryError(PollerError):
    """The metrics sink is unreachable or rejected a sample."""
    pass
