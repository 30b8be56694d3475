"""
Cycle Correlation IDs

Every poll cycle runs under its own ID so that log lines produced while
executing statements and sending gauges can be grouped per cycle.
"""

import uuid
import contextvars
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Context variable for the current cycle ID
_cycle_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'cycle_id',
    default=None
)


def generate_cycle_id() -> str:
    """
    Generate a new cycle ID.

    Returns:
        Short hexadecimal ID derived from a UUID4
    """
    return uuid.uuid4().hex[:12]


def get_cycle_id() -> Optional[str]:
    """Return the current cycle ID, or None outside a cycle."""
    return _cycle_id.get()


class CycleContext:
    """
    Context manager that scopes a cycle ID to one poll cycle.

    The previous ID, if any, is restored on exit.
    """

    def __init__(self, cycle_id: Optional[str] = None):
        """
        Initialize cycle context.

        Args:
            cycle_id: ID to use; a new one is generated when omitted
        """
        self.cycle_id = cycle_id
        self._token = None

    def __enter__(self) -> str:
        if not self.cycle_id:
            self.cycle_id = generate_cycle_id()
        self._token = _cycle_id.set(self.cycle_id)
        logger.debug(f"Entered cycle {self.cycle_id}")
        return self.cycle_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        _cycle_id.reset(self._token)
        self._token = None


def cycle_id_filter(record: logging.LogRecord) -> bool:
    """
    Logging filter adding ``cycle_id`` to log records.

    Always lets the record through.
    """
    record.cycle_id = get_cycle_id() or "-"
    return True


def setup_cycle_logging(handler: logging.Handler) -> None:
    """
    Make a handler stamp records with the current cycle ID.

    Args:
        handler: Handler to configure
    """
    handler.addFilter(cycle_id_filter)
