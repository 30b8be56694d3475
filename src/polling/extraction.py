"""
Row to metric extraction.

A row yields a gauge sample only when it exposes both a ``name`` and a
``value`` field with non-missing content. Values are passed through untouched;
numeric validation belongs to the sink.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

NAME_FIELD = "name"
VALUE_FIELD = "value"

_MISSING = object()


@dataclass(frozen=True)
class Metric:
    """A gauge sample built from one result row."""

    name: str
    value: Any


def _field(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key, _MISSING)
    return getattr(row, key, _MISSING)


def extract_metric(row: Any) -> Optional[Metric]:
    """
    Build a metric from a result row.

    Args:
        row: Mapping of column name to value, or an object with
            ``name``/``value`` attributes

    Returns:
        Metric, or None when the row lacks a usable name or value
    """
    name = _field(row, NAME_FIELD)
    value = _field(row, VALUE_FIELD)

    if name is _MISSING or name is None or name == "":
        return None
    if value is _MISSING or value is None or value == "":
        return None

    return Metric(name=str(name), value=value)
