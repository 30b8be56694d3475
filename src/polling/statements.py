"""
Statement Set Loader

Reads the ordered list of (identifier, SQL) pairs the poller executes each
cycle from a semicolon-delimited file.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

from src.utils.errors import StatementSourceError

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ";"
HEADER_MARKER = "name"


@dataclass(frozen=True)
class Statement:
    """
    One statement of the statement set.

    Attributes:
        identifier: Informational name, used in traces and error reports
        sql: Statement text executed against the database
    """

    identifier: str
    sql: str

    def is_runnable(self) -> bool:
        """A statement runs only when both identifier and text are present."""
        return bool(self.identifier) and bool(self.sql)


class StatementLoader:
    """
    Loads statements from a ``;``-separated file.

    The file is read on every call to ``load()`` so it can be edited while
    the poller runs.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize statement loader.

        Args:
            path: Path of the statement file
        """
        self.path = Path(path)

    def load(self) -> List[Statement]:
        """
        Read the statement file.

        Returns:
            Statements in file order, header row removed

        Raises:
            StatementSourceError: If the file cannot be read or parsed
        """
        try:
            with self.path.open("r", encoding="utf-8", newline="") as f:
                rows = list(csv.reader(f, delimiter=FIELD_SEPARATOR))
        except OSError as e:
            raise StatementSourceError(f"Cannot read statement file {self.path}: {e}") from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise StatementSourceError(f"Malformed statement file {self.path}: {e}") from e

        statements = parse_rows(rows)
        logger.debug(f"Loaded {len(statements)} statements from {self.path}")
        return statements


def parse_rows(rows: List[List[str]]) -> List[Statement]:
    """
    Turn raw CSV rows into statements.

    Every cell after the identifier belongs to the SQL text, so a statement
    containing unquoted semicolons is kept whole.

    Args:
        rows: Parsed rows, each a list of cells

    Returns:
        Statements in row order
    """
    rows = [row for row in rows if any(cell.strip() for cell in row)]

    if rows and rows[0][0].strip().lower() == HEADER_MARKER:
        rows = rows[1:]

    statements = []
    for row in rows:
        identifier = row[0].strip()
        # Unquoted separators inside the SQL text split it into extra cells
        sql = FIELD_SEPARATOR.join(row[1:]).strip()
        statements.append(Statement(identifier=identifier, sql=sql))

    return statements
