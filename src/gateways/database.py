"""
Database Gateway

Thin wrapper around psycopg2 that opens one connection per poll cycle and
yields statement results as plain dictionaries.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from src.utils.errors import DatabaseConnectionError, StatementExecutionError

logger = logging.getLogger(__name__)


class DatabaseSession:
    """An open database connection used for the duration of one cycle."""

    def __init__(self, connection):
        """
        Initialize session.

        Args:
            connection: Open psycopg2 connection
        """
        self.connection = connection

    def server_version(self) -> int:
        """
        Liveness check: ask the server for its version.

        Raises:
            DatabaseConnectionError: If the server does not answer
        """
        try:
            with self.connection.cursor() as cursor:
                cursor.execute("SHOW server_version_num")
                row = cursor.fetchone()
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Database liveness check failed: {e}") from e

        return int(row[0]) if row else self.connection.server_version

    def execute(self, sql: str, identifier: Optional[str] = None) -> Iterator[Dict[str, Any]]:
        """
        Execute a statement and yield its rows.

        Rows are yielded in the order the server returns them. The cursor is
        closed once the rows are exhausted.

        Args:
            sql: Statement text
            identifier: Statement identifier, used in error reports

        Yields:
            One dict per result row, keyed by column name

        Raises:
            StatementExecutionError: If the statement fails
        """
        try:
            with self.connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(sql)
                if cursor.description is None:
                    logger.debug(f"Statement {identifier} returned no result set")
                    return
                for row in cursor:
                    yield dict(row)
        except psycopg2.Error as e:
            raise StatementExecutionError(
                str(e).strip() or type(e).__name__,
                identifier=identifier,
                sql=sql
            ) from e

    def close(self) -> None:
        """Close the connection."""
        if not self.connection.closed:
            self.connection.close()


class DatabaseGateway:
    """
    Opens database sessions for the poll engine.

    Connection credentials are passed through to the driver untouched.
    Optional timeouts bound how long a connect or a single statement may
    block the poll loop.
    """

    def __init__(
        self,
        dsn: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        connect_timeout: Optional[int] = None,
        statement_timeout: Optional[float] = None,
        application_name: str = "sql-statsd"
    ):
        """
        Initialize database gateway.

        Args:
            dsn: libpq connection string or URI
            user: Database user
            password: Database password
            connect_timeout: Connect timeout in seconds
            statement_timeout: Per-statement timeout in seconds
            application_name: Name reported to the server
        """
        self.dsn = dsn
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.statement_timeout = statement_timeout
        self.application_name = application_name

    @classmethod
    def from_config(cls, config) -> "DatabaseGateway":
        """Create a gateway from a PollerConfig."""
        return cls(
            dsn=config.dsn,
            user=config.user,
            password=config.password,
            connect_timeout=config.db_connect_timeout,
            statement_timeout=config.db_statement_timeout
        )

    def _connect_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"application_name": self.application_name}

        if self.user:
            kwargs["user"] = self.user
        if self.password:
            kwargs["password"] = self.password
        if self.connect_timeout:
            kwargs["connect_timeout"] = self.connect_timeout
        if self.statement_timeout:
            kwargs["options"] = f"-c statement_timeout={int(self.statement_timeout * 1000)}"

        return kwargs

    def open(self) -> DatabaseSession:
        """
        Open a new session.

        Raises:
            DatabaseConnectionError: If the database is unreachable or
                rejects the credentials
        """
        logger.debug("Connecting to database")
        try:
            conn = psycopg2.connect(self.dsn, **self._connect_kwargs())
        except psycopg2.Error as e:
            raise DatabaseConnectionError(f"Cannot connect to database: {str(e).strip()}") from e

        # Read-only polling: every statement commits on its own
        conn.autocommit = True
        return DatabaseSession(conn)

    @contextmanager
    def connect(self) -> Iterator[DatabaseSession]:
        """Open a session and close it when the block exits."""
        session = self.open()
        try:
            yield session
        finally:
            session.close()
            logger.debug("Database connection closed")
