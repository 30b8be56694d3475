"""
Poll Engine

Drives the poll cycle: load the statement set, open a database session,
execute every statement in file order, turn eligible rows into gauge samples
and hand them to the statsd sink. Cycles repeat on a fixed interval.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from src.gateways.database import DatabaseGateway
from src.gateways.statsd_sink import StatsdSettings, StatsdSink
from src.polling.extraction import extract_metric
from src.polling.statements import Statement, StatementLoader
from src.utils.correlation import CycleContext
from src.utils.errors import StatementExecutionError

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """
    Outcome of one poll cycle.

    Attributes:
        statements_executed: Statements that ran to completion
        statements_failed: Statements that raised StatementExecutionError
        statements_skipped: Statements without identifier or text
        rows_seen: Result rows iterated
        metrics_sent: Gauge samples handed to the sink
        metrics_suppressed: Gauge samples withheld by suppress-send
        rows_skipped: Rows without a usable name/value pair
        failures: Statement errors recorded while isolating failures
    """

    statements_executed: int = 0
    statements_failed: int = 0
    statements_skipped: int = 0
    rows_seen: int = 0
    metrics_sent: int = 0
    metrics_suppressed: int = 0
    rows_skipped: int = 0
    failures: List[StatementExecutionError] = field(default_factory=list)


class PollEngine:
    """
    Runs statements against the database and forwards results as gauges.

    The engine is single-threaded: one statement is fully iterated before the
    next one starts, and metrics are sent one at a time in row order.
    """

    def __init__(
        self,
        loader: StatementLoader,
        gateway: DatabaseGateway,
        sink: StatsdSink,
        debug: bool = False,
        isolate_statement_errors: bool = True,
        metrics=None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize poll engine.

        Args:
            loader: Source of the statement set
            gateway: Opens database sessions
            sink: Receives gauge samples
            debug: Trace statements, rows and sends
            isolate_statement_errors: Log a failing statement and continue
                with the next one instead of aborting the cycle
            metrics: Optional PollerMetrics for self-instrumentation
            sleep: Function used to wait between cycles
            clock: Function returning the current Unix time
        """
        self.loader = loader
        self.gateway = gateway
        self.sink = sink
        self.debug = debug
        self.isolate_statement_errors = isolate_statement_errors
        self.metrics = metrics
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config, options, metrics=None) -> "PollEngine":
        """
        Build an engine and its collaborators from configuration.

        Args:
            config: PollerConfig
            options: RunOptions
            metrics: Optional PollerMetrics
        """
        return cls(
            loader=StatementLoader(config.query_csv_file),
            gateway=DatabaseGateway.from_config(config),
            sink=StatsdSink(StatsdSettings.from_config(config), suppress=options.no_send_metric),
            debug=options.debug,
            isolate_statement_errors=config.isolate_statement_errors,
            metrics=metrics
        )

    def _trace(self, message: str, *args) -> None:
        if self.debug:
            logger.debug(message, *args)

    def run_cycle(self) -> CycleReport:
        """
        Run one full pass over the statement set.

        Returns:
            CycleReport with per-cycle counters

        Raises:
            StatementSourceError: If the statement file cannot be read
            DatabaseConnectionError: If the database cannot be reached
            StatementExecutionError: If a statement fails and failures are
                not isolated
            SinkDeliveryError: If the sink rejects a sample
        """
        started = self._clock()

        with CycleContext() as cycle_id:
            try:
                report = self._run_cycle()
            except Exception:
                if self.metrics is not None:
                    self.metrics.record_failed_cycle(self._clock() - started)
                raise

            finished = self._clock()
            if self.metrics is not None:
                self.metrics.record_cycle(report, finished - started, finished)

            logger.info(
                f"Cycle {cycle_id} finished in {finished - started:.3f}s: "
                f"{report.statements_executed} statements, "
                f"{report.metrics_sent} sent, {report.metrics_suppressed} suppressed, "
                f"{report.rows_skipped} rows skipped, {report.statements_failed} failed"
            )

        return report

    def _run_cycle(self) -> CycleReport:
        statements = self.loader.load()
        report = CycleReport()

        with self.gateway.connect() as session:
            version = session.server_version()
            self._trace("Connected to database server version %s", version)

            for statement in statements:
                self._run_statement(session, statement, report)

        return report

    def _run_statement(self, session, statement: Statement, report: CycleReport) -> None:
        if not statement.is_runnable():
            report.statements_skipped += 1
            return

        self._trace("Running %s: %s", statement.identifier, statement.sql)

        try:
            for row in session.execute(statement.sql, identifier=statement.identifier):
                report.rows_seen += 1
                self._emit_row(row, report)
        except StatementExecutionError as e:
            if e.identifier is None:
                e.identifier = statement.identifier
            if not self.isolate_statement_errors:
                raise
            report.statements_failed += 1
            report.failures.append(e)
            logger.error(f"Statement {statement.identifier} failed: {e}")
            return

        report.statements_executed += 1

    def _emit_row(self, row, report: CycleReport) -> None:
        metric = extract_metric(row)

        if metric is None:
            report.rows_skipped += 1
            self._trace("Row has no name/value pair: %s", dict(row) if hasattr(row, "keys") else row)
            return

        self._trace("Sending: name %s, value: %s", metric.name, metric.value)

        if self.sink.gauge(metric.name, metric.value):
            report.metrics_sent += 1
        else:
            report.metrics_suppressed += 1

    def run_forever(
        self,
        once: bool = False,
        interval_seconds: int = 60,
        max_cycles: Optional[int] = None
    ) -> int:
        """
        Run cycles until stopped.

        The interval is measured from the end of one cycle to the start of
        the next. Fatal errors propagate to the caller.

        Args:
            once: Stop after the first cycle
            interval_seconds: Seconds to sleep between cycles
            max_cycles: Stop after this many cycles (None runs indefinitely)

        Returns:
            Number of cycles completed
        """
        if isinstance(interval_seconds, bool) or not isinstance(interval_seconds, int) or interval_seconds <= 0:
            raise ValueError(f"Interval must be a positive integer, got {interval_seconds!r}")

        cycles = 0
        while True:
            self.run_cycle()
            cycles += 1

            if once or (max_cycles is not None and cycles >= max_cycles):
                return cycles

            logger.debug(f"Sleeping {interval_seconds}s before next cycle")
            self._sleep(interval_seconds)
