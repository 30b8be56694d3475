"""
Prometheus Metrics for the SQL Poller

Instruments the poller itself: cycles, statement outcomes and gauges handed
to statsd. These never go to the statsd collector; they are exposed on an
optional HTTP port for Prometheus scraping.
"""

import logging
from typing import Optional
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

NAMESPACE = "sql_statsd"


class PollerMetrics:
    """Prometheus metrics for poll cycles."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize poller metrics.

        Args:
            registry: Prometheus registry (a private one is created if omitted)
        """
        self.registry = registry or CollectorRegistry()

        self.cycles_total = Counter(
            f'{NAMESPACE}_cycles_total',
            'Total number of poll cycles',
            ['status'],
            registry=self.registry
        )

        self.statements_total = Counter(
            f'{NAMESPACE}_statements_total',
            'Total statements executed',
            ['status'],
            registry=self.registry
        )

        self.gauges_total = Counter(
            f'{NAMESPACE}_gauges_total',
            'Total gauge samples produced from result rows',
            ['outcome'],
            registry=self.registry
        )

        self.rows_skipped_total = Counter(
            f'{NAMESPACE}_rows_skipped_total',
            'Total result rows without a name/value pair',
            registry=self.registry
        )

        self.cycle_duration_seconds = Histogram(
            f'{NAMESPACE}_cycle_duration_seconds',
            'Duration of poll cycles in seconds',
            buckets=[0.05, 0.1, 0.5, 1, 5, 10, 30, 60, 120, 300],
            registry=self.registry
        )

        self.last_cycle_timestamp = Gauge(
            f'{NAMESPACE}_last_cycle_timestamp_seconds',
            'Unix time the last successful cycle finished',
            registry=self.registry
        )

        logger.debug("PollerMetrics initialized")

    def record_cycle(self, report, duration_seconds: float, finished_at: float) -> None:
        """
        Record a completed cycle.

        Args:
            report: CycleReport of the cycle
            duration_seconds: Wall time spent in the cycle
            finished_at: Unix time the cycle finished
        """
        status = 'partial' if report.failures else 'success'
        self.cycles_total.labels(status=status).inc()
        self.cycle_duration_seconds.observe(duration_seconds)
        self.last_cycle_timestamp.set(finished_at)

        self.statements_total.labels(status='success').inc(report.statements_executed)
        self.statements_total.labels(status='failure').inc(report.statements_failed)
        self.gauges_total.labels(outcome='sent').inc(report.metrics_sent)
        self.gauges_total.labels(outcome='suppressed').inc(report.metrics_suppressed)
        self.rows_skipped_total.inc(report.rows_skipped)

    def record_failed_cycle(self, duration_seconds: float) -> None:
        """Record a cycle aborted by a fatal error."""
        self.cycles_total.labels(status='failure').inc()
        self.cycle_duration_seconds.observe(duration_seconds)

    def start_server(self, port: int) -> None:
        """Start Prometheus metrics HTTP server."""
        try:
            start_http_server(port, registry=self.registry)
            logger.info(f"Metrics server started on port {port}")
        except OSError as e:
            if "Address already in use" in str(e):
                logger.warning(f"Metrics server already running on port {port}")
            else:
                raise
