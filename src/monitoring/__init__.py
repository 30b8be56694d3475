"""
Monitoring Module for the SQL Poller

Prometheus metrics describing the poller's own behaviour (cycles, statement
outcomes, gauges sent).

Usage:
    from src.monitoring import PollerMetrics

    metrics = PollerMetrics()
    metrics.start_server(9108)
"""

from src.monitoring.metrics import PollerMetrics

__all__ = [
    "PollerMetrics",
]
