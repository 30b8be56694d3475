"""
Polling Module for the SQL Poller

This module runs a statement set against the database on a fixed interval
and forwards rows shaped as name/value pairs to statsd as gauges:
- statements: Statement set loading
- extraction: Row to metric extraction
- engine: Poll cycle orchestration

Usage:
    from src.polling import PollEngine

    engine = PollEngine.from_config(config, options)
    engine.run_forever(once=options.once, interval_seconds=60)
"""

from src.polling.engine import CycleReport, PollEngine
from src.polling.extraction import Metric, extract_metric
from src.polling.statements import Statement, StatementLoader

__all__ = [
    "CycleReport",
    "PollEngine",
    "Metric",
    "extract_metric",
    "Statement",
    "StatementLoader",
]

__version__ = "1.0.0"
