"""
SQL to StatsD Poller

Periodically runs the statements listed in a semicolon-separated file against
a PostgreSQL database and sends every result row carrying a ``name`` and a
``value`` column to statsd as a gauge.

Usage:
    sql-statsd /etc/sql-statsd/config.yml
    sql-statsd /etc/sql-statsd/config.yml --debug --no_send_metric --once
    sql-statsd /etc/sql-statsd/config.yml --every 10

``--every`` without a value polls every 5 seconds.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from src.monitoring.metrics import PollerMetrics
from src.polling.engine import PollEngine
from src.utils.config import DEFAULT_EVERY_SECONDS, RunOptions, load_config, resolve_interval
from src.utils.correlation import setup_cycle_logging

logger = logging.getLogger(__name__)

# Handler installed by configure_logging, replaced on reconfiguration
_console_handler: Optional[logging.Handler] = None


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter carrying the poll cycle ID."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'cycle_id': getattr(record, 'cycle_id', '-'),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(debug: bool = False, json_logs: bool = False) -> logging.Handler:
    """
    Install the poller's stdout handler on the root logger.

    Args:
        debug: Log at DEBUG level
        json_logs: Emit structured JSON instead of plain text

    Returns:
        The installed handler
    """
    global _console_handler

    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(cycle_id)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    setup_cycle_logging(handler)

    root = logging.getLogger()
    if _console_handler is not None:
        root.removeHandler(_console_handler)
    root.addHandler(handler)
    _console_handler = handler
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    return handler


def positive_int(text: str) -> int:
    """argparse type for a positive number of seconds."""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Create the command line parser."""
    parser = argparse.ArgumentParser(
        prog="sql-statsd",
        description="Send SQL query results to statsd as gauges",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument("config", help="Path of the YAML configuration file")
    parser.add_argument("--debug", action="store_true", help="Trace statements, rows and sends")
    parser.add_argument(
        "--no_send_metric",
        action="store_true",
        help="Do not send anything to statsd (combine with --debug to see what would be sent)"
    )
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument(
        "--every",
        nargs="?",
        const=DEFAULT_EVERY_SECONDS,
        type=positive_int,
        metavar="N",
        help=f"Seconds between cycles (default: config 'sleep'; {DEFAULT_EVERY_SECONDS} if N is omitted)"
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    return parser


def parse_options(args: argparse.Namespace) -> RunOptions:
    """Convert parsed arguments into RunOptions."""
    return RunOptions(
        debug=args.debug,
        no_send_metric=args.no_send_metric,
        once=args.once,
        every=args.every
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    options = parse_options(args)
    configure_logging(debug=options.debug, json_logs=args.json_logs)

    engine = None
    try:
        config = load_config(args.config)

        metrics = PollerMetrics()
        if config.metrics_port:
            metrics.start_server(config.metrics_port)

        engine = PollEngine.from_config(config, options, metrics=metrics)
        interval = resolve_interval(config, options)

        logger.info(
            f"Polling statements from {config.query_csv_file}"
            + (" once" if options.once else f" every {interval}s")
        )
        engine.run_forever(once=options.once, interval_seconds=interval)
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")
        return 0

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=options.debug)
        return 1

    finally:
        if engine is not None:
            engine.sink.close()


if __name__ == "__main__":
    sys.exit(main())
