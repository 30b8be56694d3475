"""
Configuration for the SQL Poller

Loads the YAML configuration file into an immutable settings object and
resolves the effective polling interval from configuration and command line
options.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from src.utils.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_STATSD_PORT = 8125
DEFAULT_SLEEP_SECONDS = 60
DEFAULT_EVERY_SECONDS = 5

# Relative statement file paths resolve against the installation's sql/ directory
SQL_DIR = Path(__file__).resolve().parents[2] / "sql"

REQUIRED_KEYS = ("statsd_hostname", "dsn", "query_csv_file")
STATSD_PROTOCOLS = ("udp", "tcp")


@dataclass(frozen=True)
class PollerConfig:
    """
    Resolved poller configuration.

    Attributes:
        statsd_hostname: Statsd collector host
        statsd_port: Statsd collector port
        dsn: Database connection string (libpq keyword string or URI)
        user: Database user
        password: Database password
        query_csv_file: Absolute path of the statement file
        sleep: Seconds between cycles
        statsd_prefix: Optional prefix prepended to every metric name
        statsd_protocol: ``udp`` or ``tcp``
        statsd_timeout: Socket timeout in seconds for the TCP client
        db_connect_timeout: Connection timeout in seconds
        db_statement_timeout: Per-statement timeout in seconds
        isolate_statement_errors: Continue with the next statement when one fails
        metrics_port: Port for the poller's own Prometheus metrics
    """

    statsd_hostname: str
    dsn: str
    query_csv_file: Path
    statsd_port: int = DEFAULT_STATSD_PORT
    user: Optional[str] = None
    password: Optional[str] = None
    sleep: int = DEFAULT_SLEEP_SECONDS
    statsd_prefix: Optional[str] = None
    statsd_protocol: str = "udp"
    statsd_timeout: Optional[float] = None
    db_connect_timeout: Optional[int] = None
    db_statement_timeout: Optional[float] = None
    isolate_statement_errors: bool = True
    metrics_port: Optional[int] = None

    def redacted(self) -> Dict[str, Any]:
        """Return the configuration as a dict safe for logging."""
        data = dict(self.__dict__)
        if data.get("password"):
            data["password"] = "***"
        data["query_csv_file"] = str(self.query_csv_file)
        return data


@dataclass(frozen=True)
class RunOptions:
    """
    Command line options controlling a poller run.

    Attributes:
        debug: Trace statements, rows and sends
        no_send_metric: Skip delivery to the sink, still trace intent
        once: Run a single cycle then exit
        every: Interval override in seconds
    """

    debug: bool = False
    no_send_metric: bool = False
    once: bool = False
    every: Optional[int] = None


def resolve_interval(config: Optional[PollerConfig], options: RunOptions) -> int:
    """
    Work out the effective seconds between cycles.

    The command line override wins over the configured ``sleep``, which wins
    over the built-in default.
    """
    if options.every is not None:
        return options.every
    if config is not None and config.sleep:
        return config.sleep
    return DEFAULT_SLEEP_SECONDS


def resolve_statement_path(value: Union[str, Path], sql_dir: Path = SQL_DIR) -> Path:
    """
    Resolve the statement file path.

    Args:
        value: Path from the configuration
        sql_dir: Directory relative paths are resolved against

    Returns:
        Absolute path
    """
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = sql_dir / path
    return path


def _positive_int(raw: Dict[str, Any], key: str, default: Optional[int]) -> Optional[int]:
    value = raw.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ConfigError(f"'{key}' must be an integer, got {value!r}")
    if number <= 0:
        raise ConfigError(f"'{key}' must be a positive integer, got {value!r}")
    return number


def _positive_float(raw: Dict[str, Any], key: str) -> Optional[float]:
    value = raw.get(key)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return number


def config_from_mapping(raw: Dict[str, Any], sql_dir: Path = SQL_DIR) -> PollerConfig:
    """
    Build a PollerConfig from a parsed configuration mapping.

    Args:
        raw: Mapping of configuration keys
        sql_dir: Directory relative statement paths are resolved against

    Returns:
        PollerConfig instance

    Raises:
        ConfigError: If required keys are missing or values are invalid
    """
    if not isinstance(raw, dict):
        raise ConfigError("Configuration must be a mapping of keys to values")

    missing = [key for key in REQUIRED_KEYS if not raw.get(key)]
    if missing:
        raise ConfigError(f"Configuration missing required keys: {missing}")

    # A falsy port (0, empty string) falls back to the default
    statsd_port = _positive_int(raw, "statsd_port", None) if raw.get("statsd_port") else DEFAULT_STATSD_PORT

    protocol = str(raw.get("statsd_protocol") or "udp").lower()
    if protocol not in STATSD_PROTOCOLS:
        raise ConfigError(f"'statsd_protocol' must be one of {STATSD_PROTOCOLS}, got {protocol!r}")

    isolate = raw.get("isolate_statement_errors", True)
    if not isinstance(isolate, bool):
        raise ConfigError(f"'isolate_statement_errors' must be true or false, got {isolate!r}")

    return PollerConfig(
        statsd_hostname=str(raw["statsd_hostname"]),
        statsd_port=statsd_port,
        dsn=str(raw["dsn"]),
        user=raw.get("user"),
        password=raw.get("pass"),
        query_csv_file=resolve_statement_path(raw["query_csv_file"], sql_dir),
        sleep=_positive_int(raw, "sleep", DEFAULT_SLEEP_SECONDS),
        statsd_prefix=raw.get("statsd_prefix") or None,
        statsd_protocol=protocol,
        statsd_timeout=_positive_float(raw, "statsd_timeout"),
        db_connect_timeout=_positive_int(raw, "db_connect_timeout", None),
        db_statement_timeout=_positive_float(raw, "db_statement_timeout"),
        isolate_statement_errors=isolate,
        metrics_port=_positive_int(raw, "metrics_port", None),
    )


def load_config(path: Union[str, Path], sql_dir: Path = SQL_DIR) -> PollerConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Configuration file path
        sql_dir: Directory relative statement paths are resolved against

    Returns:
        PollerConfig instance

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = Path(path)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Malformed configuration file {config_path}: {e}") from e

    config = config_from_mapping(raw if raw is not None else {}, sql_dir)
    logger.info(f"Loaded configuration from {config_path}")
    logger.debug(f"Configuration: {config.redacted()}")
    return config
