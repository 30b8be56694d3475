"""
Statsd Metrics Sink

Sends gauge samples to a statsd-compatible collector. Settings are fixed at
construction; the sink is handed to the poll engine rather than configured
globally.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from statsd import StatsClient, TCPStatsClient

from src.utils.errors import SinkDeliveryError
from src.utils.config import DEFAULT_STATSD_PORT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsdSettings:
    """
    Connection settings for the statsd collector.

    Attributes:
        host: Collector host name
        port: Collector port
        prefix: Optional prefix for every metric name
        protocol: ``udp`` or ``tcp``
        timeout: Socket timeout in seconds, TCP only
    """

    host: str
    port: int = DEFAULT_STATSD_PORT
    prefix: Optional[str] = None
    protocol: str = "udp"
    timeout: Optional[float] = None

    @classmethod
    def from_config(cls, config) -> "StatsdSettings":
        """Create settings from a PollerConfig."""
        return cls(
            host=config.statsd_hostname,
            port=config.statsd_port or DEFAULT_STATSD_PORT,
            prefix=config.statsd_prefix,
            protocol=config.statsd_protocol,
            timeout=config.statsd_timeout
        )

    def build_client(self):
        """Create the statsd client for these settings."""
        if self.protocol == "tcp":
            return TCPStatsClient(
                host=self.host,
                port=self.port,
                prefix=self.prefix,
                timeout=self.timeout
            )
        return StatsClient(host=self.host, port=self.port, prefix=self.prefix)


class StatsdSink:
    """
    Gauge sink backed by the ``statsd`` client library.

    With ``suppress`` set, samples are counted but never leave the process.
    """

    def __init__(
        self,
        settings: StatsdSettings,
        suppress: bool = False,
        client: Optional[Any] = None
    ):
        """
        Initialize statsd sink.

        Args:
            settings: Collector settings
            suppress: Skip delivery
            client: Pre-built client, mainly for tests

        Raises:
            SinkDeliveryError: If the collector host cannot be resolved
        """
        self.settings = settings
        self.suppress = suppress
        self._client = client

        if self._client is None and not suppress:
            try:
                self._client = settings.build_client()
            except OSError as e:
                raise SinkDeliveryError(
                    f"Cannot set up statsd client for {settings.host}:{settings.port}: {e}"
                ) from e

        logger.info(
            f"Statsd sink targeting {settings.host}:{settings.port} over {settings.protocol}"
            + (" (sending suppressed)" if suppress else "")
        )

    def gauge(self, name: str, value: Any) -> bool:
        """
        Send one gauge sample.

        Numbers are passed to the client as-is. Text columns holding a
        number, such as ``'42'`` or ``'3.5'``, are converted first.

        Args:
            name: Metric name
            value: Gauge value

        Returns:
            True if the sample was handed to the client, False if suppressed

        Raises:
            SinkDeliveryError: If the value is not numeric or the client
                fails to send
        """
        if self.suppress:
            return False

        value = _gauge_value(name, value)

        try:
            self._client.gauge(name, value)
        except OSError as e:
            raise SinkDeliveryError(f"Failed to send gauge {name}: {e}") from e
        except (TypeError, ValueError, InvalidOperation) as e:
            raise SinkDeliveryError(f"Gauge {name} has a non-numeric value {value!r}: {e}") from e

        return True

    def close(self) -> None:
        """Close the underlying connection for TCP clients."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()


def _gauge_value(name: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value

    try:
        number = Decimal(value.strip())
    except InvalidOperation as e:
        raise SinkDeliveryError(f"Gauge {name} has a non-numeric value {value!r}") from e

    if not number.is_finite():
        raise SinkDeliveryError(f"Gauge {name} has a non-finite value {value!r}")
    return number
