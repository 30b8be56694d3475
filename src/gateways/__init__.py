"""
Gateways to the systems the poller talks to: the database it queries and
the statsd collector it feeds.
"""

from src.gateways.database import DatabaseGateway, DatabaseSession
from src.gateways.statsd_sink import StatsdSettings, StatsdSink

__all__ = [
    "DatabaseGateway",
    "DatabaseSession",
    "StatsdSettings",
    "StatsdSink",
]
