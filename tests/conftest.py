"""
Pytest configuration and shared fixtures.

Provides in-memory stand-ins for the database gateway and the statsd client
so the poll engine can be exercised without external services.
"""

from contextlib import contextmanager

import pytest

from src.gateways.statsd_sink import StatsdSettings, StatsdSink
from src.polling.statements import StatementLoader


class FakeSession:
    """Database session answering statements from a canned result table."""

    def __init__(self, results, version=150004):
        self.results = results
        self.version = version
        self.executed = []
        self.closed = False

    def server_version(self):
        return self.version

    def execute(self, sql, identifier=None):
        self.executed.append(sql)
        result = self.results.get(sql, [])
        if isinstance(result, Exception):
            if getattr(result, "identifier", "unset") is None:
                result.identifier = identifier
            raise result
        for row in result:
            yield row


class FakeGateway:
    """Gateway handing out FakeSessions; records every session opened."""

    def __init__(self, results=None, connect_error=None):
        self.results = results or {}
        self.connect_error = connect_error
        self.sessions = []

    @contextmanager
    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        session = FakeSession(self.results)
        self.sessions.append(session)
        try:
            yield session
        finally:
            session.closed = True


class RecordingStatsClient:
    """Stand-in for statsd.StatsClient that keeps every gauge sent."""

    def __init__(self):
        self.gauges = []
        self.closed = False

    def gauge(self, stat, value, rate=1, delta=False):
        self.gauges.append((stat, value))

    def close(self):
        self.closed = True


@pytest.fixture
def stats_client():
    """Recording statsd client."""
    return RecordingStatsClient()


@pytest.fixture
def sink(stats_client):
    """Statsd sink sending to the recording client."""
    return StatsdSink(StatsdSettings(host="statsd.test"), client=stats_client)


@pytest.fixture
def write_statements(tmp_path):
    """Factory writing a statement file and returning a loader for it."""

    def _write(content, name="queries.csv"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return StatementLoader(path)

    return _write


@pytest.fixture
def write_config(tmp_path):
    """Factory writing a YAML configuration file and returning its path."""

    def _write(content, name="config.yml"):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
