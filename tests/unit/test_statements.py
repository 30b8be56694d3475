"""
Unit tests for statements module.
"""

import pytest

from src.polling.statements import Statement, StatementLoader, parse_rows
from src.utils.errors import ConfigError, StatementSourceError


class TestParseRows:
    """Test conversion of CSV rows into statements."""

    def test_header_row_is_dropped(self):
        """Test that a first row starting with 'name' is treated as a header."""
        statements = parse_rows([["name", "sql"], ["get_count", "SELECT 1"]])

        assert statements == [Statement("get_count", "SELECT 1")]

    def test_header_detection_is_case_insensitive(self):
        """Test that 'NAME' is also recognised as a header."""
        statements = parse_rows([["NAME", "SQL"], ["get_count", "SELECT 1"]])

        assert len(statements) == 1

    def test_first_row_kept_without_header(self):
        """Test that a file without header keeps all rows."""
        statements = parse_rows([["get_count", "SELECT 1"], ["get_sum", "SELECT 2"]])

        assert [s.identifier for s in statements] == ["get_count", "get_sum"]

    def test_only_first_row_can_be_header(self):
        """Test that a later row named 'name' is a normal statement."""
        statements = parse_rows([["a", "SELECT 1"], ["name", "SELECT 2"]])

        assert [s.identifier for s in statements] == ["a", "name"]

    def test_blank_rows_ignored(self):
        """Test that empty lines do not become statements."""
        statements = parse_rows([[], ["a", "SELECT 1"], ["  "], ["b", "SELECT 2"]])

        assert [s.identifier for s in statements] == ["a", "b"]

    def test_single_cell_row_has_empty_sql(self):
        """Test that a row without SQL column yields an empty statement text."""
        statements = parse_rows([["orphan"]])

        assert statements == [Statement("orphan", "")]
        assert not statements[0].is_runnable()

    def test_unquoted_separator_in_sql_is_kept(self):
        """Test that SQL split on an unquoted semicolon is joined back whole."""
        statements = parse_rows([["x", "SELECT 'a", "b' AS name, 1 AS value"]])

        assert statements == [Statement("x", "SELECT 'a;b' AS name, 1 AS value")]

    def test_duplicates_are_kept_in_order(self):
        """Test that duplicate statements are allowed."""
        statements = parse_rows([["a", "SELECT 1"], ["a", "SELECT 1"]])

        assert len(statements) == 2


class TestStatementLoader:
    """Test loading statement files."""

    def test_load_with_header(self, write_statements):
        """Test loading a file whose first row is 'name;sql'."""
        loader = write_statements(
            "name;sql\n"
            "qdepth;SELECT name, value FROM metrics_view\n"
            "users;SELECT 'users.total' AS name, count(*) AS value FROM users\n"
        )

        statements = loader.load()

        assert statements == [
            Statement("qdepth", "SELECT name, value FROM metrics_view"),
            Statement("users", "SELECT 'users.total' AS name, count(*) AS value FROM users"),
        ]

    def test_load_without_header(self, write_statements):
        """Test that 'get_count;SELECT 1' as first row is retained."""
        loader = write_statements("get_count;SELECT 1\nget_two;SELECT 2\n")

        statements = loader.load()

        assert statements[0] == Statement("get_count", "SELECT 1")
        assert len(statements) == 2

    def test_quoted_sql_may_contain_separator(self, write_statements):
        """Test that a quoted SQL cell can contain semicolons."""
        loader = write_statements('lag;"SELECT \'a;b\' AS name, 1 AS value"\n')

        statements = loader.load()

        assert statements[0].sql == "SELECT 'a;b' AS name, 1 AS value"

    def test_unquoted_sql_may_contain_separator(self, write_statements):
        """Test that an unquoted SQL cell keeps every semicolon."""
        loader = write_statements("x;SELECT 'a;b' AS name, 1 AS value;\n")

        statements = loader.load()

        assert statements[0].sql == "SELECT 'a;b' AS name, 1 AS value;"

    def test_file_is_reread_on_each_load(self, write_statements):
        """Test that edits to the file are picked up without a new loader."""
        loader = write_statements("a;SELECT 1\n")
        assert len(loader.load()) == 1

        loader.path.write_text("a;SELECT 1\nb;SELECT 2\n", encoding="utf-8")

        assert len(loader.load()) == 2

    def test_missing_file_raises_statement_source_error(self, tmp_path):
        """Test that a missing file raises StatementSourceError."""
        loader = StatementLoader(tmp_path / "missing.csv")

        with pytest.raises(StatementSourceError, match="Cannot read statement file"):
            loader.load()

    def test_statement_source_error_is_config_error(self, tmp_path):
        """Test that statement source errors are configuration errors."""
        loader = StatementLoader(tmp_path / "missing.csv")

        with pytest.raises(ConfigError):
            loader.load()

    def test_undecodable_file_raises_statement_source_error(self, tmp_path):
        """Test that a binary file is reported as malformed."""
        path = tmp_path / "binary.csv"
        path.write_bytes(b"\xff\xfe\x00bad")

        with pytest.raises(StatementSourceError, match="Malformed"):
            StatementLoader(path).load()
