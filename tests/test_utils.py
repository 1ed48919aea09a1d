"""Tests for shared utilities."""

import logging

import pytest

from platearrange.utils import format_duration, get_logger, parse_points


class TestParsePoints:
    """Tests for parse_points."""

    def test_parse(self):
        """Test parsing an outline."""
        assert parse_points("0,0; 250,0;250,210 ;0,210") == [(0, 0), (250, 0), (250, 210), (0, 210)]

    def test_trailing_separator(self):
        """A trailing separator is ignored."""
        assert parse_points("1.5,2;3,4;") == [(1.5, 2.0), (3.0, 4.0)]

    def test_empty(self):
        """An empty string is no outline."""
        assert parse_points("  ") is None

    def test_invalid(self):
        """Test a malformed point."""
        with pytest.raises(ValueError):
            parse_points("0,0;1,2,3")
        with pytest.raises(ValueError):
            parse_points("a,b")


class TestHelpers:
    """Tests for small helpers."""

    def test_format_duration(self):
        """Test duration formatting."""
        assert format_duration(0.25) == "250ms"
        assert format_duration(12.34) == "12.3s"
        assert format_duration(125) == "2m 5s"

    def test_get_logger(self):
        """Loggers live under the package namespace."""
        logger = get_logger("nesting.placer")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "platearrange.nesting.placer"
