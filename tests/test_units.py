# tests/test_units.py
"""
Tests for decimal to base-unit conversion.
"""

import pytest

from glue_core.units import parse_units


class TestParseUnits:
    """Tests for parse_units."""

    @pytest.mark.parametrize("text,decimals,expected", [
        ("0.5", 18, 500000000000000000),
        ("1", 18, 10 ** 18),
        ("1.000000000000000001", 18, 10 ** 18 + 1),
        (".25", 2, 25),
        ("12.", 0, 12),
        ("-1.5", 1, -15),
        ("1,000.5", 1, 10005),
        ("0.10", 1, 1),
    ])
    def test_valid(self, text, decimals, expected):
        assert parse_units(text, decimals) == expected

    def test_excess_precision(self):
        with pytest.raises(ValueError, match="too many decimals"):
            parse_units("0.123", 2)

    @pytest.mark.parametrize("text", ["", "-", ".", "abc", "1e5", "1.2.3"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_units(text, 18)
