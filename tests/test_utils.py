"""
Tests for address validation, value parsing and formatting helpers.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from wallet_fun_facts.utils import (
    format_number,
    format_percent,
    format_percent_colored,
    format_usd,
    is_valid_ethereum_address,
    parse_timestamp,
    subtract_months,
    to_decimal,
    to_float,
    truncate_address,
    validate_and_normalize_address,
)


class TestAddressValidation:
    """Addresses normalize to one lower-case form or are rejected."""

    @pytest.mark.parametrize("raw", [
        "0xF977814e90dA44bFA03b6295A0616a897441aceC",
        "0xf977814e90da44bfa03b6295a0616a897441acec",
        "  0xF977814E90DA44BFA03B6295A0616A897441ACEC\n",
    ])
    def test_valid_addresses_normalize_to_lowercase(self, raw):
        assert validate_and_normalize_address(raw) == \
            "0xf977814e90da44bfa03b6295a0616a897441acec"

    @pytest.mark.parametrize("raw", [
        "",
        "0x",
        "f977814e90da44bfa03b6295a0616a897441acec",      # no prefix
        "0Xf977814e90da44bfa03b6295a0616a897441acec",    # upper-case prefix
        "0xf977814e90da44bfa03b6295a0616a897441ace",     # 39 hex chars
        "0xf977814e90da44bfa03b6295a0616a897441acecc",   # 41 hex chars
        "0xg977814e90da44bfa03b6295a0616a897441acec",    # non-hex
        "vitalik.eth",
    ])
    def test_invalid_addresses_are_rejected(self, raw):
        assert not is_valid_ethereum_address(raw)
        with pytest.raises(ValueError):
            validate_and_normalize_address(raw)

    def test_truncate_address(self):
        assert truncate_address("0xf977814e90da44bfa03b6295a0616a897441acec") == "0xf977...acec"
        assert truncate_address("0x12") == "0x12"


class TestParsing:

    def test_to_float_maps_null_to_default(self):
        assert to_float(None) == 0.0
        assert to_float("", default=1.5) == 1.5
        assert to_float("12.5") == 12.5

    def test_to_float_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_float("n/a")

    def test_to_decimal(self):
        assert to_decimal("10.000000000000000001") == Decimal("10.000000000000000001")
        assert to_decimal(None) == Decimal("0")
        with pytest.raises(ValueError):
            to_decimal("lots")

    def test_parse_timestamp(self):
        parsed = parse_timestamp("2025-03-01T12:00:00Z")
        assert parsed == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)
        assert parse_timestamp(None) is None
        assert parse_timestamp("yesterday") is None

    def test_subtract_months_clamps_day(self):
        assert subtract_months(datetime(2025, 8, 31), 6) == datetime(2025, 2, 28)
        assert subtract_months(datetime(2025, 3, 15), 12) == datetime(2024, 3, 15)
        assert subtract_months(datetime(2025, 1, 10), 1) == datetime(2024, 12, 10)


class TestFormatting:

    def test_tiny_negative_pnl_renders_two_decimals(self):
        raw_fraction = -0.0002273911194097849
        assert format_percent(raw_fraction * 100) == "-0.02%"

    def test_format_percent_sign(self):
        assert format_percent(15.456) == "+15.46%"
        assert format_percent(-3.0) == "-3.00%"
        assert format_percent(-0.001) == "+0.00%"

    def test_format_percent_colored(self):
        assert format_percent_colored(5) == "[green]+5.00%[/green]"
        assert format_percent_colored(-5) == "[red]-5.00%[/red]"

    def test_format_usd(self):
        assert format_usd(1234.5) == "$1,234.50"
        assert format_usd(-0.42) == "-$0.42"

    def test_format_number(self):
        assert format_number(0) == "0"
        assert format_number(1_500) == "1.50K"
        assert format_number(2_000_000) == "2.00M"
        assert format_number(3_000_000_000) == "3.00B"
