"""
Utility functions for address handling, value parsing and display formatting.
"""

from typing import Any, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation
import calendar
import re
import logging

# Set up logging
logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')


def is_valid_ethereum_address(address: str) -> bool:
    """Check if a string is a 0x-prefixed, 40 hex character address."""
    if not address:
        return False

    return bool(ADDRESS_PATTERN.fullmatch(address.strip()))


def normalize_address(address: str) -> str:
    """Normalize an Ethereum address to lowercase without surrounding space."""
    if not address:
        return ""

    return address.strip().lower()


def validate_and_normalize_address(address: str) -> str:
    """Validate an address and return its canonical lower-case form.

    Raises:
        ValueError: if the address is not 0x followed by 40 hex characters.
    """
    if not is_valid_ethereum_address(address):
        raise ValueError(
            "Invalid Ethereum address format. Expected format: "
            "0x followed by 40 hexadecimal characters")

    return normalize_address(address)


def truncate_address(address: str, start_chars: int = 6, end_chars: int = 4) -> str:
    """Shorten an address for display, e.g. 0x1234...abcd."""
    if not address or len(address) < start_chars + end_chars:
        return address

    return f"{address[:start_chars]}...{address[-end_chars:]}"


def to_float(value: Any, default: float = 0.0) -> float:
    """Convert an upstream numeric field to float, mapping null to default."""
    if value is None or value == "":
        return default
    return float(value)


def to_optional_float(value: Any) -> Optional[float]:
    """Like to_float, but keeps null as None."""
    if value is None or value == "":
        return None
    return float(value)


def to_decimal(value: Any) -> Decimal:
    """Convert a decimal string (or number) to Decimal."""
    if value is None or value == "":
        return Decimal('0')
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal value: {value!r}") from e


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by Nansen."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable timestamp: {value}")
        return None


def subtract_months(dt: datetime, months: int) -> datetime:
    """Same day of month ``months`` earlier, clamped to shorter months."""
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def format_usd(value: float, decimals: int = 2) -> str:
    """Format a USD value, e.g. -$1,234.50."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.{decimals}f}"


def format_percent(value: float, decimals: int = 2) -> str:
    """Format a percentage (15.5 means 15.5%) with an explicit sign."""
    rounded = round(value, decimals)
    if rounded == 0:
        rounded = 0.0
    sign = "+" if rounded >= 0 else ""
    return f"{sign}{rounded:.{decimals}f}%"


def format_percent_colored(value: float, decimals: int = 2) -> str:
    """Format a percentage with rich markup, green for gains and red for losses."""
    formatted = format_percent(value, decimals)
    color = "green" if value >= 0 else "red"
    return f"[{color}]{formatted}[/{color}]"


def format_number(number: float, decimals: int = 2) -> str:
    """Format a number with K/M/B suffixes."""
    try:
        if number == 0:
            return "0"

        num = float(number)

        if abs(num) >= 1_000_000_000:
            return f"{num / 1_000_000_000:.{decimals}f}B"
        elif abs(num) >= 1_000_000:
            return f"{num / 1_000_000:.{decimals}f}M"
        elif abs(num) >= 1_000:
            return f"{num / 1_000:.{decimals}f}K"
        else:
            return f"{num:.{decimals}f}"
    except (ValueError, TypeError, OverflowError) as e:
        logger.warning(f"Error formatting number {number}: {e}")
        return str(number)
