"""
Display formatting for cards, charts and tables.

Weights keep three decimals, percentages two; absent or non-numeric values
render as the "--" placeholder rather than a misleading zero.
"""

from typing import Any

from .config import PERCENTAGE_UNITS, PLACEHOLDER, WEIGHT_UNITS
from .loaders.utils import safe_float


def format_weight(value: Any, unit: str | None = None) -> str:
    num = safe_float(value)
    if num is None:
        return PLACEHOLDER
    formatted = f"{num:.3f}"
    return f"{formatted}{unit}" if unit else formatted


def format_percentage(value: Any, unit: str = "%") -> str:
    num = safe_float(value)
    if num is None:
        return PLACEHOLDER
    return f"{num:.2f}{unit}"


def is_weight_unit(unit: str | None) -> bool:
    return isinstance(unit, str) and unit.lower() in WEIGHT_UNITS


def is_percentage_unit(unit: str | None) -> bool:
    return isinstance(unit, str) and unit.lower() in PERCENTAGE_UNITS


def format_value(value: Any, unit: str | None = None) -> str:
    """Format by unit: weight units to 3 dp, percentage units to 2 dp, others to 2 dp."""
    num = safe_float(value)
    if num is None:
        return PLACEHOLDER
    if not unit or not isinstance(unit, str):
        return f"{num:.2f}"
    if is_weight_unit(unit):
        return format_weight(num, unit)
    if is_percentage_unit(unit):
        return format_percentage(num, unit)
    return f"{num:.2f}{unit}"


def format_table_value(value: Any, unit: str | None = None, precision: int | None = None) -> str:
    """Format a table cell; an explicit precision overrides the unit rules."""
    num = safe_float(value)
    if num is None:
        return PLACEHOLDER
    if precision is not None:
        formatted = f"{num:.{precision}f}"
        return f"{formatted}{unit}" if unit else formatted
    return format_value(num, unit)
