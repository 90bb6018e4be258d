import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

_CENTS = Decimal("0.01")


def parse_optional_number(value: Any) -> Optional[float]:
    """
    Parse user-entered numeric text, stripping `$` and thousands separators.
    Returns None for empty or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").replace("$", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_number(value: Any) -> float:
    """Empty or unparseable input yields 0.0 instead of raising."""
    number = parse_optional_number(value)
    return 0.0 if number is None else number


def parse_int(value: Any, default: int = 0) -> int:
    """Integer part of the parsed value, or `default` for empty/invalid input."""
    number = parse_optional_number(value)
    return default if number is None else int(number)


def compound(principal: float, rate_percent: float, periods: float) -> float:
    return principal * (1 + rate_percent / 100) ** periods


def inflation_factor(inflation_percent: float, years: float) -> float:
    return (1 + inflation_percent / 100) ** years


def deflate(nominal: float, inflation_percent: float, years: float) -> float:
    """Convert a nominal amount `years` out into today's dollars."""
    return nominal / inflation_factor(inflation_percent, years)


def round2(value: float) -> float:
    """Round half-up to cents."""
    try:
        return float(Decimal(repr(float(value))).quantize(_CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0.0
