"""Signed fixed-point arithmetic with 18 fractional digits.

Values are plain Python ints scaled by ``SCALE`` (1e18) and bounded to the
signed 256-bit range. Every operation truncates toward zero, so results are
deterministic and never depend on float rounding.

Key Concepts:
- to_fixed(3) == 3 * 10**18
- mul(a, b) = a * b / 1e18
- pow(base, exponent) = base ** exponent, exact square-and-multiply for
  whole exponents
"""

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Union

from .errors import ValueOverflow

DECIMALS = 18
SCALE = 10 ** DECIMALS

MAX_FIXED = (1 << 255) - 1
MIN_FIXED = -(1 << 255)

# Precision used for fractional exponents; well beyond 18 digits of output
_DECIMAL_PRECISION = 60


def _check(value: int, name: str = "fixed") -> int:
    if value > MAX_FIXED or value < MIN_FIXED:
        raise ValueOverflow(name, value)
    return value


def _div_toward_zero(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def to_fixed(value: int) -> int:
    """Convert an integer to fixed-point."""
    return _check(int(value) * SCALE, "to_fixed")


def from_fixed(value: int) -> int:
    """Convert a fixed-point value to an integer, truncating toward zero."""
    return _div_toward_zero(value, SCALE)


def from_decimal(value: Union[float, str, Decimal]) -> int:
    """
    Convert a decimal number to fixed-point, truncating past 18 digits.

    Floats go through ``str`` first so 0.9 becomes exactly 0.9e18.

    Args:
        value: Decimal value as float, str or Decimal

    Returns:
        Fixed-point integer
    """
    if isinstance(value, float):
        value = str(value)
    scaled = (Decimal(value) * SCALE).to_integral_value(rounding=ROUND_DOWN)
    return _check(int(scaled), "from_decimal")


def to_decimal(value: int) -> Decimal:
    """Convert a fixed-point value to an exact Decimal."""
    return Decimal(value) / SCALE


def mul(a: int, b: int) -> int:
    """Multiply two fixed-point values."""
    return _check(_div_toward_zero(a * b, SCALE), "mul")


def div(a: int, b: int) -> int:
    """Divide two fixed-point values."""
    if b == 0:
        raise ZeroDivisionError("fixed-point division by zero")
    return _check(_div_toward_zero(a * SCALE, b), "div")


def pow(base: int, exponent: int) -> int:
    """
    Raise a fixed-point base to a fixed-point exponent.

    Whole exponents use square-and-multiply with truncation at each step.
    Fractional exponents are evaluated with high-precision Decimal and then
    truncated.

    Args:
        base: Fixed-point base, must be >= 0
        exponent: Fixed-point exponent

    Returns:
        Fixed-point result

    Raises:
        ValueError: If base is negative or zero with a negative exponent
    """
    if base < 0:
        raise ValueError(f"pow base must be non-negative, got {base}")
    if exponent == 0:
        return SCALE
    if base == 0:
        if exponent < 0:
            raise ZeroDivisionError("zero base with negative exponent")
        return 0

    if exponent > 0 and exponent % SCALE == 0:
        return _powu(base, exponent // SCALE)

    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        result = (Decimal(base) / SCALE) ** (Decimal(exponent) / SCALE)
        scaled = (result * SCALE).to_integral_value(rounding=ROUND_DOWN)
    return _check(int(scaled), "pow")


def _powu(base: int, n: int) -> int:
    result = SCALE
    while n > 0:
        if n & 1:
            result = mul(result, base)
        n >>= 1
        if n:
            base = mul(base, base)
    return result
