"""Closed-form integrals of the exponential decay curve.

Key Concepts:
- Decay curve: f(t) = k * alpha^t, t >= 0, 0 < alpha <= 1
- Remaining from offset x onward: c(x) = k * alpha^x
- Released between offsets a and b: c(a) - c(b)

Both integrals are evaluated in fixed-point and truncated to whole units
only at the end, so integrate() and integrate_to_infinity() may each lose
up to one unit. The accumulator carries that residue forward.
"""

from decimal import Decimal
from typing import Union

from . import fixed_point as fp
from .errors import InvalidAlpha, InvalidRange

AlphaLike = Union[int, float, str, Decimal]


def coerce_alpha(alpha: AlphaLike) -> int:
    """
    Convert a decay rate to fixed-point and validate it.

    Args:
        alpha: Either a fixed-point int (already scaled by 1e18) or a
            float/str/Decimal in natural units

    Returns:
        Fixed-point alpha in (0, 1e18]

    Raises:
        InvalidAlpha: If alpha is outside (0, 1]
    """
    if isinstance(alpha, bool):
        raise InvalidAlpha(alpha)
    if isinstance(alpha, int):
        value = alpha
    else:
        try:
            value = fp.from_decimal(alpha)
        except (ArithmeticError, ValueError):
            raise InvalidAlpha(alpha)
    if value <= 0 or value > fp.SCALE:
        raise InvalidAlpha(alpha)
    return value


def compute_c(alpha: int, x: int, k: int) -> int:
    """Fixed-point value of k * alpha^x."""
    return fp.mul(fp.to_fixed(k), fp.pow(alpha, fp.to_fixed(x)))


def integrate_to_infinity(alpha: int, x: int, k: int) -> int:
    """
    Amount of ``k`` not yet decayed at relative offset ``x``.

    Args:
        alpha: Fixed-point decay rate
        x: Relative offset in periods
        k: Balance at offset 0

    Returns:
        Truncated remaining amount
    """
    return fp.from_fixed(compute_c(alpha, x, k))


def integrate(alpha: int, start: int, end: int, k: int) -> int:
    """
    Amount of ``k`` released between relative offsets ``start`` and ``end``.

    Args:
        alpha: Fixed-point decay rate
        start: Relative start offset
        end: Relative end offset, >= start
        k: Balance at offset 0

    Returns:
        Truncated released amount, 0 when start == end

    Raises:
        InvalidRange: If end < start
    """
    if end < start:
        raise InvalidRange(start, end)
    if start == end:
        return 0
    return fp.from_fixed(compute_c(alpha, start, k) - compute_c(alpha, end, k))
