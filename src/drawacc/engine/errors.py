"""Errors raised by the draw accumulator engine.

Every error derives from ``ValueError`` so callers that validate inputs the
usual way keep working. A raised error always means the operation was
rejected and the accumulator state is unchanged.
"""

from typing import Optional


class AccumulatorError(ValueError):
    """Base class for all accumulator errors."""


class AddToZeroPeriod(AccumulatorError):
    """Raised when adding to period id 0, which is reserved for the empty log."""

    def __init__(self):
        super().__init__("Cannot add to period 0; period ids start at 1")


class PeriodClosed(AccumulatorError):
    """Raised when writing or querying a period older than the newest recorded one."""

    def __init__(self, period_id: int, newest_period_id: int):
        self.period_id = period_id
        self.newest_period_id = newest_period_id
        super().__init__(
            f"Period {period_id} is closed; newest recorded period is {newest_period_id}"
        )


class InvalidRange(AccumulatorError):
    """Raised when a range starts after it ends."""

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(f"Invalid range: start {start} is after end {end}")


class InvalidEndPeriod(AccumulatorError):
    """Raised when a range query ends before the second-newest observation - 1."""

    def __init__(self, end_period_id: int, second_newest_period_id: int):
        self.end_period_id = end_period_id
        self.second_newest_period_id = second_newest_period_id
        super().__init__(
            f"End period {end_period_id} must be >= {second_newest_period_id - 1} "
            f"(second-newest observation is period {second_newest_period_id})"
        )


class ValueOverflow(AccumulatorError):
    """Raised when a magnitude does not fit its fixed bit width."""

    def __init__(self, field: str, value: int, bits: Optional[int] = None):
        self.field = field
        self.value = value
        self.bits = bits
        bound = f"{bits}-bit bound" if bits is not None else "fixed-point range"
        super().__init__(f"{field}={value} overflows the {bound}")


class InvalidAlpha(AccumulatorError):
    """Raised when the decay rate is outside (0, 1]."""

    def __init__(self, alpha):
        self.alpha = alpha
        super().__init__(f"alpha must satisfy 0 < alpha <= 1, got {alpha!r}")


class InvalidAmount(AccumulatorError):
    """Raised for negative or non-integer amounts and period ids."""

    def __init__(self, name: str, value):
        self.name = name
        self.value = value
        super().__init__(f"{name} must be a non-negative integer, got {value!r}")
