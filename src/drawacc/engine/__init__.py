"""Draw accumulator engine."""

from .accumulator import (
    MAX_CARDINALITY,
    DrawAccumulator,
    Observation,
    RingBufferInfo,
    SearchResult,
    binary_search,
)
from .decay import coerce_alpha, integrate, integrate_to_infinity
from .errors import (
    AccumulatorError,
    AddToZeroPeriod,
    InvalidAlpha,
    InvalidAmount,
    InvalidEndPeriod,
    InvalidRange,
    PeriodClosed,
    ValueOverflow,
)
from .ledger import ContributionLedger
from .state import AccumulatorState, dump_state, load_state

__all__ = [
    # Accumulator
    "MAX_CARDINALITY",
    "DrawAccumulator",
    "Observation",
    "RingBufferInfo",
    "SearchResult",
    "binary_search",
    # Decay integrals
    "coerce_alpha",
    "integrate",
    "integrate_to_infinity",
    # Errors
    "AccumulatorError",
    "AddToZeroPeriod",
    "InvalidAlpha",
    "InvalidAmount",
    "InvalidEndPeriod",
    "InvalidRange",
    "PeriodClosed",
    "ValueOverflow",
    # Ledger and persistence
    "ContributionLedger",
    "AccumulatorState",
    "dump_state",
    "load_state",
]
