"""Draw Accumulator Engine - Distribute balances across periods with exponential decay.

Key Concepts:
- Each add folds a deposit into the newest observation's decay curve
- Observation(available, disbursed) is recorded per draw (period) id
- available: balance not yet decayed as of that draw
- disbursed: cumulative decayed balance before that draw
- Conservation: available + disbursed == everything ever added
- At most MAX_CARDINALITY observations are retained in a ring buffer
- Range queries decompose into head + body + tail:
    head = integrate(before.available) from start up to the next observation
    body = atOrBeforeEnd.disbursed - afterOrAtStart.disbursed
    tail = integrate(atOrBeforeEnd.available) through the end draw
"""

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from . import ring_buffer
from .decay import AlphaLike, coerce_alpha, integrate, integrate_to_infinity
from .errors import (
    AddToZeroPeriod,
    InvalidAmount,
    InvalidEndPeriod,
    InvalidRange,
    PeriodClosed,
    ValueOverflow,
)

logger = logging.getLogger(__name__)

MAX_CARDINALITY = 366

AVAILABLE_BITS = 96
DISBURSED_BITS = 160
MAX_AVAILABLE = (1 << AVAILABLE_BITS) - 1
MAX_DISBURSED = (1 << DISBURSED_BITS) - 1

# Bisection over at most MAX_CARDINALITY entries always brackets within this many probes
MAX_SEARCH_ITERATIONS = math.ceil(math.log2(MAX_CARDINALITY)) + 1


@dataclass(frozen=True)
class Observation:
    """Snapshot of the accumulator at a draw."""
    available: int = 0  # Balance not yet decayed
    disbursed: int = 0  # Cumulative decayed balance


@dataclass(frozen=True)
class RingBufferInfo:
    """Ring buffer metadata."""
    next_index: int = 0  # Slot the next appended observation will occupy
    cardinality: int = 0  # Number of retained observations


@dataclass(frozen=True)
class SearchResult:
    """Adjacent pair of observations bracketing a target draw id."""
    before_or_at_index: int
    before_or_at_period_id: int
    after_or_at_index: int
    after_or_at_period_id: int


def _require_non_negative(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidAmount(name, value)
    return value


def _checked(field: str, value: int, bits: int) -> int:
    if value >> bits:
        raise ValueOverflow(field, value, bits)
    return value


def binary_search(
    period_ring_buffer: Sequence[int],
    oldest_index: int,
    newest_index: int,
    cardinality: int,
    target_period_id: int
) -> SearchResult:
    """
    Find the adjacent observations bracketing a draw id.

    The ring is searched as a linear range from the oldest to the newest
    slot; when the newest slot has wrapped past the oldest, the upper bound
    is unwrapped to ``oldest_index + cardinality - 1`` and each probe is
    wrapped back into the physical array.

    The target must lie within [oldest draw id, newest draw id].

    Args:
        period_ring_buffer: Physical ring of draw ids
        oldest_index: Slot of the oldest observation
        newest_index: Slot of the newest observation
        cardinality: Number of retained observations
        target_period_id: Draw id to bracket

    Returns:
        SearchResult with before_or_at_period_id <= target <= after_or_at_period_id

    Raises:
        RuntimeError: If the ring is not ordered and no bracket exists
    """
    left = oldest_index
    right = newest_index if newest_index >= left else left + cardinality - 1

    for _ in range(MAX_SEARCH_ITERATIONS):
        current = (left + right) // 2
        before_index = ring_buffer.wrap(current, cardinality)
        before_id = period_ring_buffer[before_index]
        after_index = ring_buffer.next_index(current, cardinality)
        after_id = period_ring_buffer[after_index]

        target_at_or_after = before_id <= target_period_id
        if target_at_or_after and target_period_id <= after_id:
            return SearchResult(before_index, before_id, after_index, after_id)

        if not target_at_or_after:
            right = current - 1
        else:
            left = current + 1

    raise RuntimeError(
        f"Binary search for draw {target_period_id} did not converge "
        f"within {MAX_SEARCH_ITERATIONS} probes"
    )


class DrawAccumulator:
    """Exponentially decaying accumulator over monotonically increasing draws.

    The accumulator is the sole owner of the draw ring, the observation map
    and the ring metadata. All public methods hold an internal lock, and
    add() only writes once every computation and overflow check succeeded.
    """

    def __init__(self):
        self._period_ring_buffer: List[int] = [0] * MAX_CARDINALITY
        self._observations: Dict[int, Observation] = {}
        self._ring_buffer_info = RingBufferInfo()
        self._lock = threading.Lock()

    @classmethod
    def from_snapshot(
        cls,
        period_ring_buffer: Sequence[int],
        ring_buffer_info: RingBufferInfo,
        observations: Dict[int, Observation]
    ) -> 'DrawAccumulator':
        """
        Rebuild an accumulator from its source fields.

        Args:
            period_ring_buffer: MAX_CARDINALITY draw ids
            ring_buffer_info: Ring metadata
            observations: Observations for every retained draw id

        Returns:
            New accumulator

        Raises:
            ValueError: If the fields are inconsistent
        """
        if len(period_ring_buffer) != MAX_CARDINALITY:
            raise ValueError(
                f"draw ring must hold {MAX_CARDINALITY} slots, got {len(period_ring_buffer)}"
            )
        accumulator = cls()
        accumulator._period_ring_buffer = list(period_ring_buffer)
        accumulator._ring_buffer_info = ring_buffer_info
        retained = set(accumulator._retained_period_ids())
        missing = retained - set(observations)
        if missing:
            raise ValueError(f"Missing observations for draws {sorted(missing)}")
        accumulator._observations = {
            period_id: observations[period_id] for period_id in retained
        }
        return accumulator

    def snapshot(self) -> Tuple[Tuple[int, ...], RingBufferInfo, Dict[int, Observation]]:
        """Copy of the source fields: draw ring, ring metadata, retained observations."""
        with self._lock:
            return (
                tuple(self._period_ring_buffer),
                self._ring_buffer_info,
                dict(self._observations),
            )

    def copy(self) -> 'DrawAccumulator':
        """Independent copy of this accumulator."""
        return DrawAccumulator.from_snapshot(*self.snapshot())

    @property
    def ring_buffer_info(self) -> RingBufferInfo:
        return self._ring_buffer_info

    def __len__(self) -> int:
        return self._ring_buffer_info.cardinality

    def add(self, amount: int, period_id: int, alpha: AlphaLike) -> bool:
        """
        Add an amount to a draw.

        Adding to the newest draw increases its available balance in place.
        Adding to a later draw first decays the newest observation up to the
        new draw, then appends a new observation holding the decayed
        remainder plus the amount.

        Args:
            amount: Amount to add
            period_id: Draw to add to, >= the newest recorded draw
            alpha: Decay rate per draw

        Returns:
            True if a new observation was created, False if the newest was updated

        Raises:
            AddToZeroPeriod: If period_id is 0
            PeriodClosed: If period_id is older than the newest recorded draw
            ValueOverflow: If a field would exceed its bit width
        """
        _require_non_negative("amount", amount)
        _require_non_negative("period_id", period_id)
        alpha = coerce_alpha(alpha)
        if period_id == 0:
            raise AddToZeroPeriod()

        with self._lock:
            info = self._ring_buffer_info
            newest_period_id = self._newest_period_id()
            if period_id < newest_period_id:
                raise PeriodClosed(period_id, newest_period_id)

            newest = self._observations.get(newest_period_id, Observation())

            if period_id == newest_period_id:
                self._observations[newest_period_id] = Observation(
                    available=_checked("available", amount + newest.available, AVAILABLE_BITS),
                    disbursed=newest.disbursed
                )
                return False

            relative_period = period_id - newest_period_id
            remaining = integrate_to_infinity(alpha, relative_period, newest.available)
            disbursed = integrate(alpha, 0, relative_period, newest.available)
            # Truncation residue goes to disbursed
            remainder = newest.available - (remaining + disbursed)

            observation = Observation(
                available=_checked("available", amount + remaining, AVAILABLE_BITS),
                disbursed=_checked(
                    "disbursed", newest.disbursed + disbursed + remainder, DISBURSED_BITS
                )
            )

            if info.cardinality == MAX_CARDINALITY:
                evicted = self._period_ring_buffer[info.next_index]
                self._observations.pop(evicted, None)
                logger.debug("Ring full; evicting draw %d", evicted)

            self._period_ring_buffer[info.next_index] = period_id
            self._observations[period_id] = observation
            self._ring_buffer_info = RingBufferInfo(
                next_index=ring_buffer.next_index(info.next_index, MAX_CARDINALITY),
                cardinality=min(info.cardinality + 1, MAX_CARDINALITY)
            )
            logger.debug(
                "Appended draw %d: available=%d disbursed=%d",
                period_id, observation.available, observation.disbursed
            )
            return True

    def newest_period_id(self) -> int:
        """Newest recorded draw id, or 0 if empty."""
        with self._lock:
            return self._newest_period_id()

    def newest_observation(self) -> Observation:
        """Observation at the newest draw, or an empty observation if none."""
        with self._lock:
            return self._observations.get(self._newest_period_id(), Observation())

    def oldest_period_id(self) -> int:
        """Oldest retained draw id, or 0 if empty."""
        with self._lock:
            info = self._ring_buffer_info
            if info.cardinality == 0:
                return 0
            return self._period_ring_buffer[
                ring_buffer.oldest_index(info.next_index, info.cardinality, MAX_CARDINALITY)
            ]

    def get_observation(self, period_id: int) -> Optional[Observation]:
        """Observation recorded at exactly ``period_id``, if retained."""
        with self._lock:
            return self._observations.get(period_id)

    def observations(self) -> Iterator[Tuple[int, Observation]]:
        """Retained (draw id, observation) pairs from oldest to newest."""
        with self._lock:
            pairs = [(period_id, self._observations[period_id]) for period_id in self._retained_period_ids()]
        return iter(pairs)

    def total_remaining(self, start_period_id: int, alpha: AlphaLike) -> int:
        """
        Balance that will disburse from ``start_period_id`` onward.

        Args:
            start_period_id: First draw to include, >= the newest recorded draw
            alpha: Decay rate per draw

        Returns:
            Remaining balance, 0 if empty

        Raises:
            PeriodClosed: If start_period_id is older than the newest recorded draw
        """
        _require_non_negative("start_period_id", start_period_id)
        alpha = coerce_alpha(alpha)
        with self._lock:
            if self._ring_buffer_info.cardinality == 0:
                return 0
            newest_period_id = self._newest_period_id()
            if start_period_id < newest_period_id:
                raise PeriodClosed(start_period_id, newest_period_id)
            newest = self._observations[newest_period_id]
            return integrate_to_infinity(alpha, start_period_id - newest_period_id, newest.available)

    def disbursed_between(self, start_period_id: int, end_period_id: int, alpha: AlphaLike) -> int:
        """
        Total disbursed during draws ``[start_period_id, end_period_id]`` inclusive.

        Draws before the oldest retained observation are not counted. The end
        draw must be at or after the second-newest observation's draw - 1, so
        the end always falls in the tail and never requires a second search.

        Args:
            start_period_id: First draw, inclusive
            end_period_id: Last draw, inclusive
            alpha: Decay rate per draw

        Returns:
            Disbursed amount

        Raises:
            InvalidRange: If start_period_id > end_period_id
            InvalidEndPeriod: If end_period_id < second-newest draw - 1
        """
        _require_non_negative("start_period_id", start_period_id)
        _require_non_negative("end_period_id", end_period_id)
        if start_period_id > end_period_id:
            raise InvalidRange(start_period_id, end_period_id)
        alpha = coerce_alpha(alpha)

        with self._lock:
            info = self._ring_buffer_info
            if info.cardinality == 0:
                return 0

            oldest_index = ring_buffer.oldest_index(
                info.next_index, info.cardinality, MAX_CARDINALITY
            )
            newest_index = ring_buffer.newest_index(info.next_index, MAX_CARDINALITY)
            oldest_period_id = self._period_ring_buffer[oldest_index]
            newest_period_id = self._period_ring_buffer[newest_index]

            if end_period_id < oldest_period_id:
                return 0

            second_newest_period_id = None
            if info.cardinality > 1:
                second_newest_period_id = self._period_ring_buffer[
                    ring_buffer.offset(newest_index, 1, info.cardinality)
                ]
                if end_period_id < second_newest_period_id - 1:
                    raise InvalidEndPeriod(end_period_id, second_newest_period_id)

            if end_period_id >= newest_period_id:
                last_at_or_before_end = newest_period_id
            else:
                last_at_or_before_end = second_newest_period_id

            before_or_at_start = None
            after_or_at_start = None
            if start_period_id >= newest_period_id:
                before_or_at_start = newest_period_id
            elif start_period_id <= oldest_period_id:
                after_or_at_start = oldest_period_id
            else:
                bracket = binary_search(
                    self._period_ring_buffer,
                    oldest_index,
                    newest_index,
                    info.cardinality,
                    start_period_id
                )
                before_or_at_start = bracket.before_or_at_period_id
                after_or_at_start = bracket.after_or_at_period_id

            total = 0

            # Head: decay of the observation before start, up to the next observation
            if (
                before_or_at_start is not None
                and after_or_at_start is not None
                and before_or_at_start != last_at_or_before_end
            ):
                head_start = start_period_id - before_or_at_start
                head_end = after_or_at_start - before_or_at_start
                total += integrate(
                    alpha, head_start, head_end,
                    self._observations[before_or_at_start].available
                )

            at_or_before_end = self._observations[last_at_or_before_end]

            # Body: already accounted for by the cumulative disbursed fields
            if after_or_at_start is not None and after_or_at_start < last_at_or_before_end:
                total += (
                    at_or_before_end.disbursed
                    - self._observations[after_or_at_start].disbursed
                )

            # Tail: +1 makes the end draw inclusive
            tail_start = max(start_period_id, last_at_or_before_end) - last_at_or_before_end
            tail_end = end_period_id - last_at_or_before_end + 1
            total += integrate(alpha, tail_start, tail_end, at_or_before_end.available)

            return total

    def _newest_period_id(self) -> int:
        info = self._ring_buffer_info
        if info.cardinality == 0:
            return 0
        return self._period_ring_buffer[ring_buffer.newest_index(info.next_index, MAX_CARDINALITY)]

    def _retained_period_ids(self) -> List[int]:
        info = self._ring_buffer_info
        index = ring_buffer.oldest_index(info.next_index, info.cardinality, MAX_CARDINALITY)
        period_ids = []
        for _ in range(info.cardinality):
            period_ids.append(self._period_ring_buffer[index])
            index = ring_buffer.next_index(index, MAX_CARDINALITY)
        return period_ids
