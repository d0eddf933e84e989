"""Contribution ledger - Per-contributor and total draw accumulators.

Key Concepts:
- Every contribution is added to the contributor's accumulator and to the total
- A contributor's share of a range = contributed_between / total_contributed_between
- All accumulators in a ledger share one decay rate
"""

import logging
import threading
from typing import Dict, List, Optional

from . import fixed_point as fp
from .accumulator import DrawAccumulator
from .decay import AlphaLike, coerce_alpha
from .errors import AccumulatorError, PeriodClosed

logger = logging.getLogger(__name__)


class ContributionLedger:
    """Track contributions per contributor alongside a pool-wide total."""

    def __init__(self, alpha: AlphaLike):
        """
        Initialize ledger.

        Args:
            alpha: Decay rate per period, in (0, 1]
        """
        self.alpha = coerce_alpha(alpha)
        self.total = DrawAccumulator()
        self._contributors: Dict[str, DrawAccumulator] = {}
        self._lock = threading.Lock()

    @property
    def contributors(self) -> List[str]:
        with self._lock:
            return list(self._contributors)

    def accumulator_for(self, contributor: str) -> Optional[DrawAccumulator]:
        """Accumulator of a contributor, or None if it never contributed."""
        with self._lock:
            return self._contributors.get(contributor)

    def contribute(self, contributor: str, amount: int, period_id: int) -> bool:
        """
        Record a contribution.

        The contribution is applied to a copy of the contributor accumulator,
        which only replaces the original once the total accepts it, so either
        both accumulators change or neither does. The ledger lock is held
        across the whole update.

        Args:
            contributor: Contributor name
            amount: Amount contributed
            period_id: Period to contribute to

        Returns:
            True if the total accumulator created a new observation
        """
        with self._lock:
            newest = self.total.newest_period_id()
            if period_id < newest:
                raise PeriodClosed(period_id, newest)

            existing = self._contributors.get(contributor)
            accumulator = existing.copy() if existing is not None else DrawAccumulator()
            accumulator.add(amount, period_id, self.alpha)
            try:
                created = self.total.add(amount, period_id, self.alpha)
            except AccumulatorError:
                logger.debug("Total rejected contribution from %s at period %d", contributor, period_id)
                raise
            self._contributors[contributor] = accumulator
            return created

    def contributed_between(self, contributor: str, start_period_id: int, end_period_id: int) -> int:
        """Amount of a contributor's balance disbursed during a period range."""
        with self._lock:
            return self._contributed_between(contributor, start_period_id, end_period_id)

    def total_contributed_between(self, start_period_id: int, end_period_id: int) -> int:
        """Amount of the pool-wide balance disbursed during a period range."""
        with self._lock:
            return self.total.disbursed_between(start_period_id, end_period_id, self.alpha)

    def contribution_share(self, contributor: str, start_period_id: int, end_period_id: int) -> int:
        """
        Contributor's fixed-point share of disbursements in a period range.

        Args:
            contributor: Contributor name
            start_period_id: First period, inclusive
            end_period_id: Last period, inclusive

        Returns:
            Fixed-point share in [0, 1e18], 0 if nothing was disbursed
        """
        with self._lock:
            total = self.total.disbursed_between(start_period_id, end_period_id, self.alpha)
            if total == 0:
                return 0
            contributed = self._contributed_between(contributor, start_period_id, end_period_id)
        return fp.div(fp.to_fixed(contributed), fp.to_fixed(total))

    def total_remaining(self, start_period_id: int) -> int:
        """Pool-wide balance that will disburse from ``start_period_id`` onward."""
        with self._lock:
            return self.total.total_remaining(start_period_id, self.alpha)

    def _contributed_between(self, contributor: str, start_period_id: int, end_period_id: int) -> int:
        accumulator = self._contributors.get(contributor)
        if accumulator is None:
            return 0
        return accumulator.disbursed_between(start_period_id, end_period_id, self.alpha)
