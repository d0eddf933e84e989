"""Schedule runner - Replay a contribution schedule through a ContributionLedger.

Key Features:
- Deterministic contribution amounts from a seeded numpy generator
- Per-period disbursement measured while the period is the newest
- Rolling disbursement over the configured query window
- Conservation drift: contributed - (disbursed + remaining)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import numpy as np

from ..config.schema import Config
from ..engine.ledger import ContributionLedger

logger = logging.getLogger(__name__)


@dataclass
class Contribution:
    """A single replayed contribution."""
    period_id: int
    contributor: str
    amount: int


@dataclass
class ScheduleResult:
    """Complete schedule replay result."""
    config: Config
    ledger: ContributionLedger
    contributions: List[Contribution]
    rows: List[Dict[str, Any]]
    final_metrics: Dict[str, Any]


class ScheduleRunner:
    """Replay a configured contribution schedule."""

    def __init__(self, config: Config):
        """
        Initialize schedule runner.

        Args:
            config: Workbench configuration
        """
        self.config = config

    def generate_contributions(self, random_seed: int = None) -> List[Contribution]:
        """
        Draw contribution amounts for every scheduled period.

        Args:
            random_seed: Random seed (defaults to config value)

        Returns:
            Contributions ordered by period
        """
        if random_seed is None:
            random_seed = self.config.schedule.random_seed
        rng = np.random.default_rng(random_seed)

        schedule = self.config.schedule
        contributions = []
        for offset in range(schedule.num_periods):
            period_id = schedule.start_period + offset
            for contributor in schedule.contributors:
                if offset % contributor.every_n_periods:
                    continue
                sample = rng.normal(contributor.mean_amount, contributor.stddev_amount)
                amount = int(np.rint(np.clip(sample, 0.0, None)))
                contributions.append(Contribution(period_id, contributor.name, amount))
        return contributions

    def run(self, random_seed: int = None) -> ScheduleResult:
        """
        Replay the schedule.

        Args:
            random_seed: Random seed (defaults to config value)

        Returns:
            ScheduleResult with per-period rows and final metrics
        """
        schedule = self.config.schedule
        window = self.config.reporting.query_window
        ledger = ContributionLedger(self.config.accumulator.alpha)
        contributions = self.generate_contributions(random_seed)
        logger.info(
            "Replaying %d contributions over %d periods (alpha=%s)",
            len(contributions), schedule.num_periods, self.config.accumulator.alpha
        )

        by_period: Dict[int, List[Contribution]] = {}
        for contribution in contributions:
            by_period.setdefault(contribution.period_id, []).append(contribution)

        rows = []
        for offset in range(schedule.num_periods):
            period_id = schedule.start_period + offset
            contributed = 0
            for contribution in by_period.get(period_id, []):
                ledger.contribute(contribution.contributor, contribution.amount, period_id)
                contributed += contribution.amount

            window_start = max(schedule.start_period, period_id - window + 1)
            rows.append({
                'period': period_id,
                'contributed': contributed,
                'disbursed': ledger.total_contributed_between(period_id, period_id),
                'remaining': ledger.total_remaining(period_id + 1),
                'window_disbursed': self._window_disbursed(ledger, window_start, period_id),
                'observations': len(ledger.total),
            })

        contributed = np.array([row['contributed'] for row in rows], dtype=object)
        disbursed = np.array([row['disbursed'] for row in rows], dtype=object)
        for row, cum_contributed, cum_disbursed in zip(
            rows, np.cumsum(contributed), np.cumsum(disbursed)
        ):
            row['cumulative_contributed'] = int(cum_contributed)
            row['cumulative_disbursed'] = int(cum_disbursed)

        final_metrics = self._final_metrics(contributions, rows)
        logger.info(
            "Replay finished: contributed=%d disbursed=%d drift=%d",
            final_metrics['total_contributed'],
            final_metrics['total_disbursed'],
            final_metrics['drift']
        )

        return ScheduleResult(
            config=self.config,
            ledger=ledger,
            contributions=contributions,
            rows=rows,
            final_metrics=final_metrics
        )

    def _window_disbursed(self, ledger: ContributionLedger, start: int, end: int) -> int:
        # Periods before the oldest retained observation are no longer counted
        oldest = ledger.total.oldest_period_id()
        return ledger.total_contributed_between(max(start, oldest), end) if oldest else 0

    def _final_metrics(
        self,
        contributions: List[Contribution],
        rows: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        """Compute final metrics for the replay."""
        if not rows:
            return {
                'total_contributed': 0,
                'total_disbursed': 0,
                'remaining': 0,
                'drift': 0,
                'num_observations': 0,
                'num_contributions': 0,
                'contributor_totals': {},
            }

        final_row = rows[-1]
        contributor_totals: Dict[str, int] = {}
        for contribution in contributions:
            contributor_totals[contribution.contributor] = (
                contributor_totals.get(contribution.contributor, 0) + contribution.amount
            )

        return {
            'total_contributed': final_row['cumulative_contributed'],
            'total_disbursed': final_row['cumulative_disbursed'],
            'remaining': final_row['remaining'],
            'drift': (
                final_row['cumulative_contributed']
                - final_row['cumulative_disbursed']
                - final_row['remaining']
            ),
            'num_observations': final_row['observations'],
            'num_contributions': len(contributions),
            'contributor_totals': contributor_totals,
        }
