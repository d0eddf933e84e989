"""Sanity checks and validation for schedule inputs and accumulator state."""

from dataclasses import dataclass
from typing import List, Optional

from ..config.schema import Config
from ..engine.accumulator import (
    AVAILABLE_BITS,
    DISBURSED_BITS,
    MAX_CARDINALITY,
    DrawAccumulator,
)
from ..engine.decay import AlphaLike
from ..simulation.runner import ScheduleResult


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "bounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and accumulator state."""

    def __init__(self, config: Config):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        alpha = self.config.accumulator.alpha
        schedule = self.config.schedule

        if alpha == 1.0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="alpha = 1 means nothing ever disburses",
                details="Every contribution stays available forever"
            ))
        elif alpha < 0.01:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="alpha < 0.01 disburses almost everything in the first period",
                details=f"Current value: {alpha}"
            ))

        if not schedule.contributors:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Schedule has no contributors",
                details="Every period will disburse 0"
            ))

        if schedule.num_periods > MAX_CARDINALITY:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message=f"Schedule spans more than {MAX_CARDINALITY} periods",
                details="The oldest observations will be overwritten and can no longer be queried"
            ))

        if self.config.reporting.query_window > schedule.num_periods:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Query window is longer than the schedule",
                details=(
                    f"Window: {self.config.reporting.query_window} periods, "
                    f"schedule: {schedule.num_periods} periods"
                )
            ))

        return warnings

    def check_accumulator(self, accumulator: DrawAccumulator, name: str = "total") -> List[ValidationWarning]:
        """
        Check an accumulator's observation log.

        Args:
            accumulator: Accumulator to check
            name: Label used in messages

        Returns:
            List of validation warnings
        """
        warnings = []
        previous_period = 0
        previous_disbursed = 0

        for period_id, observation in accumulator.observations():
            if period_id <= previous_period:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="ordering",
                    message=f"{name}: period ids not strictly increasing at period {period_id}",
                    details=f"Previous period: {previous_period}"
                ))
            if observation.disbursed < previous_disbursed:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message=f"{name}: disbursed decreased at period {period_id}",
                    details=f"{previous_disbursed:,} -> {observation.disbursed:,}"
                ))
            if observation.available >> AVAILABLE_BITS or observation.disbursed >> DISBURSED_BITS:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"{name}: observation at period {period_id} exceeds its bit width",
                    details=f"available={observation.available}, disbursed={observation.disbursed}"
                ))
            previous_period = period_id
            previous_disbursed = observation.disbursed

        return warnings

    def check_conservation(
        self,
        contributed: int,
        accumulator: DrawAccumulator,
        period_id: int,
        alpha: AlphaLike = None,
        tolerance: int = None
    ) -> List[ValidationWarning]:
        """
        Check remaining + disbursed against everything contributed.

        Only meaningful while the ring still retains the first observation.

        Args:
            contributed: Total amount added to the accumulator
            accumulator: Accumulator to check
            period_id: Period at or after the newest observation
            alpha: Decay rate (defaults to config value)
            tolerance: Allowed truncation drift (defaults to one unit per observation)

        Returns:
            List of validation warnings
        """
        if alpha is None:
            alpha = self.config.accumulator.alpha
        if tolerance is None:
            tolerance = len(accumulator)

        first = accumulator.oldest_period_id()
        if first == 0:
            return []

        remaining = accumulator.total_remaining(period_id, alpha)
        disbursed = accumulator.disbursed_between(first, period_id - 1, alpha) if period_id > first else 0
        drift = contributed - (remaining + disbursed)
        if abs(drift) > tolerance:
            return [ValidationWarning(
                severity="error",
                category="conservation",
                message=f"Conservation drift of {drift:,} at period {period_id}",
                details=(
                    f"Contributed: {contributed:,}, remaining: {remaining:,}, "
                    f"disbursed: {disbursed:,}, tolerance: {tolerance:,}"
                )
            )]
        return []


def validate_schedule_results(config: Config, result: ScheduleResult) -> List[ValidationWarning]:
    """
    Validate a complete schedule replay.

    Args:
        config: Workbench configuration
        result: Schedule replay result

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(config)
    warnings = []

    # Check config first
    warnings.extend(checker.check_config_inputs())

    warnings.extend(checker.check_accumulator(result.ledger.total))
    for contributor in result.ledger.contributors:
        warnings.extend(checker.check_accumulator(
            result.ledger.accumulator_for(contributor), name=contributor
        ))

    if result.rows:
        final_period = result.rows[-1]['period']
        total = result.ledger.total
        if total.oldest_period_id() == min((c.period_id for c in result.contributions), default=0):
            warnings.extend(checker.check_conservation(
                result.final_metrics['total_contributed'], total, final_period + 1
            ))

        # Each period's row truncates once and each append may carry one unit of remainder
        drift = result.final_metrics['drift']
        bound = 2 * len(result.rows) + 1
        if drift < 0 or drift > bound:
            warnings.append(ValidationWarning(
                severity="warning",
                category="conservation",
                message=f"Per-period disbursement drift of {drift:,}",
                details=f"Expected between 0 and {bound}"
            ))

    return warnings
