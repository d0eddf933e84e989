"""Tests for the contribution ledger and persisted accumulator state."""

import pytest
import sys
import os
import threading
import time

from pydantic import ValidationError

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from drawacc.engine import fixed_point as fp
from drawacc.engine.accumulator import MAX_CARDINALITY, DrawAccumulator
from drawacc.engine.errors import PeriodClosed, ValueOverflow
from drawacc.engine.ledger import ContributionLedger
from drawacc.engine.state import (
    AccumulatorState,
    accumulator_from_state,
    accumulator_to_state,
    dump_state,
    load_state,
)


class TestContributionLedger:
    """Tests for per-contributor accounting."""

    def test_contributions_reach_contributor_and_total(self):
        ledger = ContributionLedger(0.9)
        assert ledger.contribute("a", 100, 1) is True
        assert ledger.contribute("b", 300, 1) is False

        assert ledger.contributors == ["a", "b"]
        assert ledger.total.newest_observation().available == 400
        assert ledger.accumulator_for("a").newest_observation().available == 100

    def test_contributed_between(self):
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 100, 1)
        ledger.contribute("b", 300, 1)
        assert ledger.contributed_between("a", 1, 1) == 10
        assert ledger.contributed_between("b", 1, 1) == 30
        assert ledger.total_contributed_between(1, 1) == 40

    def test_contribution_share(self):
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 100, 1)
        ledger.contribute("b", 300, 1)
        assert ledger.contribution_share("a", 1, 1) == fp.from_decimal("0.25")
        assert ledger.contribution_share("b", 1, 1) == fp.from_decimal("0.75")

    def test_unknown_contributor(self):
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 100, 1)
        assert ledger.contributed_between("nobody", 1, 5) == 0
        assert ledger.contribution_share("nobody", 1, 5) == 0
        assert ledger.accumulator_for("nobody") is None

    def test_share_of_empty_ledger_is_zero(self):
        assert ContributionLedger(0.9).contribution_share("a", 1, 1) == 0

    def test_total_remaining(self):
        ledger = ContributionLedger(0.5)
        ledger.contribute("a", 1000, 1)
        ledger.contribute("b", 1000, 1)
        assert ledger.total_remaining(2) == 1000

    def test_closed_period_changes_nothing(self):
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 100, 5)
        with pytest.raises(PeriodClosed):
            ledger.contribute("b", 100, 3)
        assert ledger.contributors == ["a"]
        assert ledger.total.newest_observation().available == 100

    def test_total_overflow_changes_nothing(self):
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 2 ** 96 - 1, 1)
        with pytest.raises(ValueOverflow):
            ledger.contribute("b", 1, 1)
        assert ledger.contributors == ["a"]

        with pytest.raises(ValueOverflow):
            ledger.contribute("a", 1, 1)
        assert ledger.accumulator_for("a").newest_observation().available == 2 ** 96 - 1

    def test_concurrent_contributions_from_one_contributor(self, monkeypatch):
        """Contributor and total agree when contributions race on one contributor."""
        original_copy = DrawAccumulator.copy

        def slow_copy(accumulator):
            copied = original_copy(accumulator)
            time.sleep(0.01)
            return copied

        monkeypatch.setattr(DrawAccumulator, "copy", slow_copy)
        ledger = ContributionLedger(0.9)
        ledger.contribute("a", 0, 1)

        threads = [threading.Thread(target=ledger.contribute, args=("a", 1, 1)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert ledger.total.newest_observation().available == 8
        assert ledger.accumulator_for("a").newest_observation().available == 8


class TestAccumulatorState:
    """Tests for saving and reloading accumulators."""

    @pytest.fixture
    def accumulator(self):
        acc = DrawAccumulator()
        for period_id in range(1, 30, 2):
            acc.add(1000 * period_id, period_id, 0.9)
        return acc

    def test_reload_answers_identically(self, accumulator):
        restored = load_state(dump_state(accumulator))
        assert restored.snapshot() == accumulator.snapshot()
        assert restored.disbursed_between(4, 29, 0.9) == accumulator.disbursed_between(4, 29, 0.9)
        assert restored.total_remaining(40, 0.9) == accumulator.total_remaining(40, 0.9)

    def test_reload_after_wraparound(self):
        acc = DrawAccumulator()
        for period_id in range(1, MAX_CARDINALITY + 50):
            acc.add(7, period_id, 0.5)
        state = accumulator_to_state(acc)
        assert len(state.observations) == MAX_CARDINALITY

        restored = accumulator_from_state(state)
        assert restored.oldest_period_id() == acc.oldest_period_id()
        assert restored.disbursed_between(100, 415, 0.5) == acc.disbursed_between(100, 415, 0.5)

    def test_empty_state(self):
        restored = load_state(dump_state(DrawAccumulator()))
        assert len(restored) == 0
        assert restored.newest_period_id() == 0

    def test_missing_observation_is_rejected(self, accumulator):
        data = accumulator_to_state(accumulator).model_dump()
        del data['observations'][29]
        with pytest.raises(ValidationError):
            AccumulatorState.model_validate(data)

    def test_unordered_ring_is_rejected(self, accumulator):
        data = accumulator_to_state(accumulator).model_dump()
        ring = data['period_ring_buffer']
        ring[0], ring[1] = ring[1], ring[0]
        with pytest.raises(ValidationError):
            AccumulatorState.model_validate(data)

    def test_wrong_ring_size_is_rejected(self):
        with pytest.raises(ValidationError):
            AccumulatorState(period_ring_buffer=[0] * 10, next_index=0, cardinality=0)

    def test_field_widths_are_enforced(self, accumulator):
        data = accumulator_to_state(accumulator).model_dump()
        data['observations'][1]['available'] = 2 ** 96
        with pytest.raises(ValidationError):
            AccumulatorState.model_validate(data)
