"""Persisted state layout for draw accumulators.

Only source fields are stored: the period ring, the ring metadata and the
observations of retained periods. Reloading a state reproduces identical
query answers.
"""

from typing import Dict, List

from pydantic import BaseModel, Field, model_validator

from . import ring_buffer
from .accumulator import (
    MAX_AVAILABLE,
    MAX_CARDINALITY,
    MAX_DISBURSED,
    DrawAccumulator,
    Observation,
    RingBufferInfo,
)


class ObservationRecord(BaseModel):
    """Stored observation."""
    available: int = Field(ge=0, le=MAX_AVAILABLE, description="Balance not yet decayed")
    disbursed: int = Field(ge=0, le=MAX_DISBURSED, description="Cumulative decayed balance")


class AccumulatorState(BaseModel):
    """Stored accumulator."""
    period_ring_buffer: List[int] = Field(
        min_length=MAX_CARDINALITY,
        max_length=MAX_CARDINALITY,
        description="Period id per ring slot"
    )
    next_index: int = Field(ge=0, lt=MAX_CARDINALITY, description="Slot of the next append")
    cardinality: int = Field(ge=0, le=MAX_CARDINALITY, description="Retained observations")
    observations: Dict[int, ObservationRecord] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_layout(self):
        """Retained periods must be present, positive and strictly increasing."""
        if self.cardinality < MAX_CARDINALITY and self.next_index != self.cardinality:
            raise ValueError(
                f"next_index {self.next_index} must equal cardinality {self.cardinality} "
                "until the ring is full"
            )
        index = ring_buffer.oldest_index(self.next_index, self.cardinality, MAX_CARDINALITY)
        previous = 0
        for _ in range(self.cardinality):
            period_id = self.period_ring_buffer[index]
            if period_id <= previous:
                raise ValueError(
                    f"Ring periods must be positive and strictly increasing; "
                    f"slot {index} holds {period_id} after {previous}"
                )
            if period_id not in self.observations:
                raise ValueError(f"Missing observation for period {period_id}")
            previous = period_id
            index = ring_buffer.next_index(index, MAX_CARDINALITY)
        return self


def accumulator_to_state(accumulator: DrawAccumulator) -> AccumulatorState:
    """Capture an accumulator's source fields."""
    ring, info, observations = accumulator.snapshot()
    return AccumulatorState(
        period_ring_buffer=list(ring),
        next_index=info.next_index,
        cardinality=info.cardinality,
        observations={
            period_id: ObservationRecord(available=obs.available, disbursed=obs.disbursed)
            for period_id, obs in observations.items()
        }
    )


def accumulator_from_state(state: AccumulatorState) -> DrawAccumulator:
    """Rebuild an accumulator from a stored state."""
    return DrawAccumulator.from_snapshot(
        state.period_ring_buffer,
        RingBufferInfo(next_index=state.next_index, cardinality=state.cardinality),
        {
            period_id: Observation(available=record.available, disbursed=record.disbursed)
            for period_id, record in state.observations.items()
        }
    )


def dump_state(accumulator: DrawAccumulator) -> str:
    """Serialize an accumulator to JSON."""
    return accumulator_to_state(accumulator).model_dump_json()


def load_state(data: str) -> DrawAccumulator:
    """Deserialize an accumulator from JSON."""
    return accumulator_from_state(AccumulatorState.model_validate_json(data))
