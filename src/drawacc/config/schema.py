"""Pydantic schema for configuration validation."""

import hashlib
import json
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class AccumulatorSettings(BaseModel):
    """Decay parameters shared by every accumulator in a ledger."""
    alpha: float = Field(gt=0, le=1, default=0.9, description="Per-period decay rate")


class ContributorSchedule(BaseModel):
    """Recurring contributions from one contributor."""
    name: str = Field(min_length=1, description="Contributor name")
    mean_amount: float = Field(ge=0, description="Mean amount per contribution")
    stddev_amount: float = Field(ge=0, default=0.0, description="Standard deviation of amounts")
    every_n_periods: int = Field(ge=1, default=1, description="Contribute once every N periods")


class Schedule(BaseModel):
    """Contribution schedule to replay."""
    start_period: int = Field(ge=1, default=1, description="First period id")
    num_periods: int = Field(gt=0, description="Number of periods to replay")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")
    contributors: List[ContributorSchedule] = Field(default_factory=list)

    @field_validator('contributors')
    @classmethod
    def validate_unique_names(cls, v):
        """Ensure contributor names are unique."""
        names = [c.name for c in v]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate contributor names: {', '.join(duplicates)}")
        return v


class Reporting(BaseModel):
    """Reporting parameters."""
    query_window: int = Field(ge=1, default=7, description="Periods per rolling disbursement window")


class Config(BaseModel):
    """Complete configuration for the draw accumulator workbench."""
    accumulator: AccumulatorSettings = Field(default_factory=AccumulatorSettings)
    schedule: Schedule
    reporting: Reporting = Field(default_factory=Reporting)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
