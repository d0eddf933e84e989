"""Validation and sanity checks for draw accumulator schedules."""

from .sanity_checks import SanityChecker, ValidationWarning, validate_schedule_results

__all__ = [
    "SanityChecker",
    "ValidationWarning",
    "validate_schedule_results"
]
