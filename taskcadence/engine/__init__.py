"""Recurrence engine for taskcadence."""

from taskcadence.engine.errors import CalculationError, RecurrenceValidationError, RuleViolation
from taskcadence.engine.validator import check_rule, is_valid_rule, validate_rule
from taskcadence.engine.occurrence import next_occurrence, should_continue
from taskcadence.engine.materialize import iter_occurrences, materialize

__all__ = [
    "CalculationError",
    "RecurrenceValidationError",
    "RuleViolation",
    "check_rule",
    "is_valid_rule",
    "validate_rule",
    "next_occurrence",
    "should_continue",
    "iter_occurrences",
    "materialize",
]
