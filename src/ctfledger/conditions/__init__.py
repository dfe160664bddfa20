"""Condition registry, partition validation and oracle resolution."""

from ctfledger.conditions.partition import (
    full_index_set,
    outcome_indexes,
    validate_index_sets,
    validate_partition,
)
from ctfledger.conditions.registry import ConditionRegistry
from ctfledger.conditions.resolution import report_payouts, validate_payouts

__all__ = [
    "ConditionRegistry",
    "full_index_set",
    "outcome_indexes",
    "report_payouts",
    "validate_index_sets",
    "validate_partition",
    "validate_payouts",
]
