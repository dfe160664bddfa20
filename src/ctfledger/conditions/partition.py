"""Index set and partition checks over a condition's outcome slots."""

from __future__ import annotations

from typing import Sequence

from ctfledger.errors import EmptyPartition, IndexSetOutOfRange, IndexSetsNotDisjoint


def full_index_set(outcome_slot_count: int) -> int:
    """Bitmask with every outcome slot set."""
    return (1 << outcome_slot_count) - 1


def outcome_indexes(index_set: int) -> list[int]:
    """Slot indexes whose bit is set, ascending."""
    out = []
    i = 0
    while index_set >> i:
        if (index_set >> i) & 1:
            out.append(i)
        i += 1
    return out


def _check_index_set(index_set: object, outcome_slot_count: int, full: int) -> int:
    if isinstance(index_set, bool) or not isinstance(index_set, int):
        raise IndexSetOutOfRange(index_set, outcome_slot_count)
    if index_set <= 0 or index_set & ~full:
        raise IndexSetOutOfRange(index_set, outcome_slot_count)
    return index_set


def validate_partition(partition: Sequence[int], outcome_slot_count: int) -> int:
    """
    Check partition is a list of at least two disjoint, non-empty index sets
    within the condition's slots. Returns the union of the sets.

    The union does not have to cover every slot: a partial partition splits
    the sub-collection given by the union.
    """
    if len(partition) < 2:
        raise EmptyPartition(len(partition))
    full = full_index_set(outcome_slot_count)
    free = full
    for index_set in partition:
        _check_index_set(index_set, outcome_slot_count, full)
        if index_set & free != index_set:
            raise IndexSetsNotDisjoint(index_set)
        free ^= index_set
    return full ^ free


def validate_index_sets(index_sets: Sequence[int], outcome_slot_count: int) -> None:
    """Range checks only (redemption accepts any list, duplicates included)."""
    full = full_index_set(outcome_slot_count)
    for index_set in index_sets:
        _check_index_set(index_set, outcome_slot_count, full)
