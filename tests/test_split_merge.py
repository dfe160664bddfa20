"""Split / merge tests across fungible, multi-token and direct-deposit collateral."""

import pytest

from conftest import (
    COLLATERAL_TOKEN_COUNT,
    COUNTERPARTY,
    ENGINE,
    MERGE_AMOUNT,
    SPLIT_AMOUNT,
    TRADER,
)
from ctfledger.errors import (
    ConditionNotFound,
    EmptyPartition,
    IndexSetOutOfRange,
    IndexSetsNotDisjoint,
    InsufficientBalance,
)
from ctfledger.ids.derive import ROOT_COLLECTION_ID, get_collection_id, to_bytes32
from ctfledger.models.events import PositionSplit, PositionsMerge

PARTITION = [0b01, 0b10]


def _assert_untouched(harness, condition_id):
    assert harness.collateral_balance(TRADER) == COLLATERAL_TOKEN_COUNT
    assert harness.collateral_balance(ENGINE) == 0
    for index_set in PARTITION:
        pid = harness.position_id(get_collection_id(condition_id, index_set))
        assert harness.ctf.balance_of(TRADER, pid) == 0


def test_split_on_unprepared_condition_fails(harness, condition_id):
    with pytest.raises(ConditionNotFound):
        harness.split(condition_id, PARTITION, SPLIT_AMOUNT)
    _assert_untouched(harness, condition_id)


@pytest.mark.parametrize(
    "partition, error",
    [
        ([0b11, 0b10], IndexSetsNotDisjoint),
        ([0b001, 0b010, 0b100], IndexSetOutOfRange),
        ([0b11], EmptyPartition),
        ([0b01], EmptyPartition),
    ],
)
def test_split_rejects_invalid_partitions(harness, prepared, partition, error):
    with pytest.raises(error):
        harness.split(prepared, partition, SPLIT_AMOUNT)
    _assert_untouched(harness, prepared)


def test_valid_split_moves_collateral_and_mints_positions(harness, prepared, events):
    harness.split(prepared, PARTITION, SPLIT_AMOUNT)

    assert harness.collateral_balance(TRADER) == COLLATERAL_TOKEN_COUNT - SPLIT_AMOUNT
    assert harness.collateral_balance(ENGINE) == SPLIT_AMOUNT
    for index_set in PARTITION:
        pid = harness.position_id(get_collection_id(prepared, index_set))
        assert harness.ctf.balance_of(TRADER, pid) == SPLIT_AMOUNT

    splits = [e for e in events if isinstance(e, PositionSplit)]
    assert splits == [
        PositionSplit(
            stakeholder=TRADER,
            parent_collection_id=ROOT_COLLECTION_ID,
            condition_id=prepared,
            partition=PARTITION,
            amount=SPLIT_AMOUNT,
            **harness.collateral_fields(),
        )
    ]


def test_merge_more_than_balance_fails_without_side_effects(harness, prepared):
    harness.split(prepared, PARTITION, SPLIT_AMOUNT)
    with pytest.raises(InsufficientBalance):
        harness.merge(prepared, PARTITION, SPLIT_AMOUNT + 1)
    assert harness.collateral_balance(ENGINE) == SPLIT_AMOUNT
    for index_set in PARTITION:
        pid = harness.position_id(get_collection_id(prepared, index_set))
        assert harness.ctf.balance_of(TRADER, pid) == SPLIT_AMOUNT


def test_valid_merge_returns_collateral_and_burns_positions(harness, prepared, events):
    harness.split(prepared, PARTITION, SPLIT_AMOUNT)
    harness.merge(prepared, PARTITION, MERGE_AMOUNT)

    assert harness.collateral_balance(TRADER) == COLLATERAL_TOKEN_COUNT - SPLIT_AMOUNT + MERGE_AMOUNT
    assert harness.collateral_balance(ENGINE) == SPLIT_AMOUNT - MERGE_AMOUNT
    for index_set in PARTITION:
        pid = harness.position_id(get_collection_id(prepared, index_set))
        assert harness.ctf.balance_of(TRADER, pid) == SPLIT_AMOUNT - MERGE_AMOUNT

    merges = [e for e in events if isinstance(e, PositionsMerge)]
    assert len(merges) == 1
    assert merges[0].stakeholder == TRADER
    assert merges[0].amount == MERGE_AMOUNT
    assert merges[0].parent_collection_id == ROOT_COLLECTION_ID
    assert merges[0].collateral_token == harness.collateral_fields()["collateral_token"]


def test_merge_short_on_one_position_aborts_whole_merge(harness, prepared):
    harness.split(prepared, PARTITION, SPLIT_AMOUNT)
    pid = harness.position_id(get_collection_id(prepared, 0b01))
    harness.ctf.positions.safe_transfer_from(TRADER, TRADER, COUNTERPARTY, pid, 1)

    with pytest.raises(InsufficientBalance):
        harness.merge(prepared, PARTITION, SPLIT_AMOUNT)

    other = harness.position_id(get_collection_id(prepared, 0b10))
    assert harness.ctf.balance_of(TRADER, other) == SPLIT_AMOUNT
    assert harness.ctf.balance_of(TRADER, pid) == SPLIT_AMOUNT - 1
    assert harness.collateral_balance(ENGINE) == SPLIT_AMOUNT


def test_transfer_more_than_split_balance_fails(harness, prepared):
    harness.split(prepared, PARTITION, SPLIT_AMOUNT)
    pid = harness.position_id(get_collection_id(prepared, PARTITION[0]))
    with pytest.raises(InsufficientBalance):
        harness.ctf.positions.safe_transfer_from(TRADER, TRADER, COUNTERPARTY, pid, SPLIT_AMOUNT + 1)
    assert harness.ctf.balance_of(COUNTERPARTY, pid) == 0


def test_merge_and_redeem_on_unprepared_condition_fail(harness, condition_id):
    with pytest.raises(ConditionNotFound):
        harness.merge(condition_id, PARTITION, 1)
    with pytest.raises(ConditionNotFound):
        harness.redeem(condition_id, PARTITION)


def test_split_then_merge_everything_recovers_all_collateral(harness, prepared):
    amounts = [SPLIT_AMOUNT, 7, 10**17, 1]
    for amount in amounts:
        harness.split(prepared, PARTITION, amount)
    harness.merge(prepared, PARTITION, 10**17)
    harness.merge(prepared, PARTITION, sum(amounts) - 10**17)

    assert harness.collateral_balance(TRADER) == COLLATERAL_TOKEN_COUNT
    assert harness.collateral_balance(ENGINE) == 0
    assert harness.ctf.positions.holders() == {}


def test_condition_id_given_as_raw_bytes_or_bare_hex(harness, prepared):
    raw = to_bytes32(prepared)
    harness.split(raw, PARTITION, SPLIT_AMOUNT)
    harness.merge(prepared[2:], PARTITION, MERGE_AMOUNT)

    assert harness.collateral_balance(ENGINE) == SPLIT_AMOUNT - MERGE_AMOUNT
    for index_set in PARTITION:
        pid = harness.position_id(get_collection_id(prepared, index_set))
        assert harness.ctf.balance_of(TRADER, pid) == SPLIT_AMOUNT - MERGE_AMOUNT
    assert harness.ctf.get_outcome_slot_count(raw) == 2
