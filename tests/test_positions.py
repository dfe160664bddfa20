"""Nested collections and partial partitions."""

import pytest

from conftest import COLLATERAL_TOKEN_COUNT, ENGINE, ORACLE, TRADER, DirectTransferHarness
from ctfledger.errors import IncompletePartition, InsufficientBalance
from ctfledger.ids.derive import get_collection_id, get_nested_collection_id

SECOND_QUESTION_ID = "0x" + "77" * 32


@pytest.fixture
def second(ctf):
    return ctf.prepare_condition(ORACLE, SECOND_QUESTION_ID, 4, 3)


def _balance(harness, collection_id):
    return harness.ctf.balance_of(TRADER, harness.position_id(collection_id))


def test_deeper_split_consumes_parent_position(erc20, prepared, second):
    amount = 4 * 10**17
    erc20.split(prepared, [0b01, 0b10], amount)
    parent = get_collection_id(prepared, 0b01)

    erc20.split(second, [0b001, 0b110], amount, parent=parent)

    assert _balance(erc20, parent) == 0
    assert _balance(erc20, get_nested_collection_id(parent, second, 0b001)) == amount
    assert _balance(erc20, get_nested_collection_id(parent, second, 0b110)) == amount
    assert erc20.collateral_balance(ENGINE) == amount

    erc20.merge(second, [0b001, 0b110], amount, parent=parent)
    assert _balance(erc20, parent) == amount
    assert _balance(erc20, get_nested_collection_id(parent, second, 0b001)) == 0


def test_nested_positions_do_not_depend_on_split_order(erc20, prepared, second):
    amount = 4 * 10**17
    first_parent = get_collection_id(prepared, 0b01)
    second_parent = get_collection_id(second, 0b001)

    erc20.split(prepared, [0b01, 0b10], amount)
    erc20.split(second, [0b001, 0b110], amount, parent=first_parent)
    erc20.split(second, [0b001, 0b110], amount)
    erc20.split(prepared, [0b01, 0b10], amount, parent=second_parent)

    both = get_nested_collection_id(first_parent, second, 0b001)
    assert both == get_nested_collection_id(second_parent, prepared, 0b01)
    assert _balance(erc20, both) == 2 * amount


def test_nested_redeem_credits_parent_position(ctf, erc20, prepared, second):
    amount = 4 * 10**17
    parent = get_collection_id(prepared, 0b01)
    erc20.split(prepared, [0b01, 0b10], amount)
    erc20.split(second, [0b001, 0b110], amount, parent=parent)
    ctf.report_payouts(ORACLE, SECOND_QUESTION_ID, 4, [1, 1, 2])

    payout = erc20.redeem(second, [0b001, 0b110], parent=parent)

    assert payout == amount * 1 // 4 + amount * 3 // 4
    assert _balance(erc20, parent) == payout
    assert erc20.collateral_balance(ENGINE) == amount


def test_partial_merge_and_split_go_through_union_position(erc20, second):
    amount = 900
    erc20.split(second, [0b001, 0b010, 0b100], amount)

    erc20.merge(second, [0b001, 0b010], amount)
    assert _balance(erc20, get_collection_id(second, 0b011)) == amount
    assert _balance(erc20, get_collection_id(second, 0b001)) == 0
    assert erc20.collateral_balance(ENGINE) == amount

    erc20.split(second, [0b001, 0b010], 300)
    assert _balance(erc20, get_collection_id(second, 0b011)) == 600
    assert _balance(erc20, get_collection_id(second, 0b010)) == 300

    erc20.merge(second, [0b011, 0b100], 600)
    assert erc20.collateral_balance(ENGINE) == 300


def test_partial_split_requires_union_position(erc20, second):
    with pytest.raises(InsufficientBalance):
        erc20.split(second, [0b001, 0b010], 1)
    assert erc20.collateral_balance(ENGINE) == 0


def test_direct_deposit_must_cover_every_slot(ctf, second):
    direct = DirectTransferHarness(ctf)
    with pytest.raises(IncompletePartition):
        direct.split(second, [0b001, 0b010], 100)
    assert direct.collateral_balance(ENGINE) == 0
    assert direct.collateral_balance(TRADER) == COLLATERAL_TOKEN_COUNT
    assert ctf.positions.holders() == {}
