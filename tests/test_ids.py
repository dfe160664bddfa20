"""Identifier derivation tests."""

import pytest
from web3 import Web3

from ctfledger.ids.derive import (
    ROOT_COLLECTION_ID,
    combine_collection_ids,
    get_collection_id,
    get_condition_id,
    get_nested_collection_id,
    get_position_id,
    is_root_collection,
    normalize_bytes32,
)

ORACLE = "0x" + "a1" * 20
QUESTION_ID = "0x" + "5e" * 32
TOKEN = "0x" + "e2" * 20


def _u256(value: int) -> bytes:
    return value.to_bytes(32, "big")


def test_condition_id_is_keccak_of_packed_fields():
    expected = Web3.keccak(bytes.fromhex("a1" * 20) + bytes.fromhex("5e" * 32) + _u256(10) + _u256(2))
    assert get_condition_id(ORACLE, QUESTION_ID, 10, 2) == Web3.to_hex(expected)


def test_condition_id_accepts_any_address_case_and_raw_bytes():
    checksummed = Web3.to_checksum_address(ORACLE)
    raw_question = bytes.fromhex("5e" * 32)
    assert get_condition_id(checksummed, raw_question, 10, 2) == get_condition_id(ORACLE, QUESTION_ID, 10, 2)


def test_condition_id_depends_on_every_field():
    base = get_condition_id(ORACLE, QUESTION_ID, 10, 2)
    assert get_condition_id("0x" + "a2" * 20, QUESTION_ID, 10, 2) != base
    assert get_condition_id(ORACLE, "0x" + "5f" * 32, 10, 2) != base
    assert get_condition_id(ORACLE, QUESTION_ID, 11, 2) != base
    assert get_condition_id(ORACLE, QUESTION_ID, 10, 3) != base


def test_condition_id_rejects_malformed_inputs():
    with pytest.raises(ValueError):
        get_condition_id(ORACLE, "0x1234", 10, 2)
    with pytest.raises(ValueError):
        get_condition_id("not-an-address", QUESTION_ID, 10, 2)
    with pytest.raises(ValueError):
        get_condition_id(ORACLE, QUESTION_ID, -1, 2)


def test_collection_id_is_keccak_of_condition_and_index_set():
    condition_id = get_condition_id(ORACLE, QUESTION_ID, 10, 2)
    expected = Web3.keccak(bytes.fromhex(condition_id[2:]) + _u256(0b01))
    assert get_collection_id(condition_id, 0b01) == Web3.to_hex(expected)
    assert get_collection_id(condition_id, 0b01) != get_collection_id(condition_id, 0b10)


def test_combination_is_modular_addition():
    one = "0x" + "00" * 31 + "01"
    max_id = "0x" + "ff" * 32
    assert combine_collection_ids(max_id, one) == ROOT_COLLECTION_ID
    assert combine_collection_ids(ROOT_COLLECTION_ID, one) == one
    assert combine_collection_ids() == ROOT_COLLECTION_ID


def test_nested_collections_commute_and_associate():
    c1 = get_condition_id(ORACLE, QUESTION_ID, 10, 2)
    c2 = get_condition_id(ORACLE, "0x" + "77" * 32, 10, 3)
    c3 = get_condition_id(ORACLE, "0x" + "78" * 32, 5, 4)
    a = get_nested_collection_id(get_nested_collection_id(ROOT_COLLECTION_ID, c1, 0b01), c2, 0b110)
    b = get_nested_collection_id(get_nested_collection_id(ROOT_COLLECTION_ID, c2, 0b110), c1, 0b01)
    assert a == b
    x, y, z = (get_collection_id(c1, 1), get_collection_id(c2, 2), get_collection_id(c3, 4))
    assert combine_collection_ids(combine_collection_ids(x, y), z) == combine_collection_ids(x, combine_collection_ids(y, z))
    assert get_nested_collection_id(ROOT_COLLECTION_ID, c1, 0b01) == get_collection_id(c1, 0b01)


def test_position_id_root_collection_collapses():
    token_bytes = bytes.fromhex("e2" * 20)
    assert get_position_id(TOKEN) == int.from_bytes(Web3.keccak(token_bytes), "big")
    assert get_position_id(TOKEN, ROOT_COLLECTION_ID, 7) == int.from_bytes(Web3.keccak(token_bytes + _u256(7)), "big")


def test_position_id_with_collection():
    condition_id = get_condition_id(ORACLE, QUESTION_ID, 10, 2)
    collection_id = get_collection_id(condition_id, 0b10)
    coll_bytes = bytes.fromhex(collection_id[2:])
    token_bytes = bytes.fromhex("e2" * 20)
    assert get_position_id(TOKEN, collection_id) == int.from_bytes(Web3.keccak(token_bytes + coll_bytes), "big")
    assert get_position_id(TOKEN, collection_id, 7) == int.from_bytes(
        Web3.keccak(token_bytes + _u256(7) + coll_bytes), "big"
    )
    assert get_position_id(TOKEN, collection_id) != get_position_id(TOKEN, collection_id, 0)


def test_bytes32_helpers():
    assert is_root_collection(ROOT_COLLECTION_ID)
    assert is_root_collection(0)
    assert not is_root_collection("0x" + "00" * 31 + "01")
    assert normalize_bytes32("0x" + "AB" * 32) == "0x" + "ab" * 32
    with pytest.raises(ValueError):
        normalize_bytes32(2**256)
