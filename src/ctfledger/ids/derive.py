"""
Identifier derivation for conditions, collections and positions.

All ids are keccak256 digests of Solidity-style packed encodings, so they match
what on-chain tooling computes:

    conditionId  = keccak256(oracle, questionId, payoutDenominator, outcomeSlotCount)
    collectionId = keccak256(conditionId, indexSet)
    positionId   = keccak256(collateralToken[, collateralTokenId][, collectionId])

Nested collections are combined by addition modulo 2**256 rather than by hashing
again, so the order in which conditions are applied does not change the id.
Nothing here is stored: callers resupply the components on every call.
"""

from __future__ import annotations

from eth_abi.packed import encode_packed
from web3 import Web3

UINT256_MOD = 2**256
ROOT_COLLECTION_ID = "0x" + "00" * 32


def to_bytes32(value: str | bytes | int) -> bytes:
    """Coerce a 0x-hex string, raw bytes or uint256 into exactly 32 bytes."""
    if isinstance(value, bool):
        raise ValueError(f"not a bytes32 value: {value!r}")
    if isinstance(value, int):
        if not 0 <= value < UINT256_MOD:
            raise ValueError(f"value out of uint256 range: {value}")
        return value.to_bytes(32, "big")
    if isinstance(value, str):
        value = Web3.to_bytes(hexstr=value)
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ValueError(f"expected 32 bytes, got {value!r}")
    return bytes(value)


def normalize_bytes32(value: str | bytes | int) -> str:
    """Canonical lowercase 0x + 64 hex form."""
    return "0x" + to_bytes32(value).hex()


def _hex32(value: int) -> str:
    return f"0x{value:064x}"


def _checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


def normalize_address(address: str) -> str:
    """Canonical lowercase 0x + 40 hex form of an address given in any case."""
    return _checksum(address).lower()


def _check_uint(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < UINT256_MOD:
        raise ValueError(f"{name} must be a uint256, got {value!r}")
    return value


def is_root_collection(collection_id: str | bytes | int) -> bool:
    return to_bytes32(collection_id) == bytes(32)


def get_condition_id(
    oracle: str,
    question_id: str | bytes,
    payout_denominator: int,
    outcome_slot_count: int,
) -> str:
    """conditionId = keccak256(address oracle, bytes32 questionId, uint256 denominator, uint256 slots)."""
    packed = encode_packed(
        ["address", "bytes32", "uint256", "uint256"],
        [
            _checksum(oracle),
            to_bytes32(question_id),
            _check_uint("payout_denominator", payout_denominator),
            _check_uint("outcome_slot_count", outcome_slot_count),
        ],
    )
    return Web3.to_hex(Web3.keccak(packed))


def get_collection_id(condition_id: str | bytes, index_set: int) -> str:
    """Bare collection id for one condition's index set (no parent applied)."""
    packed = encode_packed(
        ["bytes32", "uint256"],
        [to_bytes32(condition_id), _check_uint("index_set", index_set)],
    )
    return Web3.to_hex(Web3.keccak(packed))


def combine_collection_ids(*collection_ids: str | bytes | int) -> str:
    """Sum collection ids modulo 2**256. Root (zero) is the identity element."""
    total = 0
    for collection_id in collection_ids:
        total += int.from_bytes(to_bytes32(collection_id), "big")
    return _hex32(total % UINT256_MOD)


def get_nested_collection_id(
    parent_collection_id: str | bytes,
    condition_id: str | bytes,
    index_set: int,
) -> str:
    return combine_collection_ids(parent_collection_id, get_collection_id(condition_id, index_set))


def get_position_id(
    collateral_token: str,
    collection_id: str | bytes = ROOT_COLLECTION_ID,
    token_id: int | None = None,
) -> int:
    """
    Position (multi-token) id for a collateral restricted to a collection.

    token_id is the collateral's sub-id when the collateral is itself a
    multi-token. With the root collection the collection component is dropped.
    """
    types = ["address"]
    values: list[object] = [_checksum(collateral_token)]
    if token_id is not None:
        types.append("uint256")
        values.append(_check_uint("token_id", token_id))
    if not is_root_collection(collection_id):
        types.append("bytes32")
        values.append(to_bytes32(collection_id))
    return int.from_bytes(Web3.keccak(encode_packed(types, values)), "big")
