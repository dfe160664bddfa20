"""Deterministic condition, collection and position identifiers."""

from ctfledger.ids.derive import (
    ROOT_COLLECTION_ID,
    combine_collection_ids,
    get_collection_id,
    get_condition_id,
    get_nested_collection_id,
    get_position_id,
    is_root_collection,
    normalize_address,
    normalize_bytes32,
    to_bytes32,
)

__all__ = [
    "ROOT_COLLECTION_ID",
    "combine_collection_ids",
    "get_collection_id",
    "get_condition_id",
    "get_nested_collection_id",
    "get_position_id",
    "is_root_collection",
    "normalize_address",
    "normalize_bytes32",
    "to_bytes32",
]
