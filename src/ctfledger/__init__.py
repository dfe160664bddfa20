"""ctfledger - conditional token ledger: outcome positions over escrowed collateral."""

from ctfledger.conditions.registry import ConditionRegistry
from ctfledger.engine.core import ConditionalTokens, decode_split_data, encode_split_data
from ctfledger.tokens.fungible import FungibleToken
from ctfledger.tokens.multi import MultiToken

__version__ = "0.1.0"

__all__ = [
    "ConditionRegistry",
    "ConditionalTokens",
    "FungibleToken",
    "MultiToken",
    "decode_split_data",
    "encode_split_data",
]
