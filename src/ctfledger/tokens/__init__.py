"""In-memory token books: position ledger (multi-token) and collateral assets."""

from ctfledger.tokens.base import ZERO_ADDRESS, BalanceBook, canonical_address
from ctfledger.tokens.fungible import FungibleToken
from ctfledger.tokens.multi import MultiToken, MultiTokenReceiver

__all__ = ["ZERO_ADDRESS", "BalanceBook", "canonical_address", "FungibleToken", "MultiToken", "MultiTokenReceiver"]
