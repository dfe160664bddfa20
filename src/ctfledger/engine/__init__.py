"""Conditional tokens engine: split, merge, resolve, redeem."""

from ctfledger.engine.core import ConditionalTokens
from ctfledger.engine.payouts import index_set_numerator, payout_for_stake

__all__ = ["ConditionalTokens", "index_set_numerator", "payout_for_stake"]
