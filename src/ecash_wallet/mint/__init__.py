"""Mint-facing data models and collaborator protocols."""

from ecash_wallet.mint.models import Proof, SendPlan, SplitResult, Token, sum_amounts
from ecash_wallet.mint.protocols import MintClient, TokenCodec

__all__ = ["MintClient", "Proof", "SendPlan", "SplitResult", "Token", "TokenCodec", "sum_amounts"]
