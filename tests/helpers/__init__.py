"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Accounts, amounts and known swap vectors
- factories: Token deployment and liquidity helpers
"""

from tests.helpers.constants import (
    DEADLINE,
    FEE_RECIPIENT,
    INITIAL_SUPPLY,
    MAINNET_FACTORY,
    MAINNET_INIT_CODE_HASH,
    OPTIMISTIC_VECTORS,
    OTHER,
    SWAP_VECTORS,
    USDC,
    USDC_WETH_PAIR,
    WALLET,
    WETH,
    expand_to_18,
)
from tests.helpers.factories import add_liquidity, deploy_token, deploy_tokens, pair_tokens

__all__ = [
    # Constants
    "WALLET",
    "OTHER",
    "FEE_RECIPIENT",
    "DEADLINE",
    "INITIAL_SUPPLY",
    "SWAP_VECTORS",
    "OPTIMISTIC_VECTORS",
    "expand_to_18",
    "MAINNET_FACTORY",
    "MAINNET_INIT_CODE_HASH",
    "USDC",
    "WETH",
    "USDC_WETH_PAIR",
    # Factories
    "deploy_token",
    "deploy_tokens",
    "pair_tokens",
    "add_liquidity",
]
