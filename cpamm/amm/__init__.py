"""Constant-product AMM: pricing, pairs, factory, router and zap."""

from cpamm.amm.base import AMM, AssetLike, FlashSwapCallee, SwapResult, SwapSettlement, SwapState
from cpamm.amm.factory import Factory, derive_pair_address
from cpamm.amm.library import (
    ConstantProduct,
    constant_product,
    optimal_swap_amount,
    protocol_fee_shares,
    sort_assets,
)
from cpamm.amm.pair import Pair
from cpamm.amm.router import Router
from cpamm.amm.zap import SwapAmounts, Zap, split_for_zap

__all__ = [
    # Base classes and value types
    "AMM",
    "AssetLike",
    "FlashSwapCallee",
    "SwapResult",
    "SwapSettlement",
    "SwapState",
    # Pricing
    "ConstantProduct",
    "constant_product",
    "optimal_swap_amount",
    "protocol_fee_shares",
    "sort_assets",
    # Contracts
    "Pair",
    "Factory",
    "derive_pair_address",
    "Router",
    "Zap",
    "SwapAmounts",
    "split_for_zap",
]
