"""Constant-product pricing math.

Pure functions over reserves, shared by the pair (invariant check and
protocol fee), the router (multi-hop amounts) and the zap (optimal split).

Formula: amount_out = (in * fee * res_out) / (res_in * 10000 + in * fee)

where fee = 10000 - fee_bps, so 30 bps gives the familiar 997/1000 factor.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from cpamm.amm.base import AMM, SwapResult
from cpamm.constants import BPS_DENOMINATOR, DEFAULT_FEE_BPS, ZERO_ADDRESS
from cpamm.errors import (
    IdenticalAssets,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    InvalidPath,
    ZeroAsset,
)
from cpamm.math import mul_div
from cpamm.models.types import normalize_address
from cpamm.safe_int import S

if TYPE_CHECKING:
    from cpamm.amm.factory import Factory
    from cpamm.amm.pair import Pair


def sort_assets(token_a: str, token_b: str) -> tuple[str, str]:
    """Return the two assets in canonical (token0, token1) order.

    Ordering is by address bytes, which for normalized lowercase hex is the
    same as string ordering.

    Raises:
        IdenticalAssets: If both are the same asset
        ZeroAsset: If either is the zero address
    """
    a, b = normalize_address(token_a), normalize_address(token_b)
    if a == b:
        raise IdenticalAssets(f"Identical assets: {a}")
    token0, token1 = (a, b) if bytes.fromhex(a[2:]) < bytes.fromhex(b[2:]) else (b, a)
    if token0 == ZERO_ADDRESS:
        raise ZeroAsset("Pair asset cannot be the zero address")
    return token0, token1


def protocol_fee_shares(
    total_supply: int,
    k: int,
    k_last: int,
    numerator: int,
    denominator: int,
) -> int:
    """Shares to mint to the fee recipient for invariant growth since k_last.

    Grants the recipient ``numerator/denominator`` of the growth in
    sqrt(k) purely by dilution:

        shares = supply * (rootK - rootKLast) * n / (rootK * (d - n) + rootKLast * n)

    With the default 1/6 this is supply * (rootK - rootKLast) / (rootK * 5 + rootKLast).

    Returns:
        Shares to mint, 0 when there was no growth or k_last is unset
    """
    if k_last == 0:
        return 0
    root_k = S(k).sqrt()
    root_k_last = S(k_last).sqrt()
    if root_k <= root_k_last:
        return 0
    top = S(total_supply) * (root_k - root_k_last) * S(numerator)
    bottom = root_k * S(denominator - numerator) + root_k_last * S(numerator)
    return (top // bottom).value


def optimal_swap_amount(amount_in: int, reserve_in: int, fee_bps: int = DEFAULT_FEE_BPS) -> int:
    """Portion of a single-asset deposit to swap so the rest deposits with no leftover.

    Positive root of fn*s^2 + (fd + fn)*R*s - fd*R*a = 0, where fn/fd is the
    input multiplier. For 30 bps this reduces to the well-known

        s = (sqrt(R * (a * 3988000 + R * 3988009)) - R * 1997) / 1994

    up to the scaling of the fee basis.
    """
    fee_numerator = BPS_DENOMINATOR - fee_bps
    fee_denominator = BPS_DENOMINATOR
    span = S(fee_denominator + fee_numerator)
    discriminant = S(reserve_in) * (
        S(reserve_in) * span * span + S(4 * fee_numerator * fee_denominator) * S(amount_in)
    )
    root = discriminant.sqrt()
    return ((root - S(reserve_in) * span) // S(2 * fee_numerator)).value


class ConstantProduct(AMM):
    """x * y = k pricing with a per-pair input fee in basis points.

    Unlike a pure estimator, invalid inputs raise the same error kinds a
    settlement would, so quotes and executions fail identically.
    """

    def get_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
        fee_bps: int = DEFAULT_FEE_BPS,
    ) -> int:
        """Calculate output amount using constant product formula.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pair
            reserve_out: Reserve of output token in pair
            fee_bps: Pair fee (default 30 for 0.3%)

        Returns:
            Output token amount

        Raises:
            InsufficientInputAmount: If amount_in is zero
            InsufficientLiquidity: If either reserve is empty
        """
        if amount_in <= 0:
            raise InsufficientInputAmount("Input amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Pair has no liquidity")

        amount_in_with_fee = S(amount_in) * S(BPS_DENOMINATOR - fee_bps)
        numerator = amount_in_with_fee * S(reserve_out)
        denominator = S(reserve_in) * S(BPS_DENOMINATOR) + amount_in_with_fee

        return (numerator // denominator).value

    def get_amount_in(
        self,
        amount_out: int,
        reserve_in: int,
        reserve_out: int,
        fee_bps: int = DEFAULT_FEE_BPS,
    ) -> int:
        """Calculate required input for desired output.

        Formula: amount_in = (res_in * out * 10000) / ((res_out - out) * fee) + 1

        Raises:
            InsufficientOutputAmount: If amount_out is zero
            InsufficientLiquidity: If a reserve is empty or amount_out >= reserve_out
        """
        if amount_out <= 0:
            raise InsufficientOutputAmount("Output amount must be positive")
        if reserve_in <= 0 or reserve_out <= 0:
            raise InsufficientLiquidity("Pair has no liquidity")
        if amount_out >= reserve_out:
            raise InsufficientLiquidity(f"Output {amount_out} exceeds reserve {reserve_out}")

        numerator = S(reserve_in) * S(amount_out) * S(BPS_DENOMINATOR)
        denominator = (S(reserve_out) - S(amount_out)) * S(BPS_DENOMINATOR - fee_bps)

        return ((numerator // denominator) + S(1)).value

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        """Amount of B equivalent to amount_a at the current reserve ratio (no fee).

        Raises:
            InsufficientInputAmount: If amount_a is zero
            InsufficientLiquidity: If either reserve is empty
        """
        if amount_a <= 0:
            raise InsufficientInputAmount("Quote amount must be positive")
        if reserve_a <= 0 or reserve_b <= 0:
            raise InsufficientLiquidity("Pair has no liquidity")
        return mul_div(amount_a, reserve_b, reserve_a)

    def simulate_swap(self, pair: Pair, token_in: str, amount_in: int) -> SwapResult:
        """Simulate an exact-input swap against a pair's current reserves."""
        reserve_in, reserve_out = pair.reserves_for(token_in)
        token_out = pair.other_token(token_in)
        amount_out = self.get_amount_out(
            amount_in, reserve_in, reserve_out, pair.config.fee_bps
        )
        return SwapResult(
            amount_in=amount_in,
            amount_out=amount_out,
            pair_address=pair.address,
            token_in=normalize_address(token_in),
            token_out=token_out,
        )

    def get_amounts_out(self, factory: Factory, amount_in: int, path: Sequence[str]) -> list[int]:
        """Chain get_amount_out along a path of assets.

        Returns:
            [amount_in, out_hop1, ..., out_final]

        Raises:
            InvalidPath: If the path has fewer than two assets or a hop has no pair
        """
        if len(path) < 2:
            raise InvalidPath("Path must contain at least two assets")
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            pair = _hop_pair(factory, token_in, token_out)
            reserve_in, reserve_out = pair.reserves_for(token_in)
            amounts.append(
                self.get_amount_out(amounts[-1], reserve_in, reserve_out, pair.config.fee_bps)
            )
        return amounts

    def get_amounts_in(self, factory: Factory, amount_out: int, path: Sequence[str]) -> list[int]:
        """Chain get_amount_in backwards along a path of assets.

        Returns:
            [in_first, ..., amount_out]

        Raises:
            InvalidPath: If the path has fewer than two assets or a hop has no pair
        """
        if len(path) < 2:
            raise InvalidPath("Path must contain at least two assets")
        amounts = [amount_out]
        for token_in, token_out in zip(reversed(path[:-1]), reversed(path[1:])):
            pair = _hop_pair(factory, token_in, token_out)
            reserve_in, reserve_out = pair.reserves_for(token_in)
            amounts.insert(
                0, self.get_amount_in(amounts[0], reserve_in, reserve_out, pair.config.fee_bps)
            )
        return amounts


def _hop_pair(factory: Factory, token_in: str, token_out: str) -> Pair:
    pair = factory.get_pair(token_in, token_out)
    if pair is None:
        raise InvalidPath(f"No pair for {token_in} -> {token_out}")
    return pair


# Singleton instance
constant_product = ConstantProduct()
