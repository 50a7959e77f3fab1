"""Single-asset liquidity entry and exit.

zap_in splits one asset so that after swapping part of it the two halves
deposit at the pair's ratio with nothing left over, then mints shares.
zap_out burns shares and swaps the unwanted side, so the caller receives a
single asset.

The split is the positive root of the quadratic that equates the remaining
input to the post-swap deposit ratio; see optimal_swap_amount.
"""

from __future__ import annotations

from typing import NamedTuple

import structlog

from cpamm.amm.factory import Factory
from cpamm.amm.library import constant_product, optimal_swap_amount
from cpamm.amm.pair import Pair
from cpamm.chain import Chain, Contract, transactional
from cpamm.constants import DEFAULT_FEE_BPS
from cpamm.errors import Expired, InsufficientInput, InvalidPath, SlippageExceeded
from cpamm.models.types import normalize_address
from cpamm.tokens import ERC20, WrappedNative

logger = structlog.get_logger()


class SwapAmounts(NamedTuple):
    """The swap leg of a zap: how much input to sell and what it buys."""

    swap_amount: int
    amount_out: int


def split_for_zap(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int = DEFAULT_FEE_BPS,
) -> SwapAmounts:
    """Swap leg for zapping ``amount_in`` into a pair with these reserves.

    Raises:
        InsufficientInput: If amount_in is too small to split
        InsufficientLiquidity: If the pair is empty
    """
    swap_amount = optimal_swap_amount(amount_in, reserve_in, fee_bps)
    if swap_amount <= 0 or swap_amount >= amount_in:
        raise InsufficientInput(f"Cannot split {amount_in} into a swap and a deposit")
    amount_out = constant_product.get_amount_out(swap_amount, reserve_in, reserve_out, fee_bps)
    if amount_out <= 0:
        raise InsufficientInput(f"Swapping {swap_amount} buys nothing")
    return SwapAmounts(swap_amount=swap_amount, amount_out=amount_out)


class Zap(Contract):
    """Swap-then-deposit and burn-then-swap in one atomic call."""

    def __init__(
        self,
        chain: Chain,
        factory: Factory,
        wrapped_native: WrappedNative,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self.factory = factory
        self.wrapped_native = wrapped_native

    # --- Calculators ---

    def calculate_swap_amounts(
        self,
        asset_in: str,
        asset_out: str,
        pair: str,
        amount_in: int,
    ) -> SwapAmounts:
        """Split of ``amount_in`` for a zap into ``pair``.

        Returns:
            SwapAmounts(swap_amount, amount_out): sell swap_amount of asset_in
            for amount_out of asset_out, using the pair's exact swap formula

        Raises:
            InvalidPath: If the pair does not hold exactly these two assets
            InsufficientInput: If amount_in is too small to split
        """
        target = self._pair(pair, asset_in, asset_out)
        reserve_in, reserve_out = target.reserves_for(asset_in)
        return split_for_zap(amount_in, reserve_in, reserve_out, target.config.fee_bps)

    def calculate_zap_out_amount(
        self,
        asset_in: str,
        asset_out: str,
        pair: str,
        liquidity: int,
    ) -> int:
        """Total ``asset_out`` received for burning ``liquidity`` and selling the asset_in leg.

        Exact: it replays the burn (including any protocol-fee mint) and the
        swap against the reserves the burn leaves behind.
        """
        target = self._pair(pair, asset_in, asset_out)
        amount0, amount1 = target.preview_burn(liquidity)
        balance0, balance1 = target.effective_balances()
        if normalize_address(asset_in) == target.token0:
            leg_in, leg_out = amount0, amount1
            reserve_in, reserve_out = balance0 - amount0, balance1 - amount1
        else:
            leg_in, leg_out = amount1, amount0
            reserve_in, reserve_out = balance1 - amount1, balance0 - amount0
        swapped = constant_product.get_amount_out(
            leg_in, reserve_in, reserve_out, target.config.fee_bps
        )
        return leg_out + swapped

    # --- Zap in ---

    @transactional
    def zap_in(
        self,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        pair: str,
        to: str,
        min_shares: int,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Turn ``amount_in`` of one asset into shares of ``pair``.

        Returns:
            Shares transferred to ``to``

        Raises:
            Expired: If the deadline has passed
            SlippageExceeded: If fewer than min_shares are minted
        """
        self._ensure(deadline)
        target = self._pair(pair, asset_in, asset_out)
        self._token(asset_in).transfer_from(self.address, sender, self.address, amount_in)
        return self._zap_in(target, asset_in, asset_out, amount_in, to, min_shares)

    @transactional
    def zap_in_native(
        self,
        asset_out: str,
        pair: str,
        to: str,
        min_shares: int,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> int:
        """zap_in funded with native balance, wrapped first."""
        self._ensure(deadline)
        native = self.wrapped_native.address
        target = self._pair(pair, native, asset_out)
        self.chain.transfer_native(sender, self.address, value)
        self.wrapped_native.deposit(self.address, value)
        return self._zap_in(target, native, asset_out, value, to, min_shares)

    # --- Zap out ---

    @transactional
    def zap_out(
        self,
        asset_in: str,
        asset_out: str,
        liquidity: int,
        pair: str,
        to: str,
        min_out: int,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """Burn ``liquidity`` and receive only ``asset_out``.

        Returns:
            Amount of asset_out paid to ``to``

        Raises:
            Expired: If the deadline has passed
            SlippageExceeded: If the payout is below min_out
        """
        self._ensure(deadline)
        target = self._pair(pair, asset_in, asset_out)
        amount_out = self._zap_out(target, asset_in, asset_out, liquidity, sender, min_out)
        self._token(asset_out).transfer(self.address, to, amount_out)
        return amount_out

    @transactional
    def zap_out_native(
        self,
        asset_in: str,
        liquidity: int,
        pair: str,
        to: str,
        min_out: int,
        deadline: int,
        *,
        sender: str,
    ) -> int:
        """zap_out into the wrapped native token, paid out as native balance."""
        self._ensure(deadline)
        native = self.wrapped_native.address
        target = self._pair(pair, asset_in, native)
        amount_out = self._zap_out(target, asset_in, native, liquidity, sender, min_out)
        self.wrapped_native.withdraw(self.address, amount_out)
        self.chain.transfer_native(self.address, to, amount_out)
        return amount_out

    # --- Internals ---

    def _zap_in(
        self,
        pair: Pair,
        asset_in: str,
        asset_out: str,
        amount_in: int,
        to: str,
        min_shares: int,
    ) -> int:
        """Swap and deposit ``amount_in`` already held by the zap."""
        asset_in, asset_out = normalize_address(asset_in), normalize_address(asset_out)
        token_in, token_out = self._token(asset_in), self._token(asset_out)
        swap_amount, amount_out = self.calculate_swap_amounts(
            asset_in, asset_out, pair.address, amount_in
        )

        token_in.transfer(self.address, pair.address, swap_amount)
        if asset_in == pair.token0:
            pair.swap(0, amount_out, self.address, sender=self.address)
        else:
            pair.swap(amount_out, 0, self.address, sender=self.address)

        # Rounding can leave the two sides off-ratio by a unit; deposit the
        # matching amounts and return the rest
        remaining = amount_in - swap_amount
        reserve_in, reserve_out = pair.reserves_for(asset_in)
        deposit_in = remaining
        deposit_out = constant_product.quote(remaining, reserve_in, reserve_out)
        if deposit_out > amount_out:
            deposit_out = amount_out
            deposit_in = constant_product.quote(amount_out, reserve_out, reserve_in)

        token_in.transfer(self.address, pair.address, deposit_in)
        token_out.transfer(self.address, pair.address, deposit_out)
        shares = pair.mint(self.address, sender=self.address)
        if shares < min_shares:
            raise SlippageExceeded(f"Minted {shares} shares, minimum is {min_shares}")
        pair.transfer(self.address, to, shares)

        self._refund(token_in, to, remaining - deposit_in)
        self._refund(token_out, to, amount_out - deposit_out)
        logger.info(
            "zap_in",
            pair=pair.address,
            asset_in=asset_in,
            amount_in=amount_in,
            swap_amount=swap_amount,
            shares=shares,
        )
        return shares

    def _zap_out(
        self,
        pair: Pair,
        asset_in: str,
        asset_out: str,
        liquidity: int,
        sender: str,
        min_out: int,
    ) -> int:
        """Burn and swap; the resulting asset_out stays with the zap."""
        asset_in = normalize_address(asset_in)
        pair.transfer_from(self.address, sender, pair.address, liquidity)
        amount0, amount1 = pair.burn(self.address, sender=self.address)
        if asset_in == pair.token0:
            leg_in, leg_out = amount0, amount1
        else:
            leg_in, leg_out = amount1, amount0

        reserve_in, reserve_out = pair.reserves_for(asset_in)
        swapped = constant_product.get_amount_out(
            leg_in, reserve_in, reserve_out, pair.config.fee_bps
        )
        self._token(asset_in).transfer(self.address, pair.address, leg_in)
        if asset_in == pair.token0:
            pair.swap(0, swapped, self.address, sender=self.address)
        else:
            pair.swap(swapped, 0, self.address, sender=self.address)

        amount_out = leg_out + swapped
        if amount_out < min_out:
            raise SlippageExceeded(f"Zap out pays {amount_out}, minimum is {min_out}")
        logger.info(
            "zap_out",
            pair=pair.address,
            asset_out=normalize_address(asset_out),
            liquidity=liquidity,
            amount_out=amount_out,
        )
        return amount_out

    def _refund(self, token: ERC20, to: str, amount: int) -> None:
        if amount > 0:
            token.transfer(self.address, to, amount)

    def _ensure(self, deadline: int) -> None:
        if deadline < self.chain.timestamp:
            raise Expired(f"Deadline {deadline} is before {self.chain.timestamp}")

    def _pair(self, pair: str, asset_a: str, asset_b: str) -> Pair:
        target = self.factory.get_pair(asset_a, asset_b)
        if target is None or target.address != normalize_address(pair):
            raise InvalidPath(f"{pair} is not the pair for {asset_a}/{asset_b}")
        return target

    def _token(self, token: str) -> ERC20:
        contract = self.chain.contract(token)
        if not isinstance(contract, ERC20):
            raise InvalidPath(f"{token} is not a token")
        return contract
