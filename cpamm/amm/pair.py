"""Constant-product liquidity pair.

A Pair holds two assets and issues fungible shares against them. Callers
move assets into the pair first and then call a settlement method; the pair
derives the economic effect from the difference between what it holds and
its recorded reserves:

- mint: deposit delta -> new shares
- burn: shares held by the pair -> pro-rata payout
- swap: optimistic payout, optional flash-swap callback, then invariant check
- skim / sync: reconcile balances and reserves

Swaps are two-phase. ``swap`` records a PENDING SwapSettlement before paying
out; while it is pending its outputs still count toward the pair's
effective balances, so settlement calls re-entering from the callback see a
consistent pair. The outer swap then settles against the reserves and
balances as they are after the callback. Any failure reverts the whole call
through the chain's atomic() block.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, cast

import structlog

from cpamm.amm.base import AssetLike, FlashSwapCallee, SwapSettlement
from cpamm.amm.library import protocol_fee_shares
from cpamm.chain import Chain, transactional
from cpamm.config import DEFAULT_PAIR_CONFIG, PairConfig
from cpamm.constants import BPS_DENOMINATOR, TIMESTAMP_MODULUS, ZERO_ADDRESS
from cpamm.errors import (
    AlreadyInitialized,
    Forbidden,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidPath,
    InvalidRecipient,
    K,
)
from cpamm.math import check_width, encode_uq112x112, mul_div, uq112x112_div, wrapping_add
from cpamm.models.types import normalize_address
from cpamm.safe_int import S
from cpamm.tokens import ERC20

if TYPE_CHECKING:
    from cpamm.amm.factory import Factory

logger = structlog.get_logger()


class Pair(ERC20):
    """Two-asset pool and its share token."""

    _STATE: ClassVar[tuple[str, ...]] = ERC20._STATE + (
        "token0",
        "token1",
        "reserve0",
        "reserve1",
        "block_timestamp_last",
        "price0_cumulative_last",
        "price1_cumulative_last",
        "k_last",
        "_pending",
    )

    def __init__(
        self,
        chain: Chain,
        factory: str,
        config: PairConfig = DEFAULT_PAIR_CONFIG,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, "CPAMM LP", "CPAMM-LP", address=address)
        self.factory = normalize_address(factory)
        self.config = config
        self.token0 = ZERO_ADDRESS
        self.token1 = ZERO_ADDRESS
        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        self.k_last = 0
        self._pending: list[SwapSettlement] = []

    # --- Views ---

    def get_reserves(self) -> tuple[int, int, int]:
        """Return (reserve0, reserve1, block_timestamp_last)."""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    def reserves_for(self, token_in: str) -> tuple[int, int]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        token_in = normalize_address(token_in)
        if token_in == self.token0:
            return self.reserve0, self.reserve1
        if token_in == self.token1:
            return self.reserve1, self.reserve0
        raise InvalidPath(f"Token {token_in} not in pair {self.address}")

    def other_token(self, token: str) -> str:
        token = normalize_address(token)
        if token == self.token0:
            return self.token1
        if token == self.token1:
            return self.token0
        raise InvalidPath(f"Token {token} not in pair {self.address}")

    def effective_balances(self) -> tuple[int, int]:
        """Effective balances: held tokens plus outputs of swaps still pending."""
        balance0 = self._asset(self.token0).balance_of(self.address)
        balance1 = self._asset(self.token1).balance_of(self.address)
        for pending in self._pending:
            balance0 += pending.amount0_out
            balance1 += pending.amount1_out
        return balance0, balance1

    @property
    def pending_swaps(self) -> tuple[SwapSettlement, ...]:
        """Swaps currently between payout and settlement (innermost last)."""
        return tuple(self._pending)

    def preview_burn(self, liquidity: int) -> tuple[int, int]:
        """Amounts a burn of ``liquidity`` shares would pay out right now.

        Accounts for the protocol-fee shares the burn would mint first.

        Raises:
            InsufficientLiquidityBurned: If the pair has no shares outstanding
        """
        balance0, balance1 = self.effective_balances()
        total_supply = self.total_supply + self._pending_fee_shares(self._fee_to())
        if total_supply == 0:
            raise InsufficientLiquidityBurned("Pair has no shares outstanding")
        return (
            mul_div(liquidity, balance0, total_supply),
            mul_div(liquidity, balance1, total_supply),
        )

    # --- Settlement ---

    @transactional
    def initialize(self, caller: str, token0: str, token1: str) -> None:
        """Set the pair's assets. Only the creating factory may call this, once.

        Raises:
            Forbidden: If caller is not the factory
            AlreadyInitialized: If the assets were already set
        """
        if normalize_address(caller) != self.factory:
            raise Forbidden(f"Only the factory may initialize pair {self.address}")
        if self.token0 != ZERO_ADDRESS:
            raise AlreadyInitialized(f"Pair {self.address} already initialized")
        self.token0 = normalize_address(token0)
        self.token1 = normalize_address(token1)

    @transactional
    def mint(self, to: str, *, sender: str | None = None) -> int:
        """Issue shares for the assets deposited since the last settlement.

        The first mint issues sqrt(amount0 * amount1) - MINIMUM_LIQUIDITY and
        locks MINIMUM_LIQUIDITY in the zero address; later mints issue in
        proportion to the scarcer side of the deposit.

        Returns:
            Shares minted to ``to``

        Raises:
            InsufficientLiquidityMinted: If the deposit issues no shares
            Overflow: If a new reserve exceeds its width
        """
        to = normalize_address(to)
        reserve0, reserve1, _ = self.get_reserves()
        balance0, balance1 = self.effective_balances()
        amount0 = (S(balance0) - S(reserve0)).value
        amount1 = (S(balance1) - S(reserve1)).value

        fee_on = self._mint_fee(reserve0, reserve1, self._fee_to())
        total_supply = self.total_supply
        minimum = self.config.minimum_liquidity
        if total_supply == 0:
            liquidity = (S(amount0) * S(amount1)).sqrt().value - minimum
            if liquidity <= 0:
                raise InsufficientLiquidityMinted(
                    f"Initial deposit {amount0}/{amount1} is below the minimum liquidity"
                )
            # Permanently lock the first MINIMUM_LIQUIDITY shares
            self._mint(ZERO_ADDRESS, minimum)
        else:
            liquidity = min(
                mul_div(amount0, total_supply, reserve0),
                mul_div(amount1, total_supply, reserve1),
            )
        if liquidity <= 0:
            raise InsufficientLiquidityMinted(
                f"Deposit {amount0}/{amount1} issues no shares"
            )
        self._mint(to, liquidity)

        self._update(balance0, balance1, reserve0, reserve1)
        if fee_on:
            self.k_last = self.reserve0 * self.reserve1
        self.emit("Mint", sender=sender or to, amount0=amount0, amount1=amount1)
        logger.debug(
            "liquidity_minted",
            pair=self.address,
            to=to,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
        )
        return liquidity

    @transactional
    def burn(self, to: str, *, sender: str | None = None) -> tuple[int, int]:
        """Redeem the shares the pair holds for a pro-rata share of its balances.

        Returns:
            (amount0, amount1) paid to ``to``

        Raises:
            InsufficientLiquidityBurned: If either payout would be zero
            InsufficientLiquidity: If the payout needs outputs of a pending swap
        """
        to = normalize_address(to)
        reserve0, reserve1, _ = self.get_reserves()
        balance0, balance1 = self.effective_balances()
        liquidity = self.balance_of(self.address)

        fee_on = self._mint_fee(reserve0, reserve1, self._fee_to())
        total_supply = self.total_supply
        if total_supply == 0:
            raise InsufficientLiquidityBurned("Pair has no shares outstanding")
        amount0 = mul_div(liquidity, balance0, total_supply)
        amount1 = mul_div(liquidity, balance1, total_supply)
        if amount0 <= 0 or amount1 <= 0:
            raise InsufficientLiquidityBurned(
                f"Burning {liquidity} shares pays {amount0}/{amount1}"
            )
        self._burn(self.address, liquidity)
        self._pay_out(to, amount0, amount1)

        balance0, balance1 = self.effective_balances()
        self._update(balance0, balance1, reserve0, reserve1)
        if fee_on:
            self.k_last = self.reserve0 * self.reserve1
        self.emit("Burn", sender=sender or to, amount0=amount0, amount1=amount1, to=to)
        logger.debug(
            "liquidity_burned",
            pair=self.address,
            to=to,
            liquidity=liquidity,
            amount0=amount0,
            amount1=amount1,
        )
        return amount0, amount1

    @transactional
    def swap(
        self,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
        *,
        sender: str | None = None,
    ) -> SwapSettlement:
        """Pay out optimistically, run the callback, then settle against final balances.

        Inputs are whatever the pair holds beyond ``reserve - amount_out``
        once the callback returns. The fee-adjusted balances must satisfy

            (b0 * 10000 - in0 * fee) * (b1 * 10000 - in1 * fee) >= r0 * r1 * 10000^2

        Args:
            amount0_out: token0 to send to ``to``
            amount1_out: token1 to send to ``to``
            to: Recipient (and flash-swap callee when ``data`` is non-empty)
            data: Opaque payload; non-empty triggers ``to.on_flash_swap``
            sender: Account reported in the Swap event and to the callback

        Returns:
            The SETTLED swap record with realized inputs

        Raises:
            InsufficientOutputAmount: If no output is requested
            InsufficientLiquidity: If an output is not below its reserve
            InvalidRecipient: If ``to`` is one of the pair's assets or
                cannot receive a flash swap
            InsufficientInputAmount: If nothing was paid in
            K: If the invariant decreased
        """
        if amount0_out < 0 or amount1_out < 0 or (amount0_out == 0 and amount1_out == 0):
            raise InsufficientOutputAmount(
                f"Invalid swap outputs {amount0_out}/{amount1_out}"
            )
        reserve0, reserve1, _ = self.get_reserves()
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise InsufficientLiquidity(
                f"Outputs {amount0_out}/{amount1_out} exceed reserves {reserve0}/{reserve1}"
            )
        to = normalize_address(to)
        if to in (self.token0, self.token1):
            raise InvalidRecipient(f"Swap recipient {to} is a pair asset")
        sender = normalize_address(sender) if sender is not None else to

        pending = SwapSettlement(
            pair=self.address,
            to=to,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            reserve0=reserve0,
            reserve1=reserve1,
        )
        self._pending.append(pending)

        self._pay_out(to, amount0_out, amount1_out)
        if data:
            callee = self.chain.contract(to) if self.chain.has_contract(to) else None
            if not isinstance(callee, FlashSwapCallee):
                raise InvalidRecipient(f"Swap recipient {to} cannot receive a flash swap")
            callee.on_flash_swap(sender, amount0_out, amount1_out, data)

        popped = self._pending.pop()
        if popped != pending:
            raise RuntimeError(f"Pending swap stack corrupted on pair {self.address}")

        # Authoritative state after the callback, never the values cached above
        reserve0, reserve1, _ = self.get_reserves()
        if amount0_out >= reserve0 or amount1_out >= reserve1:
            raise InsufficientLiquidity(
                f"Outputs {amount0_out}/{amount1_out} exceed reserves {reserve0}/{reserve1}"
            )
        balance0, balance1 = self.effective_balances()
        expected0 = reserve0 - amount0_out
        expected1 = reserve1 - amount1_out
        amount0_in = balance0 - expected0 if balance0 > expected0 else 0
        amount1_in = balance1 - expected1 if balance1 > expected1 else 0
        if amount0_in == 0 and amount1_in == 0:
            raise InsufficientInputAmount(f"Swap on {self.address} received no input")

        fee_bps = self.config.fee_bps
        adjusted0 = S(balance0) * S(BPS_DENOMINATOR) - S(amount0_in) * S(fee_bps)
        adjusted1 = S(balance1) * S(BPS_DENOMINATOR) - S(amount1_in) * S(fee_bps)
        if adjusted0 * adjusted1 < S(reserve0) * S(reserve1) * S(BPS_DENOMINATOR**2):
            raise K(f"Invariant decreased on {self.address}")

        self._update(balance0, balance1, reserve0, reserve1)
        settled = pending.settle(amount0_in, amount1_in)
        self.emit(
            "Swap",
            sender=sender,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            to=to,
        )
        logger.debug(
            "swap_settled",
            pair=self.address,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            amount0_out=amount0_out,
            amount1_out=amount1_out,
            flash=bool(data),
        )
        return settled

    @transactional
    def skim(self, to: str) -> tuple[int, int]:
        """Send any balance above the reserves to ``to``. Reserves are untouched."""
        to = normalize_address(to)
        balance0, balance1 = self.effective_balances()
        excess0 = max(balance0 - self.reserve0, 0)
        excess1 = max(balance1 - self.reserve1, 0)
        self._pay_out(to, excess0, excess1)
        return excess0, excess1

    @transactional
    def sync(self) -> None:
        """Force reserves to match balances.

        Raises:
            Overflow: If a balance exceeds the reserve width
        """
        balance0, balance1 = self.effective_balances()
        self._update(balance0, balance1, self.reserve0, self.reserve1)

    # --- Internals ---

    def _asset(self, token: str) -> AssetLike:
        return cast(AssetLike, self.chain.contract(token))

    def _pay_out(self, to: str, amount0: int, amount1: int) -> None:
        """Transfer out of the assets the pair actually holds.

        Effective balances count outputs of pending swaps that have already
        left the pair; those cannot be paid out a second time.

        Raises:
            InsufficientLiquidity: If a payment exceeds the held balance
        """
        asset0, asset1 = self._asset(self.token0), self._asset(self.token1)
        held0 = asset0.balance_of(self.address)
        held1 = asset1.balance_of(self.address)
        if amount0 > held0 or amount1 > held1:
            raise InsufficientLiquidity(
                f"Payout {amount0}/{amount1} exceeds held balances {held0}/{held1}"
            )
        if amount0 > 0:
            asset0.transfer(self.address, to, amount0)
        if amount1 > 0:
            asset1.transfer(self.address, to, amount1)

    def _fee_to(self) -> str | None:
        factory = cast("Factory", self.chain.contract(self.factory))
        return factory.fee_to

    def _pending_fee_shares(self, fee_to: str | None) -> int:
        if fee_to is None or self.k_last == 0:
            return 0
        return protocol_fee_shares(
            self.total_supply,
            self.reserve0 * self.reserve1,
            self.k_last,
            self.config.protocol_fee_numerator,
            self.config.protocol_fee_denominator,
        )

    def _mint_fee(self, reserve0: int, reserve1: int, fee_to: str | None) -> bool:
        """Mint the protocol's cut of fee growth since k_last to ``fee_to``.

        Returns:
            Whether the protocol fee is on
        """
        fee_on = fee_to is not None
        if fee_on:
            liquidity = protocol_fee_shares(
                self.total_supply,
                reserve0 * reserve1,
                self.k_last,
                self.config.protocol_fee_numerator,
                self.config.protocol_fee_denominator,
            )
            if liquidity > 0:
                self._mint(cast(str, fee_to), liquidity)
                logger.info(
                    "protocol_fee_minted",
                    pair=self.address,
                    fee_to=fee_to,
                    liquidity=liquidity,
                )
        elif self.k_last != 0:
            self.k_last = 0
        return fee_on

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Record new reserves and advance the price accumulators.

        Accumulators advance by the previous reserves' price times the
        seconds elapsed, once per timestamp, and wrap at 2^256.
        """
        bits = self.config.reserve_bits
        check_width(balance0, bits)
        check_width(balance1, bits)
        block_timestamp = self.chain.timestamp % TIMESTAMP_MODULUS
        time_elapsed = (block_timestamp - self.block_timestamp_last) % TIMESTAMP_MODULUS
        if time_elapsed > 0 and reserve0 != 0 and reserve1 != 0:
            self.price0_cumulative_last = wrapping_add(
                self.price0_cumulative_last,
                uq112x112_div(encode_uq112x112(reserve1), reserve0) * time_elapsed,
            )
            self.price1_cumulative_last = wrapping_add(
                self.price1_cumulative_last,
                uq112x112_div(encode_uq112x112(reserve0), reserve1) * time_elapsed,
            )
        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = block_timestamp
        self.emit("Sync", reserve0=balance0, reserve1=balance1)
