"""Liquidity and swap router.

The pair's settlement methods expect assets to be moved in before the call.
The router does that bookkeeping for a caller: it pulls the optimal amounts
through allowances, creates pairs on first deposit, chains swaps along a
path, and wraps or unwraps the native asset.

All entry points take the acting account as ``sender`` and a ``deadline``
checked against the chain clock.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from cpamm.amm.factory import Factory
from cpamm.amm.library import constant_product, sort_assets
from cpamm.amm.pair import Pair
from cpamm.chain import Chain, Contract, transactional
from cpamm.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAmount,
    InsufficientOutputAmount,
    InvalidPath,
)
from cpamm.models.types import normalize_address
from cpamm.tokens import ERC20, WrappedNative

logger = structlog.get_logger()


class Router(Contract):
    """Stateless front end over a factory's pairs."""

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

    # --- Liquidity ---

    @transactional
    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int, int]:
        """Deposit at the current ratio, creating the pair if needed.

        Returns:
            (amount_a, amount_b, liquidity)

        Raises:
            Expired: If the deadline has passed
            InsufficientAmount: If the optimal amount of an asset is below its minimum
        """
        self._ensure(deadline)
        amount_a, amount_b = self._add_liquidity(
            token_a, token_b, amount_a_desired, amount_b_desired, amount_a_min, amount_b_min
        )
        pair = self._pair(token_a, token_b)
        self._token(token_a).transfer_from(self.address, sender, pair.address, amount_a)
        self._token(token_b).transfer_from(self.address, sender, pair.address, amount_b)
        liquidity = pair.mint(to, sender=self.address)
        return amount_a, amount_b, liquidity

    @transactional
    def add_liquidity_native(
        self,
        token: str,
        amount_token_desired: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> tuple[int, int, int]:
        """Deposit a token against native balance, wrapping only what is used.

        Returns:
            (amount_token, amount_native, liquidity)
        """
        self._ensure(deadline)
        native = self.wrapped_native.address
        amount_token, amount_native = self._add_liquidity(
            token, native, amount_token_desired, value, amount_token_min, amount_native_min
        )
        pair = self._pair(token, native)
        self._token(token).transfer_from(self.address, sender, pair.address, amount_token)
        self._wrap(sender, amount_native)
        self.wrapped_native.transfer(self.address, pair.address, amount_native)
        liquidity = pair.mint(to, sender=self.address)
        return amount_token, amount_native, liquidity

    @transactional
    def remove_liquidity(
        self,
        token_a: str,
        token_b: str,
        liquidity: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Burn shares and pay both assets to ``to``.

        Returns:
            (amount_a, amount_b)

        Raises:
            InsufficientAmount: If either payout is below its minimum
        """
        self._ensure(deadline)
        pair = self._pair(token_a, token_b)
        pair.transfer_from(self.address, sender, pair.address, liquidity)
        amount0, amount1 = pair.burn(to, sender=self.address)
        token0, _ = sort_assets(token_a, token_b)
        if normalize_address(token_a) == token0:
            amount_a, amount_b = amount0, amount1
        else:
            amount_a, amount_b = amount1, amount0
        if amount_a < amount_a_min:
            raise InsufficientAmount(normalize_address(token_a))
        if amount_b < amount_b_min:
            raise InsufficientAmount(normalize_address(token_b))
        return amount_a, amount_b

    @transactional
    def remove_liquidity_native(
        self,
        token: str,
        liquidity: int,
        amount_token_min: int,
        amount_native_min: int,
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> tuple[int, int]:
        """Burn shares of a token/native pair, paying native balance unwrapped.

        Returns:
            (amount_token, amount_native)
        """
        amount_token, amount_native = self.remove_liquidity(
            token,
            self.wrapped_native.address,
            liquidity,
            amount_token_min,
            amount_native_min,
            self.address,
            deadline,
            sender=sender,
        )
        self._token(token).transfer(self.address, to, amount_token)
        self._unwrap(to, amount_native)
        return amount_token, amount_native

    # --- Swaps ---

    @transactional
    def swap_exact_input(
        self,
        amount_in: int,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Sell exactly ``amount_in`` of path[0] for at least ``amount_out_min`` of path[-1].

        Raises:
            InsufficientOutputAmount: If the final output is below the minimum
        """
        self._ensure(deadline)
        amounts = self.get_amounts_out(amount_in, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(
                f"Output {amounts[-1]} is below minimum {amount_out_min}"
            )
        first = self._pair(path[0], path[1])
        self._token(path[0]).transfer_from(self.address, sender, first.address, amounts[0])
        self._swap(amounts, path, to)
        return amounts

    @transactional
    def swap_exact_native_input(
        self,
        amount_out_min: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        *,
        sender: str,
        value: int,
    ) -> list[int]:
        """Sell exactly ``value`` native balance along a path starting at the wrapped token.

        Raises:
            InvalidPath: If path[0] is not the wrapped native token
        """
        self._ensure(deadline)
        if not path or normalize_address(path[0]) != self.wrapped_native.address:
            raise InvalidPath("Path must start with the wrapped native token")
        amounts = self.get_amounts_out(value, path)
        if amounts[-1] < amount_out_min:
            raise InsufficientOutputAmount(
                f"Output {amounts[-1]} is below minimum {amount_out_min}"
            )
        first = self._pair(path[0], path[1])
        self._wrap(sender, amounts[0])
        self.wrapped_native.transfer(self.address, first.address, amounts[0])
        self._swap(amounts, path, to)
        return amounts

    @transactional
    def swap_exact_output(
        self,
        amount_out: int,
        amount_in_max: int,
        path: Sequence[str],
        to: str,
        deadline: int,
        *,
        sender: str,
    ) -> list[int]:
        """Buy exactly ``amount_out`` of path[-1] for at most ``amount_in_max`` of path[0].

        Raises:
            ExcessiveInputAmount: If the required input exceeds the maximum
        """
        self._ensure(deadline)
        amounts = self.get_amounts_in(amount_out, path)
        if amounts[0] > amount_in_max:
            raise ExcessiveInputAmount(f"Input {amounts[0]} exceeds maximum {amount_in_max}")
        first = self._pair(path[0], path[1])
        self._token(path[0]).transfer_from(self.address, sender, first.address, amounts[0])
        self._swap(amounts, path, to)
        return amounts

    # --- Quotes ---

    def quote(self, amount_a: int, reserve_a: int, reserve_b: int) -> int:
        return constant_product.quote(amount_a, reserve_a, reserve_b)

    def get_amounts_out(self, amount_in: int, path: Sequence[str]) -> list[int]:
        return constant_product.get_amounts_out(self.factory, amount_in, path)

    def get_amounts_in(self, amount_out: int, path: Sequence[str]) -> list[int]:
        return constant_product.get_amounts_in(self.factory, amount_out, path)

    # --- Internals ---

    def _ensure(self, deadline: int) -> None:
        if deadline < self.chain.timestamp:
            raise Expired(f"Deadline {deadline} is before {self.chain.timestamp}")

    def _add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
    ) -> tuple[int, int]:
        pair = self.factory.get_pair(token_a, token_b)
        if pair is None:
            pair = self.factory.create_pair(token_a, token_b)
        reserve_a, reserve_b = pair.reserves_for(token_a)
        if reserve_a == 0 and reserve_b == 0:
            return amount_a_desired, amount_b_desired

        amount_b_optimal = constant_product.quote(amount_a_desired, reserve_a, reserve_b)
        if amount_b_optimal <= amount_b_desired:
            if amount_b_optimal < amount_b_min:
                raise InsufficientAmount(normalize_address(token_b))
            return amount_a_desired, amount_b_optimal

        amount_a_optimal = constant_product.quote(amount_b_desired, reserve_b, reserve_a)
        if amount_a_optimal < amount_a_min:
            raise InsufficientAmount(normalize_address(token_a))
        return amount_a_optimal, amount_b_desired

    def _swap(self, amounts: list[int], path: Sequence[str], to: str) -> None:
        """Settle each hop; every pair pays straight into the next one."""
        for i, (token_in, token_out) in enumerate(zip(path, path[1:])):
            token0, _ = sort_assets(token_in, token_out)
            amount_out = amounts[i + 1]
            if normalize_address(token_in) == token0:
                amount0_out, amount1_out = 0, amount_out
            else:
                amount0_out, amount1_out = amount_out, 0
            if i < len(path) - 2:
                recipient = self._pair(token_out, path[i + 2]).address
            else:
                recipient = to
            self._pair(token_in, token_out).swap(
                amount0_out, amount1_out, recipient, sender=self.address
            )
        logger.debug("route_executed", path=list(path), amount_in=amounts[0], amount_out=amounts[-1])

    def _pair(self, token_a: str, token_b: str) -> Pair:
        pair = self.factory.get_pair(token_a, token_b)
        if pair is None:
            raise InvalidPath(f"No pair for {token_a}/{token_b}")
        return pair

    def _token(self, token: str) -> ERC20:
        contract = self.chain.contract(token)
        if not isinstance(contract, ERC20):
            raise InvalidPath(f"{token} is not a token")
        return contract

    def _wrap(self, sender: str, amount: int) -> None:
        self.chain.transfer_native(sender, self.address, amount)
        self.wrapped_native.deposit(self.address, amount)

    def _unwrap(self, to: str, amount: int) -> None:
        self.wrapped_native.withdraw(self.address, amount)
        self.chain.transfer_native(self.address, to, amount)
