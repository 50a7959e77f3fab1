"""Base classes and value types shared by the AMM components."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Protocol, runtime_checkable


@dataclass
class SwapResult:
    """Result of simulating a swap through a pair."""

    amount_in: int
    amount_out: int
    pair_address: str
    token_in: str
    token_out: str


class AMM(ABC):
    """Abstract base class for AMM pricing curves.

    Implementations may extend the base method signatures with additional
    optional parameters. For example, ConstantProduct adds a fee_bps
    parameter to get_amount_out() and get_amount_in() to support pairs
    with different fee tiers.
    """

    @abstractmethod
    def get_amount_out(
        self,
        amount_in: int,
        reserve_in: int,
        reserve_out: int,
    ) -> int:
        """Calculate output amount for a given input.

        Args:
            amount_in: Input token amount
            reserve_in: Reserve of input token in pair
            reserve_out: Reserve of output token in pair

        Returns:
            Output token amount
        """
        ...

    @abstractmethod
    def get_amount_in(
        self,
        amount_out: int,
        reserve_in: int,
        reserve_out: int,
    ) -> int:
        """Calculate required input for a desired output.

        Args:
            amount_out: Desired output token amount
            reserve_in: Reserve of input token in pair
            reserve_out: Reserve of output token in pair

        Returns:
            Required input token amount
        """
        ...


@runtime_checkable
class AssetLike(Protocol):
    """The asset capability set pairs, routers and zaps depend on."""

    address: str

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, to: str, amount: int) -> bool: ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool: ...


@runtime_checkable
class FlashSwapCallee(Protocol):
    """Recipient of a swap with non-empty ``data``.

    Called after the outputs have been transferred and before the pair
    checks the invariant, so the callee can use the outputs and repay
    in either asset.
    """

    def on_flash_swap(
        self,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        data: bytes,
    ) -> None: ...


class SwapState(Enum):
    """Lifecycle of a swap's optimistic transfer."""

    PENDING = "pending"
    SETTLED = "settled"


@dataclass(frozen=True)
class SwapSettlement:
    """Two-phase record of one swap on one pair.

    A swap first exists as PENDING: its outputs have left the pair but still
    count toward the pair's effective balances. It becomes SETTLED only after
    the invariant check against authoritative post-callback state passes;
    a swap that fails the check never settles and the call reverts.
    """

    pair: str
    to: str
    amount0_out: int
    amount1_out: int
    reserve0: int
    reserve1: int
    amount0_in: int = 0
    amount1_in: int = 0
    state: SwapState = SwapState.PENDING

    @property
    def is_settled(self) -> bool:
        return self.state is SwapState.SETTLED

    def settle(self, amount0_in: int, amount1_in: int) -> SwapSettlement:
        """Return the settled copy of this record with the realized inputs."""
        if self.is_settled:
            raise ValueError("Swap is already settled")
        return replace(
            self,
            amount0_in=amount0_in,
            amount1_in=amount1_in,
            state=SwapState.SETTLED,
        )
