"""Pytest configuration and fixtures."""

from collections.abc import Callable

import pytest

from cpamm import Chain, Factory, Pair, Router, Zap
from cpamm.chain import Contract
from cpamm.tokens import Token, WrappedNative
from tests.helpers import WALLET, deploy_tokens, pair_tokens


@pytest.fixture
def chain() -> Chain:
    """Fresh chain at the default genesis timestamp."""
    return Chain()


@pytest.fixture
def tokens(chain) -> list[Token]:
    """Two test tokens sorted by address, all supply held by WALLET."""
    return deploy_tokens(chain)


@pytest.fixture
def token0(tokens) -> Token:
    return tokens[0]


@pytest.fixture
def token1(tokens) -> Token:
    return tokens[1]


@pytest.fixture
def factory(chain) -> Factory:
    """Factory with WALLET as fee setter and the protocol fee off."""
    return Factory(chain, fee_to_setter=WALLET)


@pytest.fixture
def pair(factory, token0, token1) -> Pair:
    """Empty token0/token1 pair."""
    return factory.create_pair(token0.address, token1.address)


@pytest.fixture
def wrapped_native(chain) -> WrappedNative:
    return WrappedNative(chain)


@pytest.fixture
def router(chain, factory, wrapped_native) -> Router:
    return Router(chain, factory, wrapped_native)


@pytest.fixture
def zap(chain, factory, wrapped_native) -> Zap:
    return Zap(chain, factory, wrapped_native)


# =============================================================================
# Flash-swap callee
# =============================================================================


class FlashBorrower(Contract):
    """Flash-swap recipient that runs an optional action, then repays.

    Records every callback in ``calls`` (rolled back with the chain) and the
    pair's pending swaps as seen from inside the most recent callback.
    """

    _STATE = ("calls",)

    def __init__(
        self,
        chain: Chain,
        pair: Pair,
        repay0: int = 0,
        repay1: int = 0,
        action: Callable[["FlashBorrower"], None] | None = None,
    ) -> None:
        super().__init__(chain)
        self.pair = pair
        self.repay0 = repay0
        self.repay1 = repay1
        self.action = action
        self.calls: list[tuple[str, int, int, bytes]] = []
        self.pending_seen: tuple = ()

    def on_flash_swap(self, sender: str, amount0_out: int, amount1_out: int, data: bytes) -> None:
        self.calls.append((sender, amount0_out, amount1_out, data))
        self.pending_seen = self.pair.pending_swaps
        if self.action is not None:
            self.action(self)
        token0, token1 = pair_tokens(self.pair)
        if self.repay0:
            token0.transfer(self.address, self.pair.address, self.repay0)
        if self.repay1:
            token1.transfer(self.address, self.pair.address, self.repay1)


@pytest.fixture
def make_borrower(chain, pair) -> Callable[..., FlashBorrower]:
    """Build a FlashBorrower against the pair fixture."""

    def _make(**kwargs) -> FlashBorrower:
        return FlashBorrower(chain, pair, **kwargs)

    return _make
