"""Tests for the liquidity and swap router."""

import pytest

from cpamm.constants import MINIMUM_LIQUIDITY, UINT256_MAX
from cpamm.errors import (
    ExcessiveInputAmount,
    Expired,
    InsufficientAllowance,
    InsufficientAmount,
    InsufficientOutputAmount,
    InvalidPath,
)
from tests.helpers import DEADLINE, INITIAL_SUPPLY, WALLET, add_liquidity, deploy_token, expand_to_18


@pytest.fixture
def approved(router, token0, token1):
    """WALLET has approved the router for both tokens."""
    token0.approve(WALLET, router.address, UINT256_MAX)
    token1.approve(WALLET, router.address, UINT256_MAX)


@pytest.fixture
def funded(chain):
    """WALLET holds native balance."""
    chain.fund(WALLET, expand_to_18(100))


class TestAddLiquidity:
    """Tests for Router.add_liquidity."""

    def test_creates_pair_and_mints(self, router, factory, token0, token1, approved):
        """The first deposit creates the pair and uses the desired amounts."""
        amount_a, amount_b, liquidity = router.add_liquidity(
            token0.address,
            token1.address,
            expand_to_18(1),
            expand_to_18(4),
            0,
            0,
            WALLET,
            DEADLINE,
            sender=WALLET,
        )

        pair = factory.get_pair(token0.address, token1.address)
        assert pair is not None
        assert (amount_a, amount_b) == (expand_to_18(1), expand_to_18(4))
        assert liquidity == expand_to_18(2) - MINIMUM_LIQUIDITY
        assert pair.balance_of(WALLET) == liquidity
        assert token0.balance_of(WALLET) == INITIAL_SUPPLY - expand_to_18(1)
        assert token0.allowance(WALLET, router.address) == UINT256_MAX

    @pytest.mark.parametrize(
        "desired_a,desired_b",
        [(expand_to_18(1), expand_to_18(10)), (expand_to_18(10), expand_to_18(4))],
    )
    def test_deposits_at_current_ratio(self, router, pair, token0, token1, approved, desired_a, desired_b):
        """Later deposits are cut down to the pool ratio on either side."""
        add_liquidity(pair, expand_to_18(1), expand_to_18(4))
        amount_a, amount_b, _ = router.add_liquidity(
            token0.address, token1.address, desired_a, desired_b, 0, 0, WALLET, DEADLINE, sender=WALLET
        )
        assert (amount_a, amount_b) == (expand_to_18(1), expand_to_18(4))

    def test_argument_order_is_preserved(self, router, pair, token0, token1, approved):
        """Amounts come back in the caller's asset order, not the pair's."""
        add_liquidity(pair, expand_to_18(1), expand_to_18(4))
        amount_a, amount_b, _ = router.add_liquidity(
            token1.address, token0.address, expand_to_18(4), expand_to_18(5), 0, 0, WALLET, DEADLINE, sender=WALLET
        )
        assert (amount_a, amount_b) == (expand_to_18(4), expand_to_18(1))

    def test_minimum_not_met(self, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(1), expand_to_18(4))
        with pytest.raises(InsufficientAmount) as exc_info:
            router.add_liquidity(
                token0.address,
                token1.address,
                expand_to_18(1),
                expand_to_18(10),
                0,
                expand_to_18(5),
                WALLET,
                DEADLINE,
                sender=WALLET,
            )
        assert exc_info.value.asset == token1.address

    def test_expired(self, chain, router, token0, token1, approved):
        with pytest.raises(Expired):
            router.add_liquidity(
                token0.address, token1.address, 1, 1, 0, 0, WALLET, chain.timestamp - 1, sender=WALLET
            )

    def test_without_allowance(self, router, factory, token0, token1):
        """A failed pull reverts the pair creation too."""
        with pytest.raises(InsufficientAllowance):
            router.add_liquidity(
                token0.address, token1.address, 1, 1, 0, 0, WALLET, DEADLINE, sender=WALLET
            )
        assert factory.get_pair(token0.address, token1.address) is None


class TestAddLiquidityNative:
    """Tests for Router.add_liquidity_native."""

    def test_wraps_native(self, chain, router, factory, wrapped_native, token0, approved, funded):
        amount_token, amount_native, liquidity = router.add_liquidity_native(
            token0.address,
            expand_to_18(1),
            0,
            0,
            WALLET,
            DEADLINE,
            sender=WALLET,
            value=expand_to_18(4),
        )

        pair = factory.get_pair(token0.address, wrapped_native.address)
        assert (amount_token, amount_native) == (expand_to_18(1), expand_to_18(4))
        assert liquidity == expand_to_18(2) - MINIMUM_LIQUIDITY
        assert wrapped_native.balance_of(pair.address) == expand_to_18(4)
        assert chain.native_balance_of(WALLET) == expand_to_18(96)
        assert chain.native_balance_of(wrapped_native.address) == expand_to_18(4)
        assert chain.native_balance_of(router.address) == 0

    def test_only_used_native_leaves_sender(self, chain, router, token0, approved, funded):
        """Excess native value above the pool ratio is never taken."""
        args = (token0.address, expand_to_18(1), 0, 0, WALLET, DEADLINE)
        router.add_liquidity_native(*args, sender=WALLET, value=expand_to_18(4))
        _, amount_native, _ = router.add_liquidity_native(*args, sender=WALLET, value=expand_to_18(5))

        assert amount_native == expand_to_18(4)
        assert chain.native_balance_of(WALLET) == expand_to_18(92)


class TestRemoveLiquidity:
    """Tests for Router.remove_liquidity and remove_liquidity_native."""

    def test_remove_liquidity(self, router, factory, token0, token1, approved):
        _, _, liquidity = router.add_liquidity(
            token0.address, token1.address, expand_to_18(1), expand_to_18(4), 0, 0, WALLET, DEADLINE, sender=WALLET
        )
        pair = factory.get_pair(token0.address, token1.address)
        pair.approve(WALLET, router.address, UINT256_MAX)

        amounts = router.remove_liquidity(
            token0.address, token1.address, liquidity, 0, 0, WALLET, DEADLINE, sender=WALLET
        )

        assert amounts == (expand_to_18(1) - 500, expand_to_18(4) - 2000)
        assert pair.balance_of(WALLET) == 0
        assert pair.total_supply == MINIMUM_LIQUIDITY
        assert token0.balance_of(WALLET) == INITIAL_SUPPLY - 500
        assert token1.balance_of(WALLET) == INITIAL_SUPPLY - 2000

    def test_reverse_order(self, router, factory, token0, token1, approved):
        _, _, liquidity = router.add_liquidity(
            token0.address, token1.address, expand_to_18(1), expand_to_18(4), 0, 0, WALLET, DEADLINE, sender=WALLET
        )
        factory.get_pair(token0.address, token1.address).approve(WALLET, router.address, UINT256_MAX)

        amounts = router.remove_liquidity(
            token1.address, token0.address, liquidity, 0, 0, WALLET, DEADLINE, sender=WALLET
        )

        assert amounts == (expand_to_18(4) - 2000, expand_to_18(1) - 500)

    def test_minimum_not_met_reverts(self, router, factory, token0, token1, approved):
        _, _, liquidity = router.add_liquidity(
            token0.address, token1.address, expand_to_18(1), expand_to_18(4), 0, 0, WALLET, DEADLINE, sender=WALLET
        )
        pair = factory.get_pair(token0.address, token1.address)
        pair.approve(WALLET, router.address, UINT256_MAX)

        with pytest.raises(InsufficientAmount) as exc_info:
            router.remove_liquidity(
                token0.address, token1.address, liquidity, expand_to_18(1), 0, WALLET, DEADLINE, sender=WALLET
            )

        assert exc_info.value.asset == token0.address
        assert pair.balance_of(WALLET) == liquidity

    def test_remove_liquidity_native(self, chain, router, factory, wrapped_native, token0, approved, funded):
        _, _, liquidity = router.add_liquidity_native(
            token0.address, expand_to_18(1), 0, 0, WALLET, DEADLINE, sender=WALLET, value=expand_to_18(4)
        )
        factory.get_pair(token0.address, wrapped_native.address).approve(WALLET, router.address, UINT256_MAX)

        amount_token, amount_native = router.remove_liquidity_native(
            token0.address, liquidity, 0, 0, WALLET, DEADLINE, sender=WALLET
        )

        assert (amount_token, amount_native) == (expand_to_18(1) - 500, expand_to_18(4) - 2000)
        assert chain.native_balance_of(WALLET) == expand_to_18(100) - 2000
        assert token0.balance_of(WALLET) == INITIAL_SUPPLY - 500
        assert wrapped_native.balance_of(router.address) == 0


class TestSwaps:
    """Tests for Router swap entry points."""

    def test_swap_exact_input(self, chain, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(5), expand_to_18(10))
        before = token1.balance_of(WALLET)

        amounts = router.swap_exact_input(
            expand_to_18(1), 0, [token0.address, token1.address], WALLET, DEADLINE, sender=WALLET
        )

        assert amounts == [expand_to_18(1), 1662497915624478906]
        assert token1.balance_of(WALLET) - before == 1662497915624478906
        swap = chain.events_named("Swap", pair.address)[-1]
        assert swap.args["sender"] == router.address
        assert swap.args["amount0_in"] == expand_to_18(1)

    def test_swap_exact_input_minimum(self, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(5), expand_to_18(10))
        before = token0.balance_of(WALLET)
        with pytest.raises(InsufficientOutputAmount):
            router.swap_exact_input(
                expand_to_18(1), 1662497915624478907, [token0.address, token1.address], WALLET, DEADLINE, sender=WALLET
            )
        assert token0.balance_of(WALLET) == before

    def test_swap_exact_output(self, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(5), expand_to_18(10))
        before = token0.balance_of(WALLET)

        amounts = router.swap_exact_output(
            expand_to_18(1), UINT256_MAX, [token0.address, token1.address], WALLET, DEADLINE, sender=WALLET
        )

        assert amounts == [557227237267357629, expand_to_18(1)]
        assert before - token0.balance_of(WALLET) == 557227237267357629

    def test_swap_exact_output_maximum(self, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(5), expand_to_18(10))
        with pytest.raises(ExcessiveInputAmount):
            router.swap_exact_output(
                expand_to_18(1), 557227237267357628, [token0.address, token1.address], WALLET, DEADLINE, sender=WALLET
            )

    def test_swap_exact_native_input(self, chain, router, wrapped_native, token0, approved, funded):
        router.add_liquidity_native(
            token0.address, expand_to_18(10), 0, 0, WALLET, DEADLINE, sender=WALLET, value=expand_to_18(5)
        )
        before = token0.balance_of(WALLET)

        amounts = router.swap_exact_native_input(
            0, [wrapped_native.address, token0.address], WALLET, DEADLINE, sender=WALLET, value=expand_to_18(1)
        )

        assert amounts == [expand_to_18(1), 1662497915624478906]
        assert token0.balance_of(WALLET) - before == 1662497915624478906
        assert chain.native_balance_of(WALLET) == expand_to_18(94)

    def test_native_path_must_start_wrapped(self, router, token0, token1, approved, funded):
        with pytest.raises(InvalidPath):
            router.swap_exact_native_input(
                0, [token0.address, token1.address], WALLET, DEADLINE, sender=WALLET, value=1
            )

    def test_multi_hop(self, chain, router, factory, pair, token0, token1, approved):
        """Each hop pays straight into the next pair."""
        token2 = deploy_token(chain, "TK2")
        second = factory.create_pair(token1.address, token2.address)
        add_liquidity(pair, expand_to_18(10), expand_to_18(10))
        add_liquidity(second, expand_to_18(10), expand_to_18(10))
        path = [token0.address, token1.address, token2.address]
        quoted = router.get_amounts_out(expand_to_18(1), path)
        assert router.get_amounts_in(quoted[2], path)[0] <= expand_to_18(1)
        before = token2.balance_of(WALLET)

        amounts = router.swap_exact_input(expand_to_18(1), 0, path, WALLET, DEADLINE, sender=WALLET)

        assert amounts == quoted
        assert amounts[1] == 906610893880149131
        assert token2.balance_of(WALLET) - before == amounts[2]
        assert token1.balance_of(router.address) == 0
        assert second.reserves_for(token1.address)[0] == expand_to_18(10) + amounts[1]

    def test_invalid_path(self, chain, router, token0, approved):
        with pytest.raises(InvalidPath):
            router.swap_exact_input(1, 0, [token0.address], WALLET, DEADLINE, sender=WALLET)
        unpaired = deploy_token(chain, "NOPE")
        with pytest.raises(InvalidPath):
            router.swap_exact_input(1, 0, [token0.address, unpaired.address], WALLET, DEADLINE, sender=WALLET)

    def test_expired(self, chain, router, pair, token0, token1, approved):
        add_liquidity(pair, expand_to_18(5), expand_to_18(10))
        with pytest.raises(Expired):
            router.swap_exact_input(
                1, 0, [token0.address, token1.address], WALLET, chain.timestamp - 1, sender=WALLET
            )

    def test_quote(self, router):
        assert router.quote(expand_to_18(1), expand_to_18(1), expand_to_18(4)) == expand_to_18(4)
