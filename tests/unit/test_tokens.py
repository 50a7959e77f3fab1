"""Tests for ERC20 ledgers and the wrapped native token."""

import pytest

from cpamm.constants import UINT256_MAX, ZERO_ADDRESS
from cpamm.errors import Forbidden, InsufficientAllowance, InsufficientBalance
from cpamm.tokens import Token
from tests.helpers import INITIAL_SUPPLY, OTHER, WALLET, deploy_token

SPENDER = "0x0000000000000000000000000000000000000c0c"


@pytest.fixture
def token(chain):
    return deploy_token(chain, "TST")


class TestERC20:
    """Tests for balances, transfers and allowances."""

    def test_initial_supply(self, token):
        assert token.total_supply == INITIAL_SUPPLY
        assert token.balance_of(WALLET) == INITIAL_SUPPLY
        assert token.decimals == 18

    def test_transfer(self, chain, token):
        assert token.transfer(WALLET, OTHER, 10)
        assert token.balance_of(OTHER) == 10
        assert token.balance_of(WALLET) == INITIAL_SUPPLY - 10
        assert chain.events_named("Transfer", token.address)[-1].args == {
            "sender": WALLET,
            "to": OTHER,
            "value": 10,
        }

    def test_transfer_normalizes_addresses(self, token):
        token.transfer(WALLET.upper().replace("0X", "0x"), OTHER, 1)
        assert token.balance_of(OTHER) == 1

    def test_transfer_insufficient(self, token):
        with pytest.raises(InsufficientBalance):
            token.transfer(OTHER, WALLET, 1)

    def test_transfer_from_zero_address(self, token):
        with pytest.raises(Forbidden):
            token.transfer(ZERO_ADDRESS, WALLET, 0)

    def test_approve_and_transfer_from(self, chain, token):
        token.approve(WALLET, SPENDER, 100)
        assert chain.events_named("Approval", token.address)[-1].args == {
            "owner": WALLET,
            "spender": SPENDER,
            "value": 100,
        }
        token.transfer_from(SPENDER, WALLET, OTHER, 60)
        assert token.allowance(WALLET, SPENDER) == 40
        assert token.balance_of(OTHER) == 60

    def test_transfer_from_over_allowance(self, token):
        token.approve(WALLET, SPENDER, 10)
        with pytest.raises(InsufficientAllowance):
            token.transfer_from(SPENDER, WALLET, OTHER, 11)
        assert token.allowance(WALLET, SPENDER) == 10

    def test_infinite_allowance(self, token):
        token.approve(WALLET, SPENDER, UINT256_MAX)
        token.transfer_from(SPENDER, WALLET, OTHER, 1000)
        assert token.allowance(WALLET, SPENDER) == UINT256_MAX

    def test_owner_needs_no_allowance(self, token):
        token.transfer_from(WALLET, WALLET, OTHER, 5)
        assert token.balance_of(OTHER) == 5

    def test_negative_allowance(self, token):
        with pytest.raises(ValueError):
            token.approve(WALLET, SPENDER, -1)

    def test_mint(self, token):
        token.mint(OTHER, 7)
        assert token.balance_of(OTHER) == 7
        assert token.total_supply == INITIAL_SUPPLY + 7

    def test_initial_supply_requires_owner(self, chain):
        with pytest.raises(ValueError):
            Token(chain, "No Owner", "NO", initial_supply=1)


class TestWrappedNative:
    """Tests for WrappedNative deposit and withdraw."""

    def test_deposit(self, chain, wrapped_native):
        chain.fund(WALLET, 100)
        wrapped_native.deposit(WALLET, 60)

        assert wrapped_native.balance_of(WALLET) == 60
        assert wrapped_native.total_supply == 60
        assert chain.native_balance_of(WALLET) == 40
        assert chain.native_balance_of(wrapped_native.address) == 60
        assert chain.events_named("Deposit")[-1].args == {"dst": WALLET, "value": 60}

    def test_withdraw(self, chain, wrapped_native):
        chain.fund(WALLET, 100)
        wrapped_native.deposit(WALLET, 60)
        wrapped_native.withdraw(WALLET, 25)

        assert wrapped_native.balance_of(WALLET) == 35
        assert chain.native_balance_of(WALLET) == 65
        assert chain.events_named("Withdrawal")[-1].args == {"src": WALLET, "value": 25}

    def test_deposit_without_native(self, chain, wrapped_native):
        with pytest.raises(InsufficientBalance):
            wrapped_native.deposit(WALLET, 1)
        assert wrapped_native.total_supply == 0

    def test_withdraw_more_than_wrapped(self, chain, wrapped_native):
        chain.fund(WALLET, 10)
        wrapped_native.deposit(WALLET, 10)
        with pytest.raises(InsufficientBalance):
            wrapped_native.withdraw(WALLET, 11)
        assert chain.native_balance_of(WALLET) == 0
