"""Fungible asset ledgers: the asset interface pairs and zaps depend on.

ERC20 is the shared ledger (also the base of a Pair's share token), Token is
a freely mintable test asset, and WrappedNative converts the chain's native
balance into a tradeable token and back.
"""

from __future__ import annotations

from typing import ClassVar

from cpamm.chain import Chain, Contract, transactional
from cpamm.constants import UINT256_MAX, ZERO_ADDRESS
from cpamm.errors import Forbidden, InsufficientAllowance, InsufficientBalance
from cpamm.models.types import normalize_address


class ERC20(Contract):
    """Balance/allowance ledger with Transfer and Approval events.

    Every method that moves value takes the acting account explicitly
    (``sender``, ``owner``, ``spender``), standing in for msg.sender.
    An allowance of UINT256_MAX is treated as infinite and never decremented.
    """

    _STATE: ClassVar[tuple[str, ...]] = ("balances", "allowances", "total_supply")

    def __init__(
        self,
        chain: Chain,
        name: str,
        symbol: str,
        decimals: int = 18,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.total_supply = 0

    def balance_of(self, holder: str) -> int:
        return self.balances.get(normalize_address(holder), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    @transactional
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        owner, spender = normalize_address(owner), normalize_address(spender)
        self._approve(owner, spender, amount)
        return True

    @transactional
    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._transfer(normalize_address(sender), normalize_address(to), amount)
        return True

    @transactional
    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> bool:
        """Move ``amount`` from ``owner`` to ``to`` using spender's allowance.

        Raises:
            InsufficientAllowance: If the allowance is below amount
            InsufficientBalance: If owner holds less than amount
        """
        spender, owner, to = (normalize_address(a) for a in (spender, owner, to))
        if spender != owner:
            current = self.allowances.get((owner, spender), 0)
            if current != UINT256_MAX:
                if current < amount:
                    raise InsufficientAllowance(
                        f"{self.symbol}: allowance of {spender} from {owner} is {current}, "
                        f"need {amount}"
                    )
                self._approve(owner, spender, current - amount)
        self._transfer(owner, to, amount)
        return True

    # --- Internal ledger operations ---

    def _approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Allowance cannot be negative")
        self.allowances[(owner, spender)] = amount
        self.emit("Approval", owner=owner, spender=spender, value=amount)

    def _transfer(self, sender: str, to: str, amount: int) -> None:
        # The zero address is the minimum-liquidity sink; nothing leaves it
        if sender == ZERO_ADDRESS:
            raise Forbidden(f"{self.symbol}: transfer from the zero address")
        balance = self.balances.get(sender, 0)
        if amount < 0 or balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance of {sender} is {balance}, need {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.emit("Transfer", sender=sender, to=to, value=amount)

    def _mint(self, to: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        self.total_supply += amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self.emit("Transfer", sender=ZERO_ADDRESS, to=to, value=amount)

    def _burn(self, holder: str, amount: int) -> None:
        balance = self.balances.get(holder, 0)
        if amount < 0 or balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance of {holder} is {balance}, cannot burn {amount}"
            )
        self.balances[holder] = balance - amount
        self.total_supply -= amount
        self.emit("Transfer", sender=holder, to=ZERO_ADDRESS, value=amount)


class Token(ERC20):
    """Test asset: anyone may mint."""

    def __init__(
        self,
        chain: Chain,
        name: str,
        symbol: str,
        initial_supply: int = 0,
        owner: str | None = None,
        decimals: int = 18,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, name, symbol, decimals=decimals, address=address)
        if initial_supply:
            if owner is None:
                raise ValueError("initial_supply requires an owner")
            self._mint(normalize_address(owner), initial_supply)

    @transactional
    def mint(self, to: str, amount: int) -> None:
        self._mint(normalize_address(to), amount)


class WrappedNative(ERC20):
    """1:1 token wrapper around the chain's native balance."""

    def __init__(
        self,
        chain: Chain,
        name: str = "Wrapped Native",
        symbol: str = "WNATIVE",
        address: str | None = None,
    ) -> None:
        super().__init__(chain, name, symbol, address=address)

    @transactional
    def deposit(self, sender: str, amount: int) -> None:
        """Lock ``amount`` of sender's native balance and mint the same in tokens."""
        sender = normalize_address(sender)
        self.chain.transfer_native(sender, self.address, amount)
        self._mint(sender, amount)
        self.emit("Deposit", dst=sender, value=amount)

    @transactional
    def withdraw(self, sender: str, amount: int) -> None:
        """Burn ``amount`` of sender's tokens and release native balance."""
        sender = normalize_address(sender)
        self._burn(sender, amount)
        self.chain.transfer_native(self.address, sender, amount)
        self.emit("Withdrawal", src=sender, value=amount)
