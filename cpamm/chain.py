"""In-memory execution substrate for pairs, tokens and their callers.

The AMM core assumes an environment that serializes calls, keeps a clock,
resolves addresses to contracts and discards every state change of a call
that fails. Chain provides exactly that and nothing more: there is no gas,
no signing and no persistence.

Atomicity:
    Every state-changing public method is wrapped in ``@transactional``. Each
    transactional call snapshots all registered contracts, native balances
    and the event log; if an exception escapes, the snapshot is restored and
    the exception re-raised. Nested calls (a pair paying out
    through a token, a flash-swap callback re-entering the pair) take their
    own savepoint, so a failure the caller handles undoes only the nested
    call.
"""

from __future__ import annotations

import copy
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeVar, cast

import structlog

from cpamm.errors import InsufficientBalance, UnknownContract
from cpamm.models.types import address_from_int, normalize_address

logger = structlog.get_logger()

# Deterministic genesis time so tests are reproducible
DEFAULT_GENESIS_TIMESTAMP = 1_700_000_000

# Low addresses are left for the zero sink and precompile-like identities
_FIRST_ALLOCATED_ADDRESS = 0x1000

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class Event:
    """A log entry emitted by a contract."""

    address: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


class Contract:
    """Base class for stateful objects living on a Chain.

    Subclasses list their mutable attributes in ``_STATE``; the chain deep
    copies exactly those attributes when snapshotting, so they must hold
    plain data (ints, strings, containers of them, frozen dataclasses) and
    never references to other contracts.
    """

    _STATE: ClassVar[tuple[str, ...]] = ()

    def __init__(self, chain: Chain, address: str | None = None) -> None:
        self.chain = chain
        if address is None:
            self.address = chain.allocate_address()
        else:
            self.address = normalize_address(address, validate=True)
        chain.register(self)

    def emit(self, name: str, **args: Any) -> None:
        self.chain.emit(Event(address=self.address, name=name, args=args))

    def _snapshot(self) -> dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._STATE}

    def _restore(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


@dataclass
class _Snapshot:
    contracts: dict[str, Contract]
    states: dict[str, dict[str, Any]]
    native: dict[str, int]
    event_count: int
    next_address: int


class Chain:
    """Registry, clock and rollback for a set of contracts."""

    def __init__(self, timestamp: int = DEFAULT_GENESIS_TIMESTAMP) -> None:
        self.timestamp = timestamp
        self.block_number = 1
        self.events: list[Event] = []
        self._contracts: dict[str, Contract] = {}
        self._native: dict[str, int] = {}
        self._next_address = _FIRST_ALLOCATED_ADDRESS
        self._depth = 0

    # --- Addresses and contracts ---

    def allocate_address(self) -> str:
        """Hand out the next unused address."""
        while True:
            address = address_from_int(self._next_address)
            self._next_address += 1
            if address not in self._contracts:
                return address

    def register(self, contract: Contract) -> None:
        """Register a contract at its address.

        Raises:
            ValueError: If the address is already taken
        """
        if contract.address in self._contracts:
            raise ValueError(f"Address already in use: {contract.address}")
        self._contracts[contract.address] = contract

    def contract(self, address: str) -> Contract:
        """Resolve an address to its contract.

        Raises:
            UnknownContract: If nothing is registered there
        """
        try:
            return self._contracts[normalize_address(address)]
        except KeyError:
            raise UnknownContract(f"No contract at {address}") from None

    def has_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # --- Clock ---

    def advance_time(self, seconds: int) -> int:
        """Move the clock forward and start a new block. Returns the new timestamp."""
        if seconds < 0:
            raise ValueError("Time cannot move backwards")
        self.timestamp += seconds
        self.block_number += 1
        return self.timestamp

    # --- Native asset ---

    def native_balance_of(self, account: str) -> int:
        return self._native.get(normalize_address(account), 0)

    def fund(self, account: str, amount: int) -> None:
        """Credit native balance out of thin air (genesis allocation)."""
        if amount < 0:
            raise ValueError("Cannot fund a negative amount")
        account = normalize_address(account)
        self._native[account] = self._native.get(account, 0) + amount

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        """Move native balance between accounts.

        Raises:
            InsufficientBalance: If sender holds less than amount
        """
        sender, to = normalize_address(sender), normalize_address(to)
        balance = self._native.get(sender, 0)
        if amount < 0 or balance < amount:
            raise InsufficientBalance(f"Native balance of {sender} is {balance}, need {amount}")
        self._native[sender] = balance - amount
        self._native[to] = self._native.get(to, 0) + amount

    # --- Events ---

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def events_named(self, name: str, address: str | None = None) -> list[Event]:
        """Events with this name, optionally only those from one contract."""
        wanted = normalize_address(address) if address is not None else None
        return [
            e for e in self.events if e.name == name and (wanted is None or e.address == wanted)
        ]

    # --- Transactions ---

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the enclosed block all-or-nothing.

        Every block is a savepoint: on failure it restores the state it
        started from and re-raises. A caller that handles the error keeps
        its own earlier changes; one that does not reverts in turn.
        """
        snapshot = self._take_snapshot()
        self._depth += 1
        try:
            yield
        except Exception as exc:
            self._restore_snapshot(snapshot)
            logger.debug(
                "transaction_reverted",
                depth=self._depth,
                error=type(exc).__name__,
                reason=str(exc),
            )
            raise
        finally:
            self._depth -= 1

    def _take_snapshot(self) -> _Snapshot:
        return _Snapshot(
            contracts=dict(self._contracts),
            states={addr: c._snapshot() for addr, c in self._contracts.items()},
            native=dict(self._native),
            event_count=len(self.events),
            next_address=self._next_address,
        )

    def _restore_snapshot(self, snapshot: _Snapshot) -> None:
        # Contracts created inside the failed call disappear with it
        self._contracts = snapshot.contracts
        for address, state in snapshot.states.items():
            self._contracts[address]._restore(state)
        self._native = snapshot.native
        del self.events[snapshot.event_count :]
        self._next_address = snapshot.next_address


def transactional(method: F) -> F:
    """Run a Contract method inside its chain's atomic() block."""

    @functools.wraps(method)
    def wrapper(self: Contract, *args: Any, **kwargs: Any) -> Any:
        with self.chain.atomic():
            return method(self, *args, **kwargs)

    return cast(F, wrapper)


__all__ = [
    "Chain",
    "Contract",
    "Event",
    "transactional",
    "DEFAULT_GENESIS_TIMESTAMP",
]
