"""Pair factory: deterministic creation and the registry of pairs.

One pair exists per unordered asset set. Pair addresses follow CREATE2, so
they are computable off-chain from the factory address and the two assets
without querying the registry.
"""

from __future__ import annotations

from typing import ClassVar

import structlog
from eth_abi.packed import encode_packed
from eth_utils import keccak, to_bytes

from cpamm.amm.library import sort_assets
from cpamm.amm.pair import Pair
from cpamm.chain import Chain, Contract, transactional
from cpamm.config import DEFAULT_PAIR_CONFIG, PairConfig
from cpamm.constants import INIT_CODE_PAIR_HASH, ZERO_ADDRESS
from cpamm.errors import Forbidden, PairExists
from cpamm.models.types import normalize_address

logger = structlog.get_logger()


def derive_pair_address(
    factory: str,
    token0: str,
    token1: str,
    init_code_hash: str = INIT_CODE_PAIR_HASH,
) -> str:
    """CREATE2 address of the pair for an already sorted asset pair.

    address = keccak256(0xff ++ factory ++ keccak256(token0 ++ token1) ++ init_code_hash)[12:]

    Args:
        factory: Factory address
        token0: Lower asset address
        token1: Higher asset address
        init_code_hash: keccak256 of the pair creation code

    Returns:
        Lowercase 0x-prefixed pair address
    """
    salt = keccak(
        encode_packed(
            ["address", "address"],
            [normalize_address(token0), normalize_address(token1)],
        )
    )
    digest = keccak(
        b"\xff"
        + to_bytes(hexstr=normalize_address(factory))
        + salt
        + to_bytes(hexstr=init_code_hash)
    )
    return "0x" + digest[12:].hex()


class Factory(Contract):
    """Creates pairs and owns the protocol fee recipient setting.

    Registry keys are canonical (token0, token1) tuples, so lookups compare
    normalized address values and never object identity.
    """

    _STATE: ClassVar[tuple[str, ...]] = ("fee_to", "fee_to_setter", "_pairs", "_all_pairs")

    def __init__(
        self,
        chain: Chain,
        fee_to_setter: str,
        default_config: PairConfig = DEFAULT_PAIR_CONFIG,
        init_code_hash: str = INIT_CODE_PAIR_HASH,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, address)
        self.fee_to: str | None = None
        self.fee_to_setter = normalize_address(fee_to_setter)
        self.default_config = default_config
        self.init_code_hash = init_code_hash
        self._pairs: dict[tuple[str, str], str] = {}
        self._all_pairs: list[str] = []

    # --- Queries ---

    def get_pair(self, token_a: str, token_b: str) -> Pair | None:
        """Look up the pair for an unordered asset set.

        Returns:
            The Pair if one was created, None otherwise
        """
        token_a, token_b = normalize_address(token_a), normalize_address(token_b)
        key = (token_a, token_b) if token_a < token_b else (token_b, token_a)
        address = self._pairs.get(key)
        if address is None:
            return None
        return self._pair_at(address)

    def pair_for(self, token_a: str, token_b: str) -> str:
        """Pair address for an asset set, computed without touching the registry."""
        token0, token1 = sort_assets(token_a, token_b)
        return derive_pair_address(self.address, token0, token1, self.init_code_hash)

    def all_pairs(self, index: int) -> Pair:
        """Pair at a creation index.

        Raises:
            IndexError: If index is out of range
        """
        if index < 0:
            raise IndexError(f"Pair index out of range: {index}")
        return self._pair_at(self._all_pairs[index])

    def all_pairs_length(self) -> int:
        return len(self._all_pairs)

    # --- Mutations ---

    @transactional
    def create_pair(
        self,
        token_a: str,
        token_b: str,
        config: PairConfig | None = None,
    ) -> Pair:
        """Create and register the pair for an unordered asset set.

        Args:
            token_a: Either asset
            token_b: The other asset
            config: Fee tier override; defaults to the factory's default config

        Raises:
            IdenticalAssets: If both assets are the same
            ZeroAsset: If either asset is the zero address
            PairExists: If the set already has a pair
        """
        token0, token1 = sort_assets(token_a, token_b)
        if (token0, token1) in self._pairs:
            raise PairExists(f"Pair already exists for {token0}/{token1}")

        address = derive_pair_address(self.address, token0, token1, self.init_code_hash)
        pair = Pair(self.chain, self.address, config or self.default_config, address=address)
        pair.initialize(self.address, token0, token1)

        self._pairs[(token0, token1)] = pair.address
        self._all_pairs.append(pair.address)
        self.emit(
            "PairCreated",
            token0=token0,
            token1=token1,
            pair=pair.address,
            index=len(self._all_pairs),
        )
        logger.info(
            "pair_created",
            pair=pair.address,
            token0=token0,
            token1=token1,
            fee_bps=pair.config.fee_bps,
        )
        return pair

    @transactional
    def set_fee_to(self, caller: str, fee_to: str | None) -> None:
        """Set (or with None / the zero address, clear) the protocol fee recipient.

        Raises:
            Forbidden: If caller is not the fee setter
        """
        self._require_setter(caller)
        if fee_to is not None:
            fee_to = normalize_address(fee_to)
            if fee_to == ZERO_ADDRESS:
                fee_to = None
        self.fee_to = fee_to
        logger.info("fee_to_changed", factory=self.address, fee_to=fee_to)

    @transactional
    def set_fee_to_setter(self, caller: str, new_setter: str) -> None:
        """Hand the fee-setter permission to a new account.

        Raises:
            Forbidden: If caller is not the fee setter
        """
        self._require_setter(caller)
        self.fee_to_setter = normalize_address(new_setter)
        logger.info("fee_to_setter_changed", factory=self.address, fee_to_setter=new_setter)

    def _require_setter(self, caller: str) -> None:
        if normalize_address(caller) != self.fee_to_setter:
            raise Forbidden(f"{caller} is not the fee setter")

    def _pair_at(self, address: str) -> Pair:
        pair = self.chain.contract(address)
        assert isinstance(pair, Pair)
        return pair
