"""Pair configuration for the AMM."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from cpamm.constants import (
    BPS_DENOMINATOR,
    DEFAULT_FEE_BPS,
    DEFAULT_PROTOCOL_FEE_DENOMINATOR,
    DEFAULT_PROTOCOL_FEE_NUMERATOR,
    MINIMUM_LIQUIDITY,
    RESERVE_BITS,
)


@dataclass(frozen=True)
class PairConfig:
    """Per-pair protocol parameters.

    Different fee tiers coexist in this family of AMMs, so the swap fee and
    the protocol's cut of it are configured per pair rather than hard-coded.

    Attributes:
        fee_bps: Swap fee taken from the input side, in basis points (30 = 0.3%)
        protocol_fee_numerator: Protocol's share of trading fees, numerator
        protocol_fee_denominator: Protocol's share of trading fees, denominator
            (1/6 by default; 1/1 diverts the entire fee growth)
        minimum_liquidity: Shares locked in the sink on the first mint
        reserve_bits: Width reserves must fit in
    """

    fee_bps: int = DEFAULT_FEE_BPS
    protocol_fee_numerator: int = DEFAULT_PROTOCOL_FEE_NUMERATOR
    protocol_fee_denominator: int = DEFAULT_PROTOCOL_FEE_DENOMINATOR
    minimum_liquidity: int = MINIMUM_LIQUIDITY
    reserve_bits: int = RESERVE_BITS

    def __post_init__(self) -> None:
        if not 0 <= self.fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOMINATOR}), got {self.fee_bps}")
        if self.protocol_fee_denominator <= 0:
            raise ValueError("protocol_fee_denominator must be positive")
        if not 0 < self.protocol_fee_numerator <= self.protocol_fee_denominator:
            raise ValueError(
                "protocol_fee_numerator must be in (0, protocol_fee_denominator], "
                f"got {self.protocol_fee_numerator}/{self.protocol_fee_denominator}"
            )
        if self.minimum_liquidity < 0:
            raise ValueError("minimum_liquidity cannot be negative")
        if not 0 < self.reserve_bits <= RESERVE_BITS:
            raise ValueError(
                f"reserve_bits must be in (0, {RESERVE_BITS}], got {self.reserve_bits}"
            )

    @property
    def fee_multiplier(self) -> int:
        """Input multiplier out of BPS_DENOMINATOR (9970 for 30 bps)."""
        return BPS_DENOMINATOR - self.fee_bps

    @classmethod
    def from_fee(cls, fee: str | Decimal, **kwargs: int) -> PairConfig:
        """Build a config from a decimal fee fraction such as "0.003".

        Uses Decimal for exact arithmetic; the fee is rounded half-up to bps.

        Raises:
            ValueError: If fee is not a decimal number
        """
        return cls(fee_bps=parse_fee_bps(fee), **kwargs)


def parse_fee_bps(fee: str | Decimal) -> int:
    """Convert a decimal fee fraction ("0.003") to basis points (30).

    Raises:
        ValueError: If fee is not a decimal number
    """
    try:
        fee_decimal = Decimal(str(fee))
    except InvalidOperation as err:
        raise ValueError(f"Invalid fee: {fee!r}") from err
    if not fee_decimal.is_finite():
        raise ValueError(f"Invalid fee: {fee!r}")
    return int((fee_decimal * BPS_DENOMINATOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def load_pair_config_from_env() -> PairConfig:
    """Build the default pair config from environment variables.

    - CPAMM_FEE_BPS: Swap fee in bps (default: 30)
    - CPAMM_PROTOCOL_FEE_NUMERATOR: Protocol cut numerator (default: 1)
    - CPAMM_PROTOCOL_FEE_DENOMINATOR: Protocol cut denominator (default: 6)
    """
    return PairConfig(
        fee_bps=int(os.environ.get("CPAMM_FEE_BPS", str(DEFAULT_FEE_BPS))),
        protocol_fee_numerator=int(
            os.environ.get("CPAMM_PROTOCOL_FEE_NUMERATOR", str(DEFAULT_PROTOCOL_FEE_NUMERATOR))
        ),
        protocol_fee_denominator=int(
            os.environ.get("CPAMM_PROTOCOL_FEE_DENOMINATOR", str(DEFAULT_PROTOCOL_FEE_DENOMINATOR))
        ),
    )


# Default configuration instance
DEFAULT_PAIR_CONFIG = PairConfig()
