"""Pydantic models for the quote service request/response bodies.

Amounts travel as decimal strings so uint256 values survive JSON intact.
"""

from pydantic import BaseModel, Field

from cpamm.models.types import Address, Bytes32, Uint256


class ReservesQuote(BaseModel):
    """Pair state a quote is computed against."""

    reserve_in: Uint256 = Field(alias="reserveIn", description="Reserve of the input asset")
    reserve_out: Uint256 = Field(alias="reserveOut", description="Reserve of the output asset")
    fee_bps: int | None = Field(
        default=None,
        alias="feeBps",
        ge=0,
        lt=10_000,
        description="Pair fee in basis points. Defaults to the service's configured fee.",
    )

    model_config = {"populate_by_name": True}


class AmountOutRequest(ReservesQuote):
    """Exact-input quote."""

    amount_in: Uint256 = Field(alias="amountIn")


class AmountOutResponse(BaseModel):
    amount_out: Uint256 = Field(alias="amountOut")

    model_config = {"populate_by_name": True}


class AmountInRequest(ReservesQuote):
    """Exact-output quote."""

    amount_out: Uint256 = Field(alias="amountOut")


class AmountInResponse(BaseModel):
    amount_in: Uint256 = Field(alias="amountIn")

    model_config = {"populate_by_name": True}


class ZapInRequest(ReservesQuote):
    """Single-asset deposit split."""

    amount_in: Uint256 = Field(alias="amountIn")


class ZapInResponse(BaseModel):
    swap_amount: Uint256 = Field(alias="swapAmount", description="Input to sell before depositing")
    amount_out: Uint256 = Field(alias="amountOut", description="Output bought by the swap leg")

    model_config = {"populate_by_name": True}


class PairAddressRequest(BaseModel):
    """Inputs of the deterministic pair address."""

    factory: Address
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    init_code_hash: Bytes32 | None = Field(
        default=None,
        alias="initCodeHash",
        description="keccak256 of the pair creation code. Defaults to the built-in pair.",
    )

    model_config = {"populate_by_name": True}


class PairAddressResponse(BaseModel):
    pair: Address
    token0: Address
    token1: Address


class ErrorResponse(BaseModel):
    """Body returned for a rejected quote."""

    error: str = Field(description="Stable error kind, e.g. INSUFFICIENT_LIQUIDITY")
    detail: str
