"""Pydantic models and shared types for the AMM."""

from cpamm.models.api import (
    AmountInRequest,
    AmountInResponse,
    AmountOutRequest,
    AmountOutResponse,
    ErrorResponse,
    PairAddressRequest,
    PairAddressResponse,
    ZapInRequest,
    ZapInResponse,
)
from cpamm.models.types import Address, Bytes32, Uint256

__all__ = [
    # Types
    "Address",
    "Bytes32",
    "Uint256",
    # Quote service
    "AmountInRequest",
    "AmountInResponse",
    "AmountOutRequest",
    "AmountOutResponse",
    "ZapInRequest",
    "ZapInResponse",
    "PairAddressRequest",
    "PairAddressResponse",
    "ErrorResponse",
]
