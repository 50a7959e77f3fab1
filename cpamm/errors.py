"""AMM error classes.

Every failure of a settlement call is one of these kinds. Each class carries a
stable ``code`` matching the revert reason of the on-chain pair contracts, so
callers can react to the kind without parsing messages.
"""

from __future__ import annotations

from typing import ClassVar


class AMMError(Exception):
    """Base error for AMM operations."""

    code: ClassVar[str] = "AMM_ERROR"


# --- Factory ---


class IdenticalAssets(AMMError):
    """Both sides of a pair are the same asset."""

    code = "IDENTICAL_ADDRESSES"


class ZeroAsset(AMMError):
    """One side of a pair is the null identity."""

    code = "ZERO_ADDRESS"


class PairExists(AMMError):
    """A pair for this unordered asset set is already registered."""

    code = "PAIR_EXISTS"


class Forbidden(AMMError):
    """Caller is not permitted to perform this operation."""

    code = "FORBIDDEN"


class AlreadyInitialized(AMMError):
    """Pair assets were already set."""

    code = "ALREADY_INITIALIZED"


# --- Pair ---


class InsufficientLiquidityMinted(AMMError):
    """Deposit is too small to issue any shares."""

    code = "INSUFFICIENT_LIQUIDITY_MINTED"


class InsufficientLiquidityBurned(AMMError):
    """Burn would pay out zero of either asset."""

    code = "INSUFFICIENT_LIQUIDITY_BURNED"


class InsufficientInputAmount(AMMError):
    """Swap received no input on either side."""

    code = "INSUFFICIENT_INPUT_AMOUNT"


class InsufficientOutputAmount(AMMError):
    """Swap requested no output, or output is below the caller's minimum."""

    code = "INSUFFICIENT_OUTPUT_AMOUNT"


class InsufficientLiquidity(AMMError):
    """Requested output is not strictly below the reserve."""

    code = "INSUFFICIENT_LIQUIDITY"


class InvalidRecipient(AMMError):
    """Swap output recipient is one of the pair's own assets."""

    code = "INVALID_TO"


class K(AMMError):
    """Fee-adjusted constant-product invariant decreased."""

    code = "K"


# --- Arithmetic ---


class MathError(AMMError, ArithmeticError):
    """Base class for integer arithmetic errors."""

    code = "MATH"


class Overflow(MathError):
    """Value does not fit in its bounded width."""

    code = "OVERFLOW"


class Underflow(MathError):
    """Unsigned subtraction would produce a negative result."""

    code = "UNDERFLOW"


class DivisionByZero(MathError):
    """Division or modulo by zero."""

    code = "DIVISION_BY_ZERO"


# --- Router / Zap ---


class Expired(AMMError):
    """Call arrived after its deadline."""

    code = "EXPIRED"


class SlippageExceeded(AMMError):
    """Result is below the caller's minimum."""

    code = "SLIPPAGE_EXCEEDED"


class InsufficientInput(AMMError):
    """Zap input is too small to split into a swap and a deposit."""

    code = "INSUFFICIENT_INPUT"


class InsufficientAmount(AMMError):
    """Optimal deposit of one asset is below the caller's minimum."""

    code = "INSUFFICIENT_AMOUNT"

    def __init__(self, asset: str, message: str | None = None) -> None:
        self.asset = asset
        super().__init__(message or f"Insufficient amount of {asset}")


class ExcessiveInputAmount(AMMError):
    """Exact-output swap needs more input than the caller allows."""

    code = "EXCESSIVE_INPUT_AMOUNT"


class InvalidPath(AMMError):
    """Swap path is too short or does not match the call variant."""

    code = "INVALID_PATH"


# --- Assets / substrate ---


class InsufficientBalance(AMMError):
    """Holder does not own enough of an asset."""

    code = "INSUFFICIENT_BALANCE"


class InsufficientAllowance(AMMError):
    """Spender is not approved for enough of an asset."""

    code = "INSUFFICIENT_ALLOWANCE"


class UnknownContract(AMMError):
    """No contract is registered at an address."""

    code = "UNKNOWN_CONTRACT"


__all__ = [
    "AMMError",
    "IdenticalAssets",
    "ZeroAsset",
    "PairExists",
    "Forbidden",
    "AlreadyInitialized",
    "InsufficientLiquidityMinted",
    "InsufficientLiquidityBurned",
    "InsufficientInputAmount",
    "InsufficientOutputAmount",
    "InsufficientLiquidity",
    "InvalidRecipient",
    "K",
    "MathError",
    "Overflow",
    "Underflow",
    "DivisionByZero",
    "Expired",
    "SlippageExceeded",
    "InsufficientInput",
    "InsufficientAmount",
    "ExcessiveInputAmount",
    "InvalidPath",
    "InsufficientBalance",
    "InsufficientAllowance",
    "UnknownContract",
]
