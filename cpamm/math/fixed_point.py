"""Integer fixed-point math for constant-product pools.

All monetary quantities are integers scaled by 10^18. Python integers are
unbounded, so every product below is computed exactly; bounds are enforced
only on results, the way a 512-bit intermediate would behave on-chain.

Price accumulators use the UQ112x112 binary fixed-point format: a 224-bit
value whose low 112 bits are the fraction.
"""

from __future__ import annotations

from cpamm.errors import DivisionByZero, Overflow
from cpamm.safe_int import S

__all__ = [
    # Functions
    "mul_div",
    "ceil_div",
    "check_width",
    "to_uint112",
    "to_uint256",
    "isqrt",
    "encode_uq112x112",
    "uq112x112_div",
    "wrapping_add",
    # Constants
    "Q112",
]

# =============================================================================
# Constants
# =============================================================================

# 2^112, the UQ112x112 unit
Q112 = 2**112


# =============================================================================
# Functions
# =============================================================================


def mul_div(a: int, b: int, denominator: int, round_up: bool = False, bits: int = 256) -> int:
    """Compute a * b / denominator with an exact intermediate product.

    Args:
        a: First factor (non-negative)
        b: Second factor (non-negative)
        denominator: Divisor
        round_up: Round the quotient up instead of down
        bits: Width the result must fit in

    Returns:
        floor(a*b/denominator), or the ceiling when round_up is set

    Raises:
        DivisionByZero: If denominator is zero
        Overflow: If the result does not fit in ``bits``
    """
    if denominator == 0:
        raise DivisionByZero(f"mul_div by zero: {a} * {b} / 0")
    product = S(a) * S(b)
    result = product.ceiling_div(denominator) if round_up else product // denominator
    return result.to_uint(bits)


def ceil_div(a: int, b: int) -> int:
    """Ceiling division: (a + b - 1) // b.

    Raises:
        DivisionByZero: If b is zero
    """
    return S(a).ceiling_div(b).value


def check_width(value: int, bits: int) -> int:
    """Return value unchanged if it fits in an unsigned ``bits``-wide integer.

    Raises:
        Overflow: If value is negative or too wide
    """
    return S(value).to_uint(bits)


def to_uint112(value: int) -> int:
    return check_width(value, 112)


def to_uint256(value: int) -> int:
    return check_width(value, 256)


def isqrt(value: int) -> int:
    """Floor integer square root (Babylonian result, computed exactly)."""
    return S(value).sqrt().value


def encode_uq112x112(y: int) -> int:
    """Encode a uint112 as UQ112x112.

    Raises:
        Overflow: If y does not fit in 112 bits
    """
    return to_uint112(y) * Q112


def uq112x112_div(x: int, y: int) -> int:
    """Divide a UQ112x112 by a uint112, returning UQ112x112.

    Raises:
        DivisionByZero: If y is zero
    """
    if y == 0:
        raise DivisionByZero("UQ112x112 division by zero")
    return x // y


def wrapping_add(a: int, b: int, bits: int = 256) -> int:
    """Add modulo 2^bits (accumulators are designed to overflow)."""
    if a < 0 or b < 0:
        raise Overflow(f"wrapping_add expects unsigned operands: {a}, {b}")
    return (a + b) % (1 << bits)
