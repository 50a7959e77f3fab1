"""Mathematical utilities for the AMM.

This package provides mathematical primitives for pool calculations:
- mul_div / ceil_div: exact integer division with explicit rounding
- check_width: bounded-width overflow detection
- UQ112x112 helpers for price accumulators
"""

from cpamm.math.fixed_point import (
    Q112,
    ceil_div,
    check_width,
    encode_uq112x112,
    isqrt,
    mul_div,
    to_uint112,
    to_uint256,
    uq112x112_div,
    wrapping_add,
)

__all__ = [
    "Q112",
    "ceil_div",
    "check_width",
    "encode_uq112x112",
    "isqrt",
    "mul_div",
    "to_uint112",
    "to_uint256",
    "uq112x112_div",
    "wrapping_add",
]
