"""Protocol constants for the constant-product AMM.

Centralizes well-known addresses and protocol parameters.
"""

from cpamm.models.types import is_valid_address

# Shares permanently locked in the sink on a pair's first mint
MINIMUM_LIQUIDITY = 1000

# Reserves are bounded to 112 bits so the price accumulators fit UQ112x112
RESERVE_BITS = 112
UINT112_MAX = 2**RESERVE_BITS - 1
UINT256_MAX = 2**256 - 1

# Block timestamps are stored modulo 2^32
TIMESTAMP_MODULUS = 2**32

# Fee basis: fee_bps is out of this many parts
BPS_DENOMINATOR = 10_000

# Default swap fee (30 bps = 0.3%, i.e. a 997/1000 input multiplier)
DEFAULT_FEE_BPS = 30

# Default protocol cut of trading fees (1/6)
DEFAULT_PROTOCOL_FEE_NUMERATOR = 1
DEFAULT_PROTOCOL_FEE_DENOMINATOR = 6


def _validate_address(name: str, address: str) -> str:
    """Validate and return an address.

    Args:
        name: Name of the address (for error messages)
        address: The address to validate

    Returns:
        The validated address

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Null identity; also the sink that holds MINIMUM_LIQUIDITY shares
ZERO_ADDRESS = _validate_address("ZERO", "0x0000000000000000000000000000000000000000")

# keccak256 of the pair creation code used in CREATE2 address derivation
INIT_CODE_PAIR_HASH = "0xb50ecbbc0748c14b5445b459c75dc9fea42b4b5543f81251ba0ea03dede5a90e"
