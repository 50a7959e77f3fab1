"""cpamm - Constant-product AMM engine."""

from cpamm.amm import Factory, Pair, Router, Zap
from cpamm.chain import Chain

__version__ = "0.1.0"
__all__ = ["Chain", "Factory", "Pair", "Router", "Zap", "__version__"]
