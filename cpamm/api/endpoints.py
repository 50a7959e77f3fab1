"""Quote endpoints.

Every quote is computed from the reserves in the request, so the service is
stateless and read-only; it shares the pricing code the pairs settle with.
"""

import structlog
from fastapi import APIRouter, Depends

from cpamm.amm.factory import derive_pair_address
from cpamm.amm.library import constant_product, sort_assets
from cpamm.amm.zap import split_for_zap
from cpamm.config import PairConfig, load_pair_config_from_env
from cpamm.constants import INIT_CODE_PAIR_HASH
from cpamm.models.api import (
    AmountInRequest,
    AmountInResponse,
    AmountOutRequest,
    AmountOutResponse,
    ErrorResponse,
    PairAddressRequest,
    PairAddressResponse,
    ReservesQuote,
    ZapInRequest,
    ZapInResponse,
)

logger = structlog.get_logger()

router = APIRouter(responses={400: {"model": ErrorResponse, "description": "AMM failure"}})


def get_pair_config() -> PairConfig:
    """Dependency provider for the default pair configuration.

    Override this in tests to pin a fee tier:
        app.dependency_overrides[get_pair_config] = lambda: PairConfig(fee_bps=25)
    """
    return load_pair_config_from_env()


def _fee_bps(request: ReservesQuote, config: PairConfig) -> int:
    return request.fee_bps if request.fee_bps is not None else config.fee_bps


@router.post("/quote/amount-out")
async def quote_amount_out(
    request: AmountOutRequest,
    config: PairConfig = Depends(get_pair_config),
) -> AmountOutResponse:
    """Output for an exact input against the given reserves."""
    amount_out = constant_product.get_amount_out(
        int(request.amount_in),
        int(request.reserve_in),
        int(request.reserve_out),
        _fee_bps(request, config),
    )
    logger.debug("quoted_amount_out", amount_in=request.amount_in, amount_out=amount_out)
    return AmountOutResponse(amount_out=str(amount_out))


@router.post("/quote/amount-in")
async def quote_amount_in(
    request: AmountInRequest,
    config: PairConfig = Depends(get_pair_config),
) -> AmountInResponse:
    """Input required for an exact output against the given reserves."""
    amount_in = constant_product.get_amount_in(
        int(request.amount_out),
        int(request.reserve_in),
        int(request.reserve_out),
        _fee_bps(request, config),
    )
    logger.debug("quoted_amount_in", amount_out=request.amount_out, amount_in=amount_in)
    return AmountInResponse(amount_in=str(amount_in))


@router.post("/quote/zap-in")
async def quote_zap_in(
    request: ZapInRequest,
    config: PairConfig = Depends(get_pair_config),
) -> ZapInResponse:
    """Swap leg of a single-asset deposit."""
    split = split_for_zap(
        int(request.amount_in),
        int(request.reserve_in),
        int(request.reserve_out),
        _fee_bps(request, config),
    )
    return ZapInResponse(swap_amount=str(split.swap_amount), amount_out=str(split.amount_out))


@router.post("/pairs/address")
async def pair_address(request: PairAddressRequest) -> PairAddressResponse:
    """Deterministic pair address for a factory and an unordered asset set."""
    token0, token1 = sort_assets(request.token_a, request.token_b)
    pair = derive_pair_address(
        request.factory,
        token0,
        token1,
        request.init_code_hash or INIT_CODE_PAIR_HASH,
    )
    return PairAddressResponse(pair=pair, token0=token0, token1=token1)
