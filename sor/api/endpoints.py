"""API endpoints for the order router."""

import asyncio
import functools

import structlog
from fastapi import APIRouter, Depends, HTTPException

from sor.costs import SwapCostCalculator, get_default_swap_cost_calculator
from sor.errors import InsufficientLiquidity, InvalidConfiguration, NoRoute
from sor.models.swap import SwapInfo, SwapRequest
from sor.pool_cacher import PoolCacher
from sor.routing import OptimizerConfig
from sor.sor import SOR

logger = structlog.get_logger()

router = APIRouter()


def get_swap_cost_calculator() -> SwapCostCalculator:
    """Dependency provider for the gas cost calculator.

    Defaults to the process-wide calculator, so prices cached for HTTP
    requests are the ones in-process routers see.

    Override this in tests or deployments to inject a priced calculator:
        app.dependency_overrides[get_swap_cost_calculator] = lambda: calculator
    """
    return get_default_swap_cost_calculator()


def get_optimizer_config() -> OptimizerConfig:
    """Dependency provider for optimizer search parameters."""
    return OptimizerConfig()


@router.post("/swaps")
async def get_swaps(
    request: SwapRequest,
    swap_cost_calculator: SwapCostCalculator = Depends(get_swap_cost_calculator),
    optimizer_config: OptimizerConfig = Depends(get_optimizer_config),
) -> SwapInfo:
    """Route a trade over the pools in the request.

    Error Handling:
        - Invalid request schema or trade parameters: 422
        - No route or not enough liquidity: empty SwapInfo
        - Unexpected router exception: logged, empty SwapInfo
    """
    logger.info(
        "received_swap_request",
        token_in=request.token_in,
        token_out=request.token_out,
        swap_type=request.swap_type.name,
        swap_amount=request.swap_amount,
        pool_count=len(request.pools),
    )

    sor = SOR(PoolCacher(request.pools), swap_cost_calculator, optimizer_config)
    call = functools.partial(
        sor.get_swaps,
        request.token_in,
        request.token_out,
        request.swap_type,
        request.swap_amount,
        request.options,
    )

    try:
        loop = asyncio.get_event_loop()
        swap_info = await loop.run_in_executor(None, call)
    except InvalidConfiguration as err:
        raise HTTPException(status_code=422, detail=str(err)) from err
    except (NoRoute, InsufficientLiquidity) as err:
        logger.info(
            "no_route_found",
            token_in=request.token_in,
            token_out=request.token_out,
            reason=str(err),
        )
        return SwapInfo.empty(request.token_in, request.token_out)
    except Exception:
        logger.exception(
            "router_error",
            token_in=request.token_in,
            token_out=request.token_out,
            message="Router raised an exception, returning empty swap info",
        )
        return SwapInfo.empty(request.token_in, request.token_out)

    logger.info(
        "returning_swaps",
        swap_count=len(swap_info.swaps),
        return_amount=swap_info.return_amount,
    )
    return swap_info
