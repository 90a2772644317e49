"""
Blockchain balance endpoints.

Endpoints (/api/v1/blockchain):
- POST /balance - Current balance (cached 5 min)
- POST /balance/historical - End-of-day transfer totals (cached 60 min)
- POST /balances/prefetch - Warm the cache for many wallets concurrently
- DELETE /balance - Drop cached balances for a wallet

Provider failures are reported in the ``error`` field with a zero balance,
never as an HTTP error.
"""

import logging

from fastapi import APIRouter

from backoffice.server.models.blockchain import (
    BalanceResponse,
    HistoricalBalanceRequest,
    HistoricalBalanceResponse,
    InvalidateBalanceRequest,
    PrefetchBalancesRequest,
    PrefetchBalancesResponse,
    WalletBalanceRequest,
)
from backoffice.server.services.blockchain_balance_cache import normalize_chain
from backoffice.server.utils.api import BalanceService, handle_api_exceptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/blockchain", tags=["Blockchain"])


@router.post("/balance", response_model=BalanceResponse)
@handle_api_exceptions("get blockchain balance", logger)
async def get_balance(request: WalletBalanceRequest, service: BalanceService):
    result = await service.get_balance_result(request.address, request.currency, request.blockchain)
    return BalanceResponse(**result.to_dict())


@router.post("/balance/historical", response_model=HistoricalBalanceResponse)
@handle_api_exceptions("get historical blockchain balance", logger)
async def get_historical_balance(request: HistoricalBalanceRequest, service: BalanceService):
    """Incoming, outgoing and net totals up to the end of asOfDate."""
    summary = await service.get_historical_balance(
        request.address, request.blockchain, request.currency, request.as_of,
    )

    response = HistoricalBalanceResponse(
        address=request.address,
        blockchain=normalize_chain(request.blockchain),
        currency=request.currency.upper(),
        as_of=request.as_of,
    )
    if summary is None:
        response.error = "Historical balance unavailable"
        return response

    response.net_amount = summary.net_amount
    response.total_incoming = summary.total_incoming
    response.total_outgoing = summary.total_outgoing
    return response


@router.post("/balances/prefetch", response_model=PrefetchBalancesResponse)
@handle_api_exceptions("prefetch blockchain balances", logger)
async def prefetch_balances(request: PrefetchBalancesRequest, service: BalanceService):
    results = await service.prefetch_balances(request.wallets)
    return PrefetchBalancesResponse(
        balances=[BalanceResponse(**result.to_dict()) for result in results],
        total=len(results),
        failed=sum(1 for result in results if result.error),
    )


@router.delete("/balance")
@handle_api_exceptions("invalidate blockchain balance cache", logger)
async def invalidate_balance(request: InvalidateBalanceRequest, service: BalanceService):
    deleted = await service.invalidate_cache(request.address, request.blockchain, request.currency)
    return {"success": True, "deleted": deleted}
