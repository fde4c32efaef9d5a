"""Tournament settlement endpoints: balances, transfers, pool odds."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from potsplit.models.balance import (
    BalanceResponse,
    PoolOddsResponse,
    SettlementComputeRequest,
    SettlementResponse,
    TransferResponse,
)
from potsplit.services.errors import (
    SettlementError,
    TournamentDataUnavailableError,
    TournamentNotFoundError,
)
from potsplit.services.settlement_service import SettlementService

logger = logging.getLogger("potsplit.routers.settlements")

router = APIRouter(prefix="/api/tournaments", tags=["settlements"])


def get_settlement_service() -> SettlementService:
    return SettlementService()


def _http_error(exc: SettlementError) -> HTTPException:
    if isinstance(exc, TournamentNotFoundError):
        return HTTPException(status.HTTP_404_NOT_FOUND, "Tournament not found.")
    if isinstance(exc, TournamentDataUnavailableError):
        logger.error("Settlement data unavailable: %s", exc)
        return HTTPException(
            status.HTTP_503_SERVICE_UNAVAILABLE, "Tournament data temporarily unavailable.",
        )
    logger.error("Settlement failed: %s", exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Settlement failed.")


async def _settle(service: SettlementService, tournament_id: str) -> SettlementResponse:
    try:
        return await service.get_settlement(tournament_id)
    except SettlementError as exc:
        raise _http_error(exc) from exc


@router.post("/settlement/compute", response_model=SettlementResponse)
async def compute_settlement(
    body: SettlementComputeRequest,
    service: SettlementService = Depends(get_settlement_service),
):
    """Settle a snapshot sent by the caller. Does not touch the store."""
    return service.compute(body.roster, body.wagers)


@router.get("/{tournament_id}/settlement", response_model=SettlementResponse)
async def get_settlement(
    tournament_id: str,
    service: SettlementService = Depends(get_settlement_service),
):
    """Balances, transfers and skipped wagers for a tournament."""
    return await _settle(service, tournament_id)


@router.get("/{tournament_id}/balances", response_model=list[BalanceResponse])
async def get_balances(
    tournament_id: str,
    service: SettlementService = Depends(get_settlement_service),
):
    """Net balance per member, highest first."""
    settlement = await _settle(service, tournament_id)
    return settlement.balances


@router.get("/{tournament_id}/transfers", response_model=list[TransferResponse])
async def get_transfers(
    tournament_id: str,
    service: SettlementService = Depends(get_settlement_service),
):
    settlement = await _settle(service, tournament_id)
    return settlement.transfers


@router.get("/{tournament_id}/wagers/{wager_id}/odds", response_model=PoolOddsResponse)
async def get_wager_odds(
    tournament_id: str,
    wager_id: str,
    service: SettlementService = Depends(get_settlement_service),
):
    """Pool size and implied odds per option of one wager."""
    try:
        odds = await service.get_pool_odds(tournament_id, wager_id)
    except SettlementError as exc:
        raise _http_error(exc) from exc
    if odds is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Wager not found.")
    return odds
