"""
backend/potsplit/services/settlement_service.py

Purpose:
    Request/response orchestration around the pure settlement engine: load
    the roster and settled wagers, compute balances, then minimize debts.
    The debt sweep only starts after every wager has been accumulated.

Dependencies:
    - potsplit.services.tournament_repository
    - potsplit.services.balance_service
    - potsplit.services.debt_minimizer
    - potsplit.services.pool_odds
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Iterable

from potsplit.config import settings
from potsplit.models.balance import (
    Participant,
    PoolOddsResponse,
    SettlementResponse,
    balance_to_response,
    transfer_to_response,
)
from potsplit.models.wager import Wager
from potsplit.services.balance_service import accumulate_balances
from potsplit.services.debt_minimizer import minimize_debts
from potsplit.services.pool_odds import calculate_pool_odds, summarize_pool
from potsplit.services.result_classifier import MalformedPickPolicy
from potsplit.services.tournament_repository import TournamentRepository
from potsplit.utils import utcnow

logger = logging.getLogger("potsplit.settlement_service")


class SettlementService:
    """Computes tournament settlements on demand. Holds no state between calls."""

    def __init__(
        self,
        repository: TournamentRepository | None = None,
        *,
        policy: MalformedPickPolicy | str | None = None,
        max_workers: int | None = None,
        epsilon: float | None = None,
        default_display_name: str | None = None,
    ) -> None:
        self.repository = repository or TournamentRepository()
        self.policy = MalformedPickPolicy(policy or settings.MALFORMED_PICK_POLICY)
        self.max_workers = max_workers or settings.SETTLEMENT_MAX_WORKERS
        self.epsilon = Decimal(str(epsilon if epsilon is not None else settings.SETTLEMENT_EPSILON))
        self.default_display_name = default_display_name or settings.DEFAULT_DISPLAY_NAME

    def compute(
        self,
        roster: Iterable[Participant],
        wagers: Iterable[Wager],
        tournament_id: str | None = None,
    ) -> SettlementResponse:
        """Run the engine over an already materialized snapshot."""
        report = accumulate_balances(
            roster,
            wagers,
            policy=self.policy,
            max_workers=self.max_workers,
            default_display_name=self.default_display_name,
        )
        transfers = minimize_debts(report.balances, epsilon=self.epsilon)

        drift = sum((b.net for b in report.balances), Decimal("0.00"))
        if abs(drift) >= self.epsilon:
            logger.warning(
                "Balances of tournament %s do not sum to zero (drift=%s)",
                tournament_id, drift,
            )

        return SettlementResponse(
            tournament_id=tournament_id,
            balances=[balance_to_response(b) for b in report.balances],
            transfers=[transfer_to_response(t) for t in transfers],
            skipped_wagers=report.skipped,
            push_wager_ids=report.push_wager_ids,
            meta={
                "settled_wagers": report.settled_count,
                "zero_sum_drift": float(drift),
                "malformed_pick_policy": self.policy.value,
                "generated_at_utc": utcnow().isoformat(),
            },
        )

    async def get_settlement(self, tournament_id: str) -> SettlementResponse:
        """Load the tournament snapshot and settle it."""
        roster, wagers = await asyncio.gather(
            self.repository.list_participants(tournament_id),
            self.repository.list_settled_wagers(tournament_id),
        )
        logger.info(
            "Settling tournament %s: participants=%d settled_wagers=%d",
            tournament_id, len(roster), len(wagers),
        )
        return self.compute(roster, wagers, tournament_id=tournament_id)

    async def get_pool_odds(self, tournament_id: str, wager_id: str) -> PoolOddsResponse | None:
        wager = await self.repository.get_wager(tournament_id, wager_id)
        if wager is None:
            return None
        summary = summarize_pool(wager)
        return PoolOddsResponse(
            wager_id=wager.id,
            total_pot=float(summary.total_pot),
            total_picks=summary.total_picks,
            option_totals={k: float(v) for k, v in summary.option_totals.items()},
            odds=calculate_pool_odds(wager, fee=settings.POOL_FEE, cap=settings.POOL_ODDS_CAP),
            fee=settings.POOL_FEE,
        )
