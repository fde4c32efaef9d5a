"""
backend/potsplit/services/pot_distributor.py

Purpose:
    Pari-mutuel pot split: the losing stakes are shared among the winners in
    proportion to their own stakes. Works in integer cents so that the winner
    profits always add up to the losing pool exactly.

Dependencies:
    - potsplit.utils
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from potsplit.models.wager import Pick
from potsplit.utils import from_cents, to_cents


@dataclass(frozen=True)
class PotDistribution:
    """Per-pick money movement of one wager."""
    winner_profits: tuple[tuple[str, Decimal], ...]
    loser_losses: tuple[tuple[str, Decimal], ...]
    pool: Decimal

    @property
    def total_profit(self) -> Decimal:
        return sum((amount for _, amount in self.winner_profits), Decimal("0.00"))

    @property
    def total_loss(self) -> Decimal:
        return sum((amount for _, amount in self.loser_losses), Decimal("0.00"))


def split_cents(pool_cents: int, stakes: Sequence[tuple[str, int]]) -> list[int]:
    """Split ``pool_cents`` across ``stakes`` (participant_id, stake_cents).

    Floor shares first, then the leftover cents one by one to the largest
    stakes (participant id breaks ties). Zero stakes always get zero.
    """
    total_stake = sum(stake for _, stake in stakes)
    if pool_cents <= 0 or total_stake <= 0:
        return [0] * len(stakes)

    shares = [pool_cents * stake // total_stake for _, stake in stakes]
    residual = pool_cents - sum(shares)
    order = sorted(
        (i for i, (_, stake) in enumerate(stakes) if stake > 0),
        key=lambda i: (-stakes[i][1], stakes[i][0], i),
    )
    for i in order[:residual]:
        shares[i] += 1
    return shares


def distribute_pot(winners: Sequence[Pick], losers: Sequence[Pick]) -> PotDistribution:
    """Profit per winner is ``L * stake / W``; each loser loses their full stake."""
    loser_cents = [(p.participant_id, to_cents(p.stake_amount)) for p in losers]
    winner_cents = [(p.participant_id, to_cents(p.stake_amount)) for p in winners]
    pool_cents = sum(cents for _, cents in loser_cents)

    shares = split_cents(pool_cents, winner_cents)

    return PotDistribution(
        winner_profits=tuple(
            (pid, from_cents(share)) for (pid, _), share in zip(winner_cents, shares)
        ),
        loser_losses=tuple((pid, from_cents(cents)) for pid, cents in loser_cents),
        pool=from_cents(pool_cents),
    )
