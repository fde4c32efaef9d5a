"""
backend/potsplit/services/balance_service.py

Purpose:
    Tournament-wide balance accumulation. Each settled wager is classified and
    its pot distributed independently; the per-wager results are then folded
    into one NetBalance per participant by a single summation pass.

Dependencies:
    - potsplit.services.result_classifier
    - potsplit.services.pot_distributor
    - concurrent.futures (optional per-wager fan-out)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Iterable, Sequence

from potsplit.models.balance import NetBalance, Participant, SkippedWager
from potsplit.models.wager import Wager, WagerStatus
from potsplit.services.errors import ClassificationError
from potsplit.services.pot_distributor import distribute_pot
from potsplit.services.result_classifier import MalformedPickPolicy, classify_wager
from potsplit.utils import from_cents, to_cents

logger = logging.getLogger("potsplit.balance_service")

DEFAULT_DISPLAY_NAME = "Player"


@dataclass
class WagerSettlement:
    """Money movement of a single wager, in cents per participant."""
    wager_id: str
    won: dict[str, int] = field(default_factory=dict)
    lost: dict[str, int] = field(default_factory=dict)
    push: bool = False
    skipped_reason: str | None = None


@dataclass
class BalanceReport:
    balances: list[NetBalance]
    skipped: list[SkippedWager]
    push_wager_ids: list[str]
    settled_count: int


def settle_wager(
    wager: Wager,
    policy: MalformedPickPolicy = MalformedPickPolicy.treat_as_loser,
) -> WagerSettlement:
    """Classify one wager and distribute its pot. Never raises for bad data."""
    try:
        classification = classify_wager(wager, policy)
    except ClassificationError as exc:
        logger.warning("Skipping wager %s: %s", wager.id, exc.reason)
        return WagerSettlement(wager_id=wager.id, skipped_reason=exc.reason)

    if classification.is_empty:
        return WagerSettlement(wager_id=wager.id)
    if classification.is_push:
        logger.debug("Wager %s is a push: no winning picks", wager.id)
        return WagerSettlement(wager_id=wager.id, push=True)
    if all(to_cents(p.stake_amount) == 0 for p in classification.winners):
        # Nobody on the winning side risked anything; losers keep their stakes.
        logger.debug("Wager %s is a push: winners staked nothing", wager.id)
        return WagerSettlement(wager_id=wager.id, push=True)

    distribution = distribute_pot(classification.winners, classification.losers)
    won: dict[str, int] = defaultdict(int)
    lost: dict[str, int] = defaultdict(int)
    for participant_id, profit in distribution.winner_profits:
        won[participant_id] += to_cents(profit)
    for participant_id, loss in distribution.loser_losses:
        lost[participant_id] += to_cents(loss)
    return WagerSettlement(wager_id=wager.id, won=dict(won), lost=dict(lost))


def _settle_all(
    wagers: Sequence[Wager], policy: MalformedPickPolicy, max_workers: int,
) -> list[WagerSettlement]:
    if max_workers > 1 and len(wagers) > 1:
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="settle") as pool:
            return list(pool.map(partial(settle_wager, policy=policy), wagers))
    return [settle_wager(w, policy) for w in wagers]


def _unique_roster(roster: Iterable[Participant]) -> list[Participant]:
    seen: set[str] = set()
    out: list[Participant] = []
    for participant in roster:
        if participant.id in seen:
            continue
        seen.add(participant.id)
        out.append(participant)
    return out


def accumulate_balances(
    roster: Iterable[Participant],
    wagers: Iterable[Wager],
    *,
    policy: MalformedPickPolicy | str = MalformedPickPolicy.treat_as_loser,
    max_workers: int = 1,
    default_display_name: str = DEFAULT_DISPLAY_NAME,
) -> BalanceReport:
    """Sum every settled wager into one NetBalance per participant.

    Wagers that are not settled, and wagers that fail classification,
    are skipped and reported. Participants with picks but no roster entry are
    appended with ``default_display_name`` so the balances still sum to zero.
    """
    policy = MalformedPickPolicy(policy)
    settled: list[Wager] = []
    skipped: list[SkippedWager] = []
    for wager in wagers:
        if wager.status is WagerStatus.settled:
            settled.append(wager)
        else:
            skipped.append(SkippedWager(wager_id=wager.id, reason=f"wager is {wager.status.value}, not settled"))
    if skipped:
        logger.warning("Ignoring %d wager(s) that are not settled", len(skipped))

    results = _settle_all(settled, policy, max_workers)

    won: dict[str, int] = defaultdict(int)
    lost: dict[str, int] = defaultdict(int)
    pushes: list[str] = []
    for result in results:
        if result.skipped_reason is not None:
            skipped.append(SkippedWager(wager_id=result.wager_id, reason=result.skipped_reason))
            continue
        if result.push:
            pushes.append(result.wager_id)
            continue
        for participant_id, cents in result.won.items():
            won[participant_id] += cents
        for participant_id, cents in result.lost.items():
            lost[participant_id] += cents

    participants = _unique_roster(roster)
    known = {p.id for p in participants}
    strangers = sorted((won.keys() | lost.keys()) - known)
    if strangers:
        logger.warning(
            "Picks from %d participant(s) outside the roster: %s",
            len(strangers), ",".join(strangers),
        )
        participants.extend(Participant(id=pid) for pid in strangers)

    balances = [
        NetBalance(
            participant_id=p.id,
            display_name=p.display_name or p.username or default_display_name,
            photo_url=p.photo_url,
            total_won=from_cents(won.get(p.id, 0)),
            total_lost=from_cents(lost.get(p.id, 0)),
        )
        for p in participants
    ]
    balances.sort(key=lambda b: (-b.net, b.participant_id))

    logger.info(
        "Balances computed: participants=%d settled=%d pushes=%d skipped=%d",
        len(balances), len(settled), len(pushes), len(skipped),
    )
    return BalanceReport(
        balances=balances,
        skipped=skipped,
        push_wager_ids=pushes,
        settled_count=len(settled),
    )


def compute_balances(
    roster: Iterable[Participant],
    settled_wagers: Iterable[Wager],
    **options,
) -> list[NetBalance]:
    """Net balances sorted by net descending. See accumulate_balances."""
    return accumulate_balances(roster, settled_wagers, **options).balances
