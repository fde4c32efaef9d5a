"""Pari-mutuel pool summary and implied odds for a single wager."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal

from potsplit.models.wager import LabelSelection, ScoreSelection, Wager
from potsplit.utils import from_cents, to_cents

DEFAULT_POOL_FEE = 0.05
DEFAULT_ODDS_CAP = 99.99


@dataclass(frozen=True)
class PoolSummary:
    total_pot: Decimal
    total_picks: int
    option_totals: dict[str, Decimal]


def selection_key(selection) -> str | None:
    if isinstance(selection, LabelSelection):
        return selection.value
    if isinstance(selection, ScoreSelection):
        return selection.key()
    return None


def summarize_pool(wager: Wager) -> PoolSummary:
    """Total pot, pick count and stake per option (declared options first)."""
    per_option: dict[str, int] = defaultdict(int, {option: 0 for option in wager.options})
    total = 0
    for pick in wager.picks:
        cents = to_cents(pick.stake_amount)
        total += cents
        key = selection_key(pick.selection)
        if key is not None:
            per_option[key] += cents
    return PoolSummary(
        total_pot=from_cents(total),
        total_picks=len(wager.picks),
        option_totals={key: from_cents(cents) for key, cents in per_option.items()},
    )


def calculate_pool_odds(
    wager: Wager,
    fee: float = DEFAULT_POOL_FEE,
    cap: float = DEFAULT_ODDS_CAP,
) -> dict[str, float | None]:
    """Decimal odds per option: pot after fee divided by the stake on that option.

    None when the pot is empty or nobody backed the option.
    """
    summary = summarize_pool(wager)
    options = list(wager.options) or list(summary.option_totals)
    if summary.total_pot <= 0:
        return {option: None for option in options}

    effective_pot = float(summary.total_pot) * (1 - fee)
    odds: dict[str, float | None] = {}
    for option in options:
        on_option = float(summary.option_totals.get(option, 0))
        if on_option <= 0:
            odds[option] = None
            continue
        odds[option] = round(min(effective_pot / on_option, cap), 2)
    return odds
