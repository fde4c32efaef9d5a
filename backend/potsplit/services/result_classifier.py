"""
backend/potsplit/services/result_classifier.py

Purpose:
    Split the picks of a settled wager into winners and losers according to
    its type and recorded outcome. A wager with losers but no winners is a
    push and must not reach the pot distributor.

Dependencies:
    - potsplit.models.wager
    - potsplit.services.errors
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from potsplit.models.wager import (
    OVER,
    UNDER,
    LabelSelection,
    MalformedSelection,
    Pick,
    ScoreSelection,
    Wager,
    WagerOutcome,
    WagerType,
)
from potsplit.services.errors import ClassificationError, MalformedSelectionError

logger = logging.getLogger("potsplit.result_classifier")


class MalformedPickPolicy(str, Enum):
    treat_as_loser = "treat_as_loser"
    skip_wager = "skip_wager"


@dataclass(frozen=True)
class Classification:
    winners: tuple[Pick, ...]
    losers: tuple[Pick, ...]

    @property
    def is_empty(self) -> bool:
        return not self.winners and not self.losers

    @property
    def is_push(self) -> bool:
        return not self.winners and bool(self.losers)


def over_under_label(actual_total: float, line: float) -> str:
    """Over wins only when the total strictly exceeds the line."""
    return OVER if actual_total > line else UNDER


def _winning_matcher(wager: Wager, wager_type: WagerType, outcome: WagerOutcome) -> Callable[[object], bool]:
    if wager_type is WagerType.single_winner:
        if outcome.winner is None:
            raise ClassificationError(wager.id, "outcome has no winning option")
        winner = outcome.winner
        return lambda sel: isinstance(sel, LabelSelection) and sel.value == winner

    if wager_type is WagerType.exact_score:
        if outcome.score is None:
            raise ClassificationError(wager.id, "outcome has no correct score")
        score = outcome.score
        return lambda sel: isinstance(sel, ScoreSelection) and sel.same_score(score)

    actual_total = outcome.actual_total()
    if actual_total is None:
        # Results recorded as the winning side rather than the total.
        if outcome.winner not in (OVER, UNDER):
            raise ClassificationError(wager.id, "outcome has no total")
        label = outcome.winner
        return lambda sel: isinstance(sel, LabelSelection) and sel.value == label
    if wager.line is None:
        raise ClassificationError(wager.id, "over-under wager has no line")
    label = over_under_label(actual_total, wager.line)
    return lambda sel: isinstance(sel, LabelSelection) and sel.value == label


def classify_wager(
    wager: Wager,
    policy: MalformedPickPolicy = MalformedPickPolicy.treat_as_loser,
) -> Classification:
    """Partition ``wager.picks`` into (winners, losers).

    Raises ClassificationError for an unknown type or a missing outcome, and
    MalformedSelectionError when ``policy`` is skip_wager and any pick could
    not be parsed at ingestion.
    """
    wager_type = wager.wager_type
    if wager_type is None:
        raise ClassificationError(wager.id, f"unknown wager type {wager.type!r}")
    if not wager.picks:
        return Classification(winners=(), losers=())
    if wager.result is None:
        raise ClassificationError(wager.id, "settled wager has no outcome")

    malformed = [p for p in wager.picks if isinstance(p.selection, MalformedSelection)]
    if malformed:
        if MalformedPickPolicy(policy) is MalformedPickPolicy.skip_wager:
            raise MalformedSelectionError(
                wager.id, f"{len(malformed)} malformed selection(s)",
            )
        logger.warning(
            "Wager %s: %d malformed selection(s) counted as losses (participants=%s)",
            wager.id, len(malformed), ",".join(p.participant_id for p in malformed),
        )

    is_winner = _winning_matcher(wager, wager_type, wager.result)
    winners: list[Pick] = []
    losers: list[Pick] = []
    for pick in wager.picks:
        if is_winner(pick.selection):
            winners.append(pick)
        else:
            losers.append(pick)
    return Classification(winners=tuple(winners), losers=tuple(losers))
