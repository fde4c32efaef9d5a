"""
backend/tests/test_result_classifier.py

Purpose:
    Winner/loser partitioning per wager type, push detection and the
    malformed-pick policies.
"""

from __future__ import annotations

import pytest

from potsplit.models.wager import Wager
from potsplit.services.errors import ClassificationError, MalformedSelectionError
from potsplit.services.result_classifier import (
    MalformedPickPolicy,
    classify_wager,
    over_under_label,
)


def _wager(wager_type: str, picks: list[tuple[str, object, float]], **fields) -> Wager:
    return Wager(
        id=fields.pop("id", "w1"),
        type=wager_type,
        status="settled",
        picks=[
            {"participant_id": pid, "selection": sel, "stake_amount": stake}
            for pid, sel, stake in picks
        ],
        **fields,
    )


def _ids(picks) -> list[str]:
    return [p.participant_id for p in picks]


def test_single_winner_partition():
    wager = _wager(
        "single-winner",
        [("P1", "A", 100), ("P2", "B", 100), ("P3", "A", 50)],
        options=["A", "B"],
        result={"winner": "A"},
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1", "P3"]
    assert _ids(result.losers) == ["P2"]
    assert result.is_push is False


def test_single_winner_without_matching_pick_is_push():
    wager = _wager(
        "single-winner",
        [("P1", "A", 100), ("P2", "B", 100), ("P3", "A", 50)],
        options=["A", "B"],
        result={"winner": "C"},
    )

    result = classify_wager(wager)

    assert result.winners == ()
    assert result.is_push is True


def test_exact_score_compares_structured_pairs():
    wager = _wager(
        "score",
        [("P1", '{"home": 2, "away": 1}', 10), ("P2", {"home": 1, "away": 2}, 10), ("P3", "2-1", 5)],
        result={"score": {"home": 2, "away": 1}},
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1", "P3"]
    assert _ids(result.losers) == ["P2"]


def test_over_under_total_above_line_is_over():
    wager = _wager(
        "over_under",
        [("P1", "Over", 20), ("P2", "Under", 20), ("P3", "over", 10)],
        line=2.5,
        result={"total": 3},
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1", "P3"]
    assert _ids(result.losers) == ["P2"]


def test_over_under_uses_score_when_no_total():
    wager = _wager(
        "over_under",
        [("P1", "Over", 20), ("P2", "Under", 20)],
        line=3.5,
        result={"home": 2, "away": 1},
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P2"]


def test_total_equal_to_line_goes_under():
    assert over_under_label(3, 3) == "Under"
    assert over_under_label(3.5, 3) == "Over"


def test_unknown_type_raises():
    wager = _wager("parlay", [("P1", "A", 10)], result={"winner": "A"})

    with pytest.raises(ClassificationError) as exc_info:
        classify_wager(wager)
    assert "unknown wager type" in exc_info.value.reason


def test_missing_outcome_raises():
    wager = _wager("winner", [("P1", "A", 10)])

    with pytest.raises(ClassificationError):
        classify_wager(wager)


def test_over_under_without_line_raises():
    wager = _wager("over_under", [("P1", "Over", 10)], result={"total": 4})

    with pytest.raises(ClassificationError):
        classify_wager(wager)


def test_no_picks_is_empty_not_push():
    wager = _wager("winner", [], result={"winner": "A"})

    result = classify_wager(wager)

    assert result.is_empty is True
    assert result.is_push is False


def test_malformed_score_counts_as_loss_by_default():
    wager = _wager(
        "score",
        [("P1", "2-1", 10), ("P2", "garbage", 10)],
        result={"score": "2-1"},
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1"]
    assert _ids(result.losers) == ["P2"]


def test_malformed_score_skips_wager_under_strict_policy():
    wager = _wager(
        "score",
        [("P1", "2-1", 10), ("P2", "garbage", 10)],
        result={"score": "2-1"},
    )

    with pytest.raises(MalformedSelectionError):
        classify_wager(wager, MalformedPickPolicy.skip_wager)


@pytest.mark.parametrize("recorded", [{"winner": "Over"}, {"winner": "over"}, "OVER"])
def test_over_under_recorded_as_winning_side(recorded):
    wager = _wager(
        "over_under",
        [("P1", "Over", 10), ("P2", "Under", 10)],
        line=2.5,
        result=recorded,
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1"]
    assert _ids(result.losers) == ["P2"]


def test_over_under_winner_that_is_not_a_side_raises():
    wager = _wager("over_under", [("P1", "Over", 10)], line=2.5, result={"winner": "Home"})

    with pytest.raises(ClassificationError) as exc_info:
        classify_wager(wager)
    assert exc_info.value.reason == "outcome has no total"


@pytest.mark.parametrize("recorded", [{"winner": "2-1"}, "2-1", {"winner": '{"home": 2, "away": 1}'}])
def test_exact_score_recorded_as_winner_text(recorded):
    wager = _wager(
        "score",
        [("P1", "2-1", 10), ("P2", {"home": 0, "away": 0}, 10)],
        result=recorded,
    )

    result = classify_wager(wager)

    assert _ids(result.winners) == ["P1"]
    assert _ids(result.losers) == ["P2"]
