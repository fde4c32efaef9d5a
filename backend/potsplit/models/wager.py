"""
backend/potsplit/models/wager.py

Purpose:
    Wager, pick and outcome models. Raw documents coming from the store or
    from API payloads are normalized here, at the ingestion boundary, so the
    classifier only ever sees one tagged selection representation.

Dependencies:
    - pydantic
"""

from __future__ import annotations

import json
import re
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator


class WagerType(str, Enum):
    single_winner = "single-winner"
    exact_score = "exact-score"
    over_under = "over-under"


# Type names used by the mobile app's document store.
WAGER_TYPE_ALIASES: dict[str, WagerType] = {
    "single-winner": WagerType.single_winner,
    "winner": WagerType.single_winner,
    "custom": WagerType.single_winner,
    "exact-score": WagerType.exact_score,
    "score": WagerType.exact_score,
    "over-under": WagerType.over_under,
    "over_under": WagerType.over_under,
}

OVER = "Over"
UNDER = "Under"


def resolve_wager_type(raw: Any) -> WagerType | None:
    """Map a stored type name to a WagerType, or None when unrecognised."""
    if isinstance(raw, WagerType):
        return raw
    if not isinstance(raw, str):
        return None
    return WAGER_TYPE_ALIASES.get(raw.strip().lower())


class WagerStatus(str, Enum):
    open = "open"
    locked = "locked"
    settled = "settled"
    cancelled = "cancelled"


# ---------- Selections ----------

class LabelSelection(BaseModel):
    """An option label (single-winner) or Over/Under label."""
    kind: Literal["label"] = "label"
    value: str


class ScoreSelection(BaseModel):
    """A predicted or final {home, away} score."""
    kind: Literal["score"] = "score"
    home: int = Field(ge=0)
    away: int = Field(ge=0)

    def key(self) -> str:
        return f"{self.home}-{self.away}"

    def same_score(self, other: "ScoreSelection") -> bool:
        return self.home == other.home and self.away == other.away


class MalformedSelection(BaseModel):
    """A selection that could not be read for its wager type."""
    kind: Literal["malformed"] = "malformed"
    raw: Any = None
    reason: str = ""


Selection = Annotated[
    Union[LabelSelection, ScoreSelection, MalformedSelection],
    Field(discriminator="kind"),
]

_SCORE_TEXT = re.compile(r"^\s*(\d+)\s*[-:]\s*(\d+)\s*$")


def _goal_count(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_score(raw: Any) -> ScoreSelection | None:
    """Read a score from a dict, a JSON string or ``"2-1"`` / ``"2:1"`` text."""
    if isinstance(raw, ScoreSelection):
        return raw
    if isinstance(raw, str):
        match = _SCORE_TEXT.match(raw)
        if match:
            return ScoreSelection(home=int(match.group(1)), away=int(match.group(2)))
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if isinstance(raw, dict):
        home = _goal_count(raw.get("home"))
        away = _goal_count(raw.get("away"))
        if home is not None and away is not None:
            return ScoreSelection(home=home, away=away)
    return None


def normalize_selection(wager_type: WagerType | None, raw: Any) -> dict[str, Any]:
    """Turn a raw pick selection into the tagged dict form of ``Selection``."""
    if isinstance(raw, (LabelSelection, ScoreSelection, MalformedSelection)):
        return raw.model_dump()
    if isinstance(raw, dict) and raw.get("kind") in ("label", "score", "malformed"):
        return raw

    if wager_type is WagerType.exact_score:
        score = parse_score(raw)
        if score is None:
            return {"kind": "malformed", "raw": raw, "reason": "unparseable score"}
        return score.model_dump()

    if not isinstance(raw, str):
        return {"kind": "malformed", "raw": raw, "reason": "selection is not a label"}

    if wager_type is WagerType.over_under:
        lowered = raw.strip().lower()
        if lowered == "over":
            return {"kind": "label", "value": OVER}
        if lowered == "under":
            return {"kind": "label", "value": UNDER}
    return {"kind": "label", "value": raw}


# ---------- Outcome ----------

class WagerOutcome(BaseModel):
    """Recorded result of a settled wager."""
    winner: Optional[str] = None
    score: Optional[ScoreSelection] = None
    total: Optional[float] = None

    def actual_total(self) -> float | None:
        if self.total is not None:
            return self.total
        if self.score is not None:
            return float(self.score.home + self.score.away)
        return None


def normalize_outcome(raw: Any, wager_type: WagerType | None = None) -> Any:
    """Accept the loose result payloads the app stores.

    ``"A"`` is a winner, ``{"home": 2, "away": 1}`` is a score, a bare number
    is a total. The app's results screen writes ``{"winner": option}`` for
    every type, so an exact-score winner is read as a score and an
    over-under winner is canonicalized to Over/Under.
    """
    if raw is None or isinstance(raw, WagerOutcome):
        return raw
    if isinstance(raw, str):
        raw = {"winner": raw}
    elif isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return {"total": raw}
    if not isinstance(raw, dict):
        return raw
    if not raw:
        return None
    if not raw.keys() & {"winner", "score", "total"} and raw.keys() >= {"home", "away"}:
        return {"score": parse_score(raw)}
    out = dict(raw)
    if out.get("score") is not None:
        out["score"] = parse_score(out["score"])

    winner = out.get("winner")
    if isinstance(winner, str):
        if wager_type is WagerType.exact_score and out.get("score") is None:
            out["score"] = parse_score(winner)
        elif wager_type is WagerType.over_under:
            label = normalize_selection(wager_type, winner)
            out["winner"] = label.get("value", winner)
    return out


# ---------- Wager & Pick ----------

class Pick(BaseModel):
    """One participant's selection and stake on a wager."""
    wager_id: str = ""
    participant_id: str
    selection: Selection
    stake_amount: Decimal = Field(default=Decimal("0"), ge=0)


class Wager(BaseModel):
    """A bettable proposition with its picks attached."""
    id: str
    tournament_id: str = ""
    event_id: str = ""
    title: str = ""
    type: str
    options: list[str] = []
    line: Optional[float] = None
    status: WagerStatus = WagerStatus.open
    result: Optional[WagerOutcome] = None
    picks: list[Pick] = []

    @property
    def wager_type(self) -> WagerType | None:
        return resolve_wager_type(self.type)

    @model_validator(mode="before")
    @classmethod
    def _normalize_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        wager_type = resolve_wager_type(data.get("type"))
        if wager_type is not None:
            data["type"] = wager_type.value
        if wager_type is WagerType.over_under and not data.get("options"):
            data["options"] = [OVER, UNDER]
        data["result"] = normalize_outcome(data.get("result"), wager_type)

        wager_id = str(data.get("id", ""))
        picks = []
        for pick in data.get("picks") or []:
            if isinstance(pick, Pick):
                pick = pick.model_dump()
            pick = dict(pick)
            pick["selection"] = normalize_selection(wager_type, pick.get("selection"))
            if not pick.get("wager_id"):
                pick["wager_id"] = wager_id
            picks.append(pick)
        data["picks"] = picks
        return data
