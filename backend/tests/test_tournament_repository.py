"""
backend/tests/test_tournament_repository.py

Purpose:
    Store-backed roster and settled-wager loading, error wrapping, and the
    end-to-end settlement over a fake database.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from potsplit.services import tournament_repository
from potsplit.services.errors import TournamentDataUnavailableError, TournamentNotFoundError
from potsplit.services.settlement_service import SettlementService
from potsplit.services.tournament_repository import TournamentRepository


def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict) and "$in" in cond:
            if value not in cond["$in"]:
                return False
        elif value != cond:
            return False
    return True


class _Cursor:
    def __init__(self, docs: list[dict], fail: bool = False):
        self._docs = list(docs)
        self._fail = fail

    def sort(self, field: str, direction: int):
        self._docs.sort(key=lambda doc: str(doc.get(field)), reverse=direction == -1)
        return self

    async def to_list(self, length: int | None = None):
        if self._fail:
            raise ServerSelectionTimeoutError("no primary")
        if length is None:
            return list(self._docs)
        return list(self._docs)[:length]


class _Collection:
    def __init__(self, docs: list[dict], fail: bool = False):
        self._docs = list(docs)
        self._fail = fail

    def find(self, query: dict, projection: dict | None = None):
        return _Cursor([dict(d) for d in self._docs if _matches(d, query)], fail=self._fail)

    async def find_one(self, query: dict, projection: dict | None = None):
        if self._fail:
            raise ServerSelectionTimeoutError("no primary")
        for doc in self._docs:
            if _matches(doc, query):
                return dict(doc)
        return None


def _fake_db(**overrides) -> SimpleNamespace:
    collections = {
        "tournaments": _Collection([{"_id": "t1", "name": "Copa", "currency": "USD"}]),
        "tournament_members": _Collection([
            {"tournament_id": "t1", "user_id": "P1"},
            {"tournament_id": "t1", "user_id": "P2"},
            {"tournament_id": "t1", "user_id": "P3"},
            {"tournament_id": "t2", "user_id": "P9"},
        ]),
        "public_profiles": _Collection([
            {"_id": "P1", "username": "uno", "display_name": "Player One", "photo_url": "p1.png"},
            {"_id": "P2", "username": "dos"},
        ]),
        "wagers": _Collection([
            {
                "_id": "w1", "tournament_id": "t1", "event_id": "e1", "type": "winner",
                "options": ["A", "B"], "status": "settled", "result": {"winner": "A"},
            },
            {
                "_id": "w2", "tournament_id": "t1", "event_id": "e1", "type": "score",
                "status": "settled", "result": {"score": {"home": 1, "away": 1}},
            },
            {
                "_id": "w3", "tournament_id": "t1", "event_id": "e2", "type": "winner",
                "options": ["A", "B"], "status": "open",
            },
        ]),
        "picks": _Collection([
            {"tournament_id": "t1", "wager_id": "w1", "user_id": "P1", "selection": "A", "stake_amount": 100},
            {"tournament_id": "t1", "wager_id": "w1", "user_id": "P2", "selection": "B", "stake_amount": 100},
            {"tournament_id": "t1", "wager_id": "w1", "user_id": "P3", "selection": "A", "stakeAmount": 50},
            {"tournament_id": "t1", "wager_id": "w2", "user_id": "P1", "selection": '{"home":1,"away":1}', "stake_amount": 20},
            {"tournament_id": "t1", "wager_id": "w2", "user_id": "P2", "selection": "oops", "stake_amount": 20},
            {"tournament_id": "t1", "wager_id": "w3", "user_id": "P1", "selection": "A", "stake_amount": 40},
            {"tournament_id": "t2", "wager_id": "w3", "user_id": "P9", "selection": "B", "stake_amount": 75},
        ]),
    }
    collections.update(overrides)
    return SimpleNamespace(**collections)


@pytest.mark.asyncio
async def test_list_participants_joins_profiles(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    roster = await TournamentRepository().list_participants("t1")

    assert [p.id for p in roster] == ["P1", "P2", "P3"]
    assert roster[0].display_name == "Player One"
    assert roster[0].photo_url == "p1.png"
    assert roster[1].display_name == "dos"
    assert roster[2].display_name == ""


@pytest.mark.asyncio
async def test_unknown_tournament_raises_not_found(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    with pytest.raises(TournamentNotFoundError):
        await TournamentRepository().list_settled_wagers("nope")


@pytest.mark.asyncio
async def test_list_settled_wagers_attaches_picks(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    wagers = await TournamentRepository().list_settled_wagers("t1")

    assert [w.id for w in wagers] == ["w1", "w2"]
    assert [p.participant_id for p in wagers[0].picks] == ["P1", "P2", "P3"]
    assert str(wagers[0].picks[2].stake_amount) == "50"
    assert wagers[1].picks[0].selection.key() == "1-1"
    assert wagers[1].picks[1].selection.kind == "malformed"


@pytest.mark.asyncio
async def test_roster_failure_is_fatal(monkeypatch):
    fake = _fake_db(tournament_members=_Collection([], fail=True))
    monkeypatch.setattr(tournament_repository._db, "db", fake, raising=False)

    with pytest.raises(TournamentDataUnavailableError):
        await TournamentRepository().list_participants("t1")


@pytest.mark.asyncio
async def test_wager_failure_is_fatal(monkeypatch):
    fake = _fake_db(picks=_Collection([], fail=True))
    monkeypatch.setattr(tournament_repository._db, "db", fake, raising=False)

    with pytest.raises(TournamentDataUnavailableError):
        await TournamentRepository().list_settled_wagers("t1")


@pytest.mark.asyncio
async def test_wager_limit_overflow_is_fatal(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    with pytest.raises(TournamentDataUnavailableError):
        await TournamentRepository(wager_limit=1).list_settled_wagers("t1")


@pytest.mark.asyncio
async def test_profile_failure_falls_back_to_placeholders(monkeypatch):
    fake = _fake_db(public_profiles=_Collection([], fail=True))
    monkeypatch.setattr(tournament_repository._db, "db", fake, raising=False)

    roster = await TournamentRepository().list_participants("t1")

    assert [p.display_name for p in roster] == ["", "", ""]


@pytest.mark.asyncio
async def test_get_wager_returns_any_status(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)
    repo = TournamentRepository()

    wager = await repo.get_wager("t1", "w3")

    assert wager.status.value == "open"
    assert [p.participant_id for p in wager.picks] == ["P1"]
    assert await repo.get_wager("t1", "missing") is None


@pytest.mark.asyncio
async def test_settlement_service_end_to_end(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)
    service = SettlementService(TournamentRepository(), default_display_name="Player")

    settlement = await service.get_settlement("t1")

    nets = {b.participant_id: b.net for b in settlement.balances}
    # w1 as in the single-winner scenario; w2: malformed pick loses 20 to P1
    assert nets == {"P1": 86.67, "P3": 33.33, "P2": -120.0}
    assert settlement.balances[1].display_name == "Player"
    assert [(t.payer_id, t.payee_id, t.amount) for t in settlement.transfers] == [
        ("P2", "P1", 86.67),
        ("P2", "P3", 33.33),
    ]
    assert settlement.meta["settled_wagers"] == 2
    assert settlement.meta["zero_sum_drift"] == 0.0


@pytest.mark.asyncio
async def test_pool_odds_for_open_wager(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    odds = await SettlementService(TournamentRepository()).get_pool_odds("t1", "w3")

    assert odds.total_pot == 40.0
    assert odds.odds["A"] == pytest.approx(0.95)
    assert odds.odds["B"] is None


def test_pick_docs_accept_app_field_names():
    pick = tournament_repository._pick_from_doc(
        {"_id": "P7", "uid": "P7", "selection": "A", "stakeAmount": 12.5, "wager_id": "w1"},
    )

    assert pick == {"wager_id": "w1", "participant_id": "P7", "selection": "A", "stake_amount": 12.5}


@pytest.mark.asyncio
async def test_snapshot_exactly_at_fetch_limits_is_complete(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    # t1 has 2 settled wagers carrying 5 picks between them
    wagers = await TournamentRepository(wager_limit=2, pick_limit=5).list_settled_wagers("t1")

    assert [w.id for w in wagers] == ["w1", "w2"]
    assert sum(len(w.picks) for w in wagers) == 5


@pytest.mark.asyncio
async def test_pick_limit_overflow_is_fatal(monkeypatch):
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(), raising=False)

    with pytest.raises(TournamentDataUnavailableError):
        await TournamentRepository(pick_limit=4).list_settled_wagers("t1")


@pytest.mark.asyncio
async def test_get_wager_pick_limit_overflow_is_fatal(monkeypatch):
    picks = _Collection([
        {"tournament_id": "t1", "wager_id": "w3", "user_id": "P1", "selection": "A", "stake_amount": 40},
        {"tournament_id": "t1", "wager_id": "w3", "user_id": "P2", "selection": "B", "stake_amount": 10},
    ])
    monkeypatch.setattr(tournament_repository._db, "db", _fake_db(picks=picks), raising=False)

    with pytest.raises(TournamentDataUnavailableError):
        await TournamentRepository(pick_limit=1).get_wager("t1", "w3")
    assert len((await TournamentRepository(pick_limit=2).get_wager("t1", "w3")).picks) == 2
