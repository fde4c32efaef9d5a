"""
backend/potsplit/services/tournament_repository.py

Purpose:
    Read access to the tournament store: the member roster with public display
    data, and the settled wagers with their picks attached. Picks and profiles
    are fetched with one batched query each instead of one query per wager.

Dependencies:
    - potsplit.database
    - potsplit.models
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import PyMongoError

import potsplit.database as _db
from potsplit.config import settings
from potsplit.models.balance import Participant
from potsplit.models.wager import Wager, WagerStatus
from potsplit.services.errors import (
    TournamentDataUnavailableError,
    TournamentNotFoundError,
)

logger = logging.getLogger("potsplit.tournament_repository")


def _id_candidates(raw_id: str) -> list[Any]:
    """Ids may be stored as app-generated strings or as ObjectIds."""
    candidates: list[Any] = [raw_id]
    if ObjectId.is_valid(raw_id):
        candidates.append(ObjectId(raw_id))
    return candidates


def _pick_from_doc(doc: dict[str, Any]) -> dict[str, Any]:
    return {
        "wager_id": str(doc.get("wager_id") or ""),
        "participant_id": str(doc.get("user_id") or doc.get("uid") or doc.get("_id")),
        "selection": doc.get("selection"),
        "stake_amount": doc.get("stake_amount", doc.get("stakeAmount")) or 0,
    }


def _check_limit(rows: list, limit: int, message: str) -> None:
    """Callers fetch ``limit + 1`` rows; one extra row means the read was truncated."""
    if len(rows) > limit:
        raise TournamentDataUnavailableError(message)


def _wager_from_doc(doc: dict[str, Any], picks: list[dict[str, Any]]) -> Wager:
    return Wager.model_validate({
        "id": str(doc["_id"]),
        "tournament_id": str(doc.get("tournament_id") or ""),
        "event_id": str(doc.get("event_id") or ""),
        "title": doc.get("title") or "",
        "type": doc.get("type") or "",
        "options": doc.get("options") or [],
        "line": doc.get("line"),
        "status": doc.get("status") or WagerStatus.open.value,
        "result": doc.get("result"),
        "picks": [_pick_from_doc(p) for p in picks],
    })


class TournamentRepository:
    def __init__(
        self,
        wager_limit: int | None = None,
        pick_limit: int | None = None,
    ) -> None:
        self.wager_limit = wager_limit or settings.WAGER_FETCH_LIMIT
        self.pick_limit = pick_limit or settings.PICK_FETCH_LIMIT

    async def _require_tournament(self, tournament_id: str) -> dict[str, Any]:
        try:
            tournament = await _db.db.tournaments.find_one(
                {"_id": {"$in": _id_candidates(tournament_id)}},
                {"_id": 1, "name": 1, "currency": 1},
            )
        except PyMongoError as exc:
            raise TournamentDataUnavailableError(
                f"tournament {tournament_id} could not be loaded"
            ) from exc
        if not tournament:
            raise TournamentNotFoundError(tournament_id)
        return tournament

    async def list_participants(self, tournament_id: str) -> list[Participant]:
        """Roster of a tournament with public display data where available."""
        await self._require_tournament(tournament_id)
        try:
            members = await _db.db.tournament_members.find(
                {"tournament_id": tournament_id},
                {"user_id": 1},
            ).sort("user_id", 1).to_list(length=None)
        except PyMongoError as exc:
            raise TournamentDataUnavailableError(
                f"roster of tournament {tournament_id} could not be loaded"
            ) from exc

        user_ids = [str(m["user_id"]) for m in members if m.get("user_id")]
        profiles = await self._profiles_by_id(user_ids)
        roster = []
        for user_id in user_ids:
            profile = profiles.get(user_id, {})
            roster.append(Participant(
                id=user_id,
                display_name=profile.get("display_name") or profile.get("username") or "",
                username=profile.get("username") or "",
                photo_url=profile.get("photo_url"),
            ))
        return roster

    async def _profiles_by_id(self, user_ids: list[str]) -> dict[str, dict[str, Any]]:
        if not user_ids:
            return {}
        try:
            rows = await _db.db.public_profiles.find(
                {"_id": {"$in": user_ids}},
                {"username": 1, "display_name": 1, "photo_url": 1},
            ).to_list(length=len(user_ids))
        except PyMongoError as exc:
            # Display data only; balances do not depend on it.
            logger.warning("Public profiles unavailable, using placeholders: %s", exc)
            return {}
        return {str(row["_id"]): row for row in rows}

    async def _picks_by_wager(self, tournament_id: str, wager_ids: list[str]) -> dict[str, list[dict]]:
        grouped: dict[str, list[dict]] = defaultdict(list)
        if not wager_ids:
            return grouped
        rows = await _db.db.picks.find(
            {"tournament_id": tournament_id, "wager_id": {"$in": wager_ids}},
        ).sort("user_id", 1).to_list(length=self.pick_limit + 1)
        _check_limit(rows, self.pick_limit, f"tournament {tournament_id} has more than {self.pick_limit} picks")
        for row in rows:
            grouped[str(row.get("wager_id"))].append(row)
        return grouped

    async def list_settled_wagers(self, tournament_id: str) -> list[Wager]:
        """Every settled wager of the tournament with its picks attached."""
        await self._require_tournament(tournament_id)
        try:
            docs = await _db.db.wagers.find(
                {"tournament_id": tournament_id, "status": WagerStatus.settled.value},
            ).sort("_id", 1).to_list(length=self.wager_limit + 1)
            _check_limit(
                docs, self.wager_limit,
                f"tournament {tournament_id} has more than {self.wager_limit} settled wagers",
            )
            picks = await self._picks_by_wager(tournament_id, [str(d["_id"]) for d in docs])
        except PyMongoError as exc:
            raise TournamentDataUnavailableError(
                f"settled wagers of tournament {tournament_id} could not be loaded"
            ) from exc

        wagers = []
        for doc in docs:
            try:
                wagers.append(_wager_from_doc(doc, picks.get(str(doc["_id"]), [])))
            except ValidationError as exc:
                raise TournamentDataUnavailableError(
                    f"wager {doc['_id']} of tournament {tournament_id} is invalid"
                ) from exc

        logger.debug(
            "Loaded %d settled wagers for tournament %s", len(wagers), tournament_id,
        )
        return wagers

    async def get_wager(self, tournament_id: str, wager_id: str) -> Wager | None:
        """A single wager in any status, or None."""
        try:
            doc = await _db.db.wagers.find_one(
                {"_id": {"$in": _id_candidates(wager_id)}, "tournament_id": tournament_id},
            )
            if not doc:
                return None
            picks = await _db.db.picks.find(
                {"tournament_id": tournament_id, "wager_id": str(doc["_id"])},
            ).sort("user_id", 1).to_list(length=self.pick_limit + 1)
            _check_limit(picks, self.pick_limit, f"wager {wager_id} has more than {self.pick_limit} picks")
        except PyMongoError as exc:
            raise TournamentDataUnavailableError(
                f"wager {wager_id} could not be loaded"
            ) from exc
        try:
            return _wager_from_doc(doc, picks)
        except ValidationError as exc:
            raise TournamentDataUnavailableError(f"wager {wager_id} is invalid") from exc
