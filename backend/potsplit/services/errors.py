"""Exceptions raised by the settlement engine and its store collaborators."""


class SettlementError(Exception):
    """Base class for settlement failures."""


class ClassificationError(SettlementError):
    """Raised when a settled wager cannot be split into winners and losers."""

    def __init__(self, wager_id: str, reason: str) -> None:
        super().__init__(f"wager {wager_id}: {reason}")
        self.wager_id = wager_id
        self.reason = reason


class MalformedSelectionError(ClassificationError):
    """Raised under the skip_wager policy when a score pick could not be parsed."""


class TournamentNotFoundError(SettlementError):
    """Raised when the tournament id does not exist in the store."""


class TournamentDataUnavailableError(SettlementError):
    """Raised when the store cannot supply the roster or the settled wagers."""
