"""Participants, net balances and transfers: engine output plus API shapes."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from potsplit.models.wager import Wager


class Participant(BaseModel):
    """Tournament member. Display fields are opaque to the engine."""
    id: str
    display_name: str = ""
    username: str = ""
    photo_url: Optional[str] = None


class NetBalance(BaseModel):
    """Cumulative profit and loss of one participant across a tournament."""
    participant_id: str
    display_name: str = ""
    photo_url: Optional[str] = None
    total_won: Decimal = Field(default=Decimal("0.00"), ge=0)
    total_lost: Decimal = Field(default=Decimal("0.00"), ge=0)

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.total_won - self.total_lost


class Transfer(BaseModel):
    """Debtor pays creditor."""
    payer_id: str
    payee_id: str
    amount: Decimal = Field(gt=0)
    payer_name: str = ""
    payee_name: str = ""


class SkippedWager(BaseModel):
    """A settled wager left out of the balances, with the reason."""
    wager_id: str
    reason: str


# ---------- API ----------

class BalanceResponse(BaseModel):
    participant_id: str
    display_name: str
    photo_url: Optional[str] = None
    total_won: float
    total_lost: float
    net: float


class TransferResponse(BaseModel):
    payer_id: str
    payer_name: str
    payee_id: str
    payee_name: str
    amount: float


class SettlementResponse(BaseModel):
    """Balances and transfers for one tournament."""
    tournament_id: Optional[str] = None
    balances: list[BalanceResponse]
    transfers: list[TransferResponse]
    skipped_wagers: list[SkippedWager] = []
    push_wager_ids: list[str] = []
    meta: dict = {}


class SettlementComputeRequest(BaseModel):
    """Request body for computing a settlement from an in-memory snapshot."""
    roster: list[Participant]
    wagers: list[Wager]


class PoolOddsResponse(BaseModel):
    wager_id: str
    total_pot: float
    total_picks: int
    option_totals: dict[str, float]
    odds: dict[str, Optional[float]]
    fee: float


def balance_to_response(balance: NetBalance) -> BalanceResponse:
    return BalanceResponse(
        participant_id=balance.participant_id,
        display_name=balance.display_name,
        photo_url=balance.photo_url,
        total_won=float(balance.total_won),
        total_lost=float(balance.total_lost),
        net=float(balance.net),
    )


def transfer_to_response(transfer: Transfer) -> TransferResponse:
    return TransferResponse(
        payer_id=transfer.payer_id,
        payer_name=transfer.payer_name,
        payee_id=transfer.payee_id,
        payee_name=transfer.payee_name,
        amount=float(transfer.amount),
    )
