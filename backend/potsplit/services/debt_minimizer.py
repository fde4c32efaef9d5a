"""
backend/potsplit/services/debt_minimizer.py

Purpose:
    Reduce net balances to a short list of debtor -> creditor transfers with a
    greedy two-pointer sweep over magnitude-sorted creditors and debtors.
    Produces at most n - 1 transfers for n non-zero balances; the true minimum
    transaction set is not attempted.

Dependencies:
    - potsplit.models.balance
    - potsplit.utils
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from potsplit.models.balance import NetBalance, Transfer
from potsplit.utils import from_cents, to_cents

logger = logging.getLogger("potsplit.debt_minimizer")

DEFAULT_EPSILON = Decimal("0.01")


def minimize_debts(
    balances: Iterable[NetBalance],
    epsilon: Decimal | float = DEFAULT_EPSILON,
) -> list[Transfer]:
    """Return the transfers that bring every balance back to zero.

    Remainders below ``epsilon`` count as settled; such dust left over when
    one side runs out is dropped.
    """
    eps_cents = max(to_cents(epsilon), 1)
    names: dict[str, str] = {}
    creditors: list[list] = []
    debtors: list[list] = []
    for balance in balances:
        names[balance.participant_id] = balance.display_name
        cents = to_cents(balance.net)
        if cents > 0:
            creditors.append([balance.participant_id, cents])
        elif cents < 0:
            debtors.append([balance.participant_id, -cents])

    creditors.sort(key=lambda row: (-row[1], row[0]))
    debtors.sort(key=lambda row: (-row[1], row[0]))

    transfers: list[Transfer] = []
    i = j = 0
    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]
        amount = min(creditor[1], debtor[1])
        if amount > 0:
            transfers.append(
                Transfer(
                    payer_id=debtor[0],
                    payee_id=creditor[0],
                    amount=from_cents(amount),
                    payer_name=names.get(debtor[0], ""),
                    payee_name=names.get(creditor[0], ""),
                )
            )
        creditor[1] -= amount
        debtor[1] -= amount
        if creditor[1] < eps_cents:
            i += 1
        if debtor[1] < eps_cents:
            j += 1

    dust = sum(row[1] for row in creditors[i:]) + sum(row[1] for row in debtors[j:])
    if dust:
        logger.debug("Debt sweep finished with %s unmatched", from_cents(dust))
    logger.info(
        "Debts minimized: creditors=%d debtors=%d transfers=%d",
        len(creditors), len(debtors), len(transfers),
    )
    return transfers
