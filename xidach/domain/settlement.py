"""Settlement planning: who pays whom at the end of a session."""

from __future__ import annotations

import heapq
from collections.abc import Mapping

from .errors import InvariantViolation
from .models import Settlement


def plan_settlement(balances: Mapping[str, int]) -> list[Settlement]:
    """Reduce net balances to a short list of pairwise transfers.

    The largest creditor is repeatedly paired with the largest debtor, which
    needs at most ``k - 1`` transfers for ``k`` non-zero balances. Equal
    amounts are broken by the mapping's insertion order, and the result is
    listed by payer, then payee, in that same order.
    """
    total = sum(balances.values())
    if total != 0:
        raise InvariantViolation(f"balances do not sum to zero (off by {total})")

    position = {player_id: idx for idx, player_id in enumerate(balances)}
    creditors = [(-amount, position[player_id], player_id) for player_id, amount in balances.items() if amount > 0]
    debtors = [(amount, position[player_id], player_id) for player_id, amount in balances.items() if amount < 0]
    heapq.heapify(creditors)
    heapq.heapify(debtors)

    transfers: list[Settlement] = []
    while creditors and debtors:
        credit, credit_pos, creditor = heapq.heappop(creditors)
        debt, debt_pos, debtor = heapq.heappop(debtors)

        amount = min(-credit, -debt)
        transfers.append(Settlement(from_player_id=debtor, to_player_id=creditor, amount=amount))

        if -credit > amount:
            heapq.heappush(creditors, (credit + amount, credit_pos, creditor))
        if -debt > amount:
            heapq.heappush(debtors, (debt + amount, debt_pos, debtor))

    transfers.sort(key=lambda transfer: (position[transfer.from_player_id], position[transfer.to_player_id]))
    return transfers


def check_plan(balances: Mapping[str, int], transfers: list[Settlement]) -> None:
    """Verify that applying ``transfers`` clears every balance exactly."""
    remaining = dict(balances)
    for transfer in transfers:
        if transfer.amount <= 0:
            raise InvariantViolation(f"non-positive transfer: {transfer}")
        remaining[transfer.from_player_id] = remaining.get(transfer.from_player_id, 0) + transfer.amount
        remaining[transfer.to_player_id] = remaining.get(transfer.to_player_id, 0) - transfer.amount
    unsettled = {player_id: amount for player_id, amount in remaining.items() if amount != 0}
    if unsettled:
        raise InvariantViolation(f"settlement leaves balances open: {unsettled}")
