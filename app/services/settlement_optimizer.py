from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List

from app.core.utils import CENTS, TOLERANCE, ZERO, qround, to_decimal


@dataclass(frozen=True)
class MemberBalance:
    user_id: int
    balance: Decimal


@dataclass(frozen=True)
class SuggestedTransfer:
    from_user_id: int
    to_user_id: int
    amount: Decimal


def _ordered(entries):
    # largest magnitude first, ties by ascending user id
    return deque(sorted(entries, key=lambda e: (-e[1], e[0])))


def optimize_settlements(balances: Iterable[MemberBalance]) -> List[SuggestedTransfer]:
    """
    Greedy debt simplification: repeatedly settle the largest debtor against
    the largest creditor.

    This is a heuristic. It emits at most ``creditors + debtors - 1``
    transfers but is not guaranteed to reach the theoretical minimum count.

    A leftover below one cent is folded into the last transfer touching that
    party. A leftover of a whole cent or more that is still within tolerance
    is dropped, so no transfer exceeds what either side holds.
    """
    creditors = []
    debtors = []

    for b in balances:
        bal = to_decimal(b.balance)
        if bal > TOLERANCE:
            creditors.append([b.user_id, bal])
        elif bal < -TOLERANCE:
            debtors.append([b.user_id, -bal])

    creditors = _ordered(creditors)
    debtors = _ordered(debtors)

    transfers: List[List] = []

    while creditors and debtors:
        cred_id, cred_amt = creditors.popleft()
        debt_id, debt_amt = debtors.popleft()

        pay_amt = qround(min(cred_amt, debt_amt))

        if pay_amt > ZERO:
            transfers.append([debt_id, cred_id, pay_amt])

        new_cred = cred_amt - pay_amt
        new_debt = debt_amt - pay_amt

        # dust left on both sides of this pair is settled once, in the transfer just emitted
        if pay_amt > ZERO and ZERO < new_cred < CENTS and ZERO < new_debt < CENTS:
            shared = min(new_cred, new_debt)
            transfers[-1][2] += shared
            new_cred -= shared
            new_debt -= shared

        if new_cred > TOLERANCE:
            creditors = _ordered(list(creditors) + [[cred_id, new_cred]])
        elif ZERO < new_cred < CENTS:
            _absorb(transfers, cred_id, new_cred, side=1)

        if new_debt > TOLERANCE:
            debtors = _ordered(list(debtors) + [[debt_id, new_debt]])
        elif ZERO < new_debt < CENTS:
            _absorb(transfers, debt_id, new_debt, side=0)

    return [
        SuggestedTransfer(from_user_id=f, to_user_id=t, amount=qround(a))
        for f, t, a in transfers
        if qround(a) > ZERO
    ]


def _absorb(transfers, user_id, residual, side):
    """Fold sub-cent dust into the last transfer touching ``user_id``."""
    for t in reversed(transfers):
        if t[side] == user_id:
            t[2] = t[2] + residual
            return
