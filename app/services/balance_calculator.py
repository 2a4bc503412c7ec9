"""Per-(user, group) balance derived from expenses, splits and settlements.

Nothing here is cached or stored: every call re-reads the ledger so a balance
can never drift from the settlement records it is derived from.

Sign convention: a positive ``net_balance`` means the group owes the user,
a negative one means the user owes the group.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List

from app.core.utils import ZERO, to_decimal
from app.models.settlement import ACCEPTED
from app.store.ledger_store import LedgerStore


@dataclass(frozen=True)
class UserGroupBalance:
    user_id: int
    total_paid: Decimal = ZERO
    total_owed: Decimal = ZERO
    received_settlements: Decimal = ZERO
    paid_settlements: Decimal = ZERO

    @property
    def net_balance(self) -> Decimal:
        # settlements received shrink what is still owed to the user,
        # settlements paid shrink what the user still owes
        return (
            (self.total_paid - self.total_owed)
            - self.received_settlements
            + self.paid_settlements
        )


def compute_user_balance(user_id: int, expenses: Iterable, settlements: Iterable) -> UserGroupBalance:
    """Pure arithmetic over records already read from the store.

    Only accepted settlements count, whatever the caller passes in.
    """
    total_paid = ZERO
    total_owed = ZERO

    for exp in expenses:
        if exp.paid_by == user_id:
            total_paid += to_decimal(exp.amount)
        for s in exp.splits:
            if s.user_id == user_id:
                total_owed += to_decimal(s.share_amount)

    received = ZERO
    paid = ZERO
    for st in settlements:
        if st.status != ACCEPTED:
            continue
        if st.to_user_id == user_id:
            received += to_decimal(st.amount)
        elif st.from_user_id == user_id:
            paid += to_decimal(st.amount)

    return UserGroupBalance(
        user_id=user_id,
        total_paid=total_paid,
        total_owed=total_owed,
        received_settlements=received,
        paid_settlements=paid,
    )


@dataclass(frozen=True)
class _PairShare:
    user_id: int
    share_amount: Decimal


@dataclass(frozen=True)
class _PairExpense:
    paid_by: int
    amount: Decimal
    splits: tuple


def _pair_expenses(user_id: int, other_id: int, expenses: Iterable) -> List[_PairExpense]:
    # keep only the share one of the two fronted for the other
    pair = []
    for exp in expenses:
        if exp.paid_by not in (user_id, other_id):
            continue
        debtor = other_id if exp.paid_by == user_id else user_id
        share = sum(
            (to_decimal(s.share_amount) for s in exp.splits if s.user_id == debtor), ZERO
        )
        if share:
            pair.append(_PairExpense(exp.paid_by, share, (_PairShare(debtor, share),)))
    return pair


def compute_pair_balance(user_id: int, other_id: int, expenses: Iterable, settlements: Iterable) -> UserGroupBalance:
    """What ``other_id`` owes ``user_id`` inside one group.

    Positive: the other member owes the user. Only expenses one of them paid
    and settlements between the two of them count.
    """
    between = [
        st for st in settlements
        if {st.from_user_id, st.to_user_id} == {user_id, other_id}
    ]
    return compute_user_balance(user_id, _pair_expenses(user_id, other_id, expenses), between)


def compute_group_balances(user_ids: Iterable[int], expenses: List, settlements: List) -> Dict[int, UserGroupBalance]:
    # one independent computation per member over the same snapshot
    return {uid: compute_user_balance(uid, expenses, settlements) for uid in user_ids}


async def calculate_user_group_balance(store: LedgerStore, user_id: int, group_id: int) -> UserGroupBalance:
    expenses = await store.list_expenses_and_splits(group_id)
    settlements = await store.list_settlements(group_id=group_id, user_id=user_id, status=ACCEPTED)
    return compute_user_balance(user_id, expenses, settlements)
