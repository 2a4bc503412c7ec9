import logging
from decimal import Decimal
from typing import Dict, List

from app.core.dependencies import check_group_membership
from app.core.utils import TOLERANCE, ZERO, qround
from app.models.settlement import ACCEPTED
from app.services.balance_calculator import compute_group_balances, compute_pair_balance
from app.services.global_adjustment import apply_global_adjustment, global_adjustment_for
from app.services.settlement_optimizer import MemberBalance, optimize_settlements
from app.store.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


async def _member_balances(store: LedgerStore, group_id: int) -> List[Dict]:
    memberships = await store.list_memberships(group_id)
    expenses = await store.list_expenses_and_splits(group_id)
    settlements = await store.list_settlements(group_id=group_id, status=ACCEPTED)

    per_user = compute_group_balances(
        [m.user_id for m in memberships], expenses, settlements
    )

    rows = []
    for m in memberships:
        balance = per_user[m.user_id]
        mode = m.user.settlement_mode

        # global settlements only matter outside "separate"
        global_settlements = []
        if mode != "separate":
            global_settlements = await store.list_global_settlements(user_id=m.user_id, status=ACCEPTED)

        adjusted = apply_global_adjustment(m.user_id, balance.net_balance, mode, global_settlements)

        rows.append({
            "user_id": m.user_id,
            "username": m.user.username,
            "total_paid": qround(balance.total_paid),
            "total_owed": qround(balance.total_owed),
            "received_settlements": qround(balance.received_settlements),
            "paid_settlements": qround(balance.paid_settlements),
            "net": qround(adjusted.net),
            "original_net": qround(adjusted.original_net),
            "global_adjustment": qround(adjusted.global_adjustment),
            "is_owed": adjusted.net > TOLERANCE,
            "owes": adjusted.net < -TOLERANCE,
            "is_settled": abs(adjusted.net) <= TOLERANCE,
        })

    return rows


async def get_group_balances(store: LedgerStore, user_id: int, group_id: int):
    await check_group_membership(store, group_id, user_id)
    return await _member_balances(store, group_id)


async def get_suggested_settlements(store: LedgerStore, user_id: int, group_id: int):
    await check_group_membership(store, group_id, user_id)
    rows = await _member_balances(store, group_id)

    names = {r["user_id"]: r["username"] for r in rows}
    transfers = optimize_settlements(
        MemberBalance(user_id=r["user_id"], balance=r["net"]) for r in rows
    )
    logger.info("group %s: %s suggested transfers", group_id, len(transfers))

    return [
        {
            "from_user_id": t.from_user_id,
            "from_username": names.get(t.from_user_id),
            "to_user_id": t.to_user_id,
            "to_username": names.get(t.to_user_id),
            "amount": t.amount,
        }
        for t in transfers
    ]



# ---------------------------------------------------------------------------
# cross-group view: one row per counterparty of the caller
# ---------------------------------------------------------------------------

async def _pair_balances(store: LedgerStore, user_id: int):
    """Per-counterparty balance summed over every group the caller shares with them."""
    totals: Dict[int, Decimal] = {}
    names: Dict[int, str] = {}

    for own in await store.list_user_memberships(user_id):
        members = await store.list_memberships(own.group_id)
        expenses = await store.list_expenses_and_splits(own.group_id)
        settlements = await store.list_settlements(group_id=own.group_id, user_id=user_id, status=ACCEPTED)

        for m in members:
            if m.user_id == user_id:
                continue
            names[m.user_id] = m.user.username
            pair = compute_pair_balance(user_id, m.user_id, expenses, settlements)
            totals[m.user_id] = totals.get(m.user_id, ZERO) + pair.net_balance

    return totals, names


async def get_global_balances(store: LedgerStore, user_id: int):
    totals, names = await _pair_balances(store, user_id)
    global_settlements = await store.list_global_settlements(user_id=user_id, status=ACCEPTED)

    counterparties = set(totals)
    for gs in global_settlements:
        counterparties.update((gs.from_user_id, gs.to_user_id))
    counterparties.discard(user_id)

    unnamed = counterparties - set(names)
    if unnamed:
        names.update({u.id: u.username for u in await store.get_users(unnamed)})

    rows = []
    for other_id in sorted(counterparties):
        between = [gs for gs in global_settlements if other_id in (gs.from_user_id, gs.to_user_id)]
        # money received from the counterparty shrinks what they still owe
        adjustment = -global_adjustment_for(user_id, between)
        group_balance = totals.get(other_id, ZERO)
        net = group_balance + adjustment

        rows.append({
            "user_id": other_id,
            "username": names.get(other_id),
            "group_balance": qround(group_balance),
            "global_adjustment": qround(adjustment),
            "net": qround(net),
            "is_owed": net > TOLERANCE,
            "owes": net < -TOLERANCE,
            "is_settled": abs(net) <= TOLERANCE,
        })

    return rows


async def get_global_suggestions(store: LedgerStore, user_id: int):
    rows = await get_global_balances(store, user_id)
    me = await store.get_user(user_id)

    suggestions = []
    for r in rows:
        # settled pair by pair: a counterparty only ever pays or is paid by the caller
        transfers = optimize_settlements([
            MemberBalance(user_id=user_id, balance=r["net"]),
            MemberBalance(user_id=r["user_id"], balance=-r["net"]),
        ])
        names = {user_id: me.username if me else None, r["user_id"]: r["username"]}
        suggestions.extend(
            {
                "from_user_id": t.from_user_id,
                "from_username": names[t.from_user_id],
                "to_user_id": t.to_user_id,
                "to_username": names[t.to_user_id],
                "amount": t.amount,
            }
            for t in transfers
        )

    logger.info("user %s: %s global suggested transfers", user_id, len(suggestions))
    return suggestions
