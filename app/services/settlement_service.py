"""Settlement lifecycle.

    pending --accept--> accepted
    pending --reject--> rejected --resend--> (new) pending

accepted and rejected are terminal. A resend never reopens the rejected
record; it creates a fresh pending one whose ``resent_from_id`` points back
at it. Each rejected record can be resent once; a later rejection of the
resend is resent from that newer record. Status changes go through a compare-and-swap on ``status`` so two
racing transitions cannot both win.
"""

import logging
from decimal import Decimal
from typing import Optional

from app.core.dependencies import check_group_membership, ensure_group_member
from app.core.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationError
from app.core.events import EventPublisher
from app.core.utils import ZERO, qround, to_decimal
from app.models.settlement import ACCEPTED, PENDING, REJECTED, SETTLEMENT_STATUSES
from app.store.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def _validate_transfer(from_user_id: int, to_user_id: int, amount) -> Decimal:
    if amount is None:
        raise ValidationError("Amount is required")
    amount = to_decimal(amount)
    if amount <= ZERO:
        raise ValidationError("Amount must be positive")
    if qround(amount) <= ZERO:
        raise ValidationError("Amount must be at least 0.01")
    if from_user_id == to_user_id:
        raise ValidationError("You cannot settle with yourself")
    return qround(amount)


def _validate_status_filter(status: Optional[str]):
    if status is not None and status not in SETTLEMENT_STATUSES:
        raise ValidationError(f"Unknown settlement status '{status}'")


async def serialize_settlements(store: LedgerStore, settlements) -> list:
    user_ids = {s.from_user_id for s in settlements} | {s.to_user_id for s in settlements}
    names = {u.id: u.username for u in await store.get_users(user_ids)}

    return [
        {
            "id": s.id,
            "group_id": getattr(s, "group_id", None),
            "from_user_id": s.from_user_id,
            "from_username": names.get(s.from_user_id),
            "to_user_id": s.to_user_id,
            "to_username": names.get(s.to_user_id),
            "amount": to_decimal(s.amount),
            "status": s.status,
            "message": s.message,
            "rejected_reason": s.rejected_reason,
            "resent_from_id": s.resent_from_id,
            "created_at": s.created_at,
            "updated_at": s.updated_at,
        }
        for s in settlements
    ]


async def _publish(publisher: EventPublisher, user_id: int, event_type: str, settlement, scope: str):
    await publisher.publish(user_id, {
        "type": event_type,
        "scope": scope,
        "settlement_id": settlement.id,
        "from_user_id": settlement.from_user_id,
        "to_user_id": settlement.to_user_id,
        "amount": str(to_decimal(settlement.amount)),
        "status": settlement.status,
    })


# ---------------------------------------------------------------------------
# shared transition logic, parameterised by scope
# ---------------------------------------------------------------------------

class _Scope:
    def __init__(self, name, get, cas, get_resend):
        self.name = name
        self.get = get
        self.cas = cas
        self.get_resend = get_resend


def _group_scope(store: LedgerStore):
    return _Scope(
        "group", store.get_settlement, store.cas_update_settlement_status, store.get_settlement_resend
    )


def _global_scope(store: LedgerStore):
    return _Scope(
        "global",
        store.get_global_settlement,
        store.cas_update_global_settlement_status,
        store.get_global_settlement_resend,
    )


async def _load_for_decision(scope: _Scope, caller_id: int, settlement_id: int, verb: str):
    settlement = await scope.get(settlement_id)
    if not settlement:
        raise NotFound("Settlement not found")

    if settlement.to_user_id != caller_id:
        raise Forbidden(f"Only the recipient can {verb} this settlement")

    if settlement.status != PENDING:
        raise InvalidState(f"Settlement is already {settlement.status}")

    return settlement


async def _transition(scope: _Scope, settlement_id: int, new_status: str, **extra):
    won = await scope.cas(settlement_id, PENDING, new_status, **extra)
    current = await scope.get(settlement_id)

    if not won:
        # someone else moved it out of pending between our read and our write
        logger.warning(
            "%s settlement %s: lost status race, now %s",
            scope.name, settlement_id, current.status if current else "missing",
        )
        if current is None:
            raise NotFound("Settlement not found")
        raise Conflict(f"Settlement is already {current.status}")

    logger.info("%s settlement %s -> %s", scope.name, settlement_id, new_status)
    return current


async def _accept(publisher, scope, caller_id, settlement_id):
    await _load_for_decision(scope, caller_id, settlement_id, "accept")
    settlement = await _transition(scope, settlement_id, ACCEPTED)
    await _publish(publisher, settlement.from_user_id, "settlement_accepted", settlement, scope.name)
    return settlement


async def _reject(publisher, scope, caller_id, settlement_id, reason):
    await _load_for_decision(scope, caller_id, settlement_id, "reject")
    settlement = await _transition(scope, settlement_id, REJECTED, rejected_reason=reason or "")
    await _publish(publisher, settlement.from_user_id, "settlement_rejected", settlement, scope.name)
    return settlement


async def _load_for_resend(scope: _Scope, caller_id: int, settlement_id: int):
    source = await scope.get(settlement_id)
    if not source:
        raise NotFound("Settlement not found")

    if source.from_user_id != caller_id:
        raise Forbidden("Only the original sender can resend this settlement")

    if source.status != REJECTED:
        raise InvalidState(f"Only rejected settlements can be resent; this one is {source.status}")

    resend = await scope.get_resend(source.id)
    if resend:
        raise InvalidState(f"Settlement has already been resent as #{resend.id}")

    return source


# ---------------------------------------------------------------------------
# group settlements
# ---------------------------------------------------------------------------

async def record_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    group_id: int,
    to_user_id: int,
    amount,
    message: Optional[str] = None,
):
    amount = _validate_transfer(user_id, to_user_id, amount)

    await check_group_membership(store, group_id, user_id)

    if not await store.get_membership(group_id, to_user_id):
        raise Forbidden("Both users must be members of the group")

    settlement = await store.create_settlement(
        group_id=group_id,
        from_user_id=user_id,
        to_user_id=to_user_id,
        amount=amount,
        message=message or "",
    )
    logger.info(
        "settlement %s requested in group %s: %s -> %s (%s)",
        settlement.id, group_id, user_id, to_user_id, amount,
    )

    await _publish(publisher, to_user_id, "settlement_requested", settlement, "group")
    return settlement


async def accept_settlement(store: LedgerStore, publisher: EventPublisher, user_id: int, settlement_id: int):
    return await _accept(publisher, _group_scope(store), user_id, settlement_id)


async def reject_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    settlement_id: int,
    reason: Optional[str] = None,
):
    return await _reject(publisher, _group_scope(store), user_id, settlement_id, reason)


async def resend_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    settlement_id: int,
    amount=None,
    message: Optional[str] = None,
):
    source = await _load_for_resend(_group_scope(store), user_id, settlement_id)

    amount = _validate_transfer(
        user_id, source.to_user_id, source.amount if amount is None else amount
    )

    # membership may have changed since the original request
    await ensure_group_member(store, source.group_id, user_id)
    if not await store.get_membership(source.group_id, source.to_user_id):
        raise Forbidden("Both users must be members of the group")

    settlement = await store.create_settlement(
        group_id=source.group_id,
        from_user_id=user_id,
        to_user_id=source.to_user_id,
        amount=amount,
        message=source.message if message is None else message,
        resent_from_id=source.id,
    )
    logger.info("settlement %s resent as %s", source.id, settlement.id)

    await _publish(publisher, settlement.to_user_id, "settlement_requested", settlement, "group")
    return settlement


async def get_settlement_history(store: LedgerStore, user_id: int, group_id: int, status: Optional[str] = None):
    _validate_status_filter(status)
    await check_group_membership(store, group_id, user_id)

    settlements = await store.list_settlements(group_id=group_id, user_id=user_id, status=status)
    return await serialize_settlements(store, settlements)


async def get_pending_settlements(store: LedgerStore, user_id: int):
    settlements = await store.list_settlements(to_user_id=user_id, status=PENDING)
    return await serialize_settlements(store, settlements)


# ---------------------------------------------------------------------------
# global settlements
# ---------------------------------------------------------------------------

async def record_global_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    to_user_id: int,
    amount,
    message: Optional[str] = None,
):
    amount = _validate_transfer(user_id, to_user_id, amount)

    if not await store.get_user(to_user_id):
        raise NotFound("User not found")

    settlement = await store.create_global_settlement(
        from_user_id=user_id,
        to_user_id=to_user_id,
        amount=amount,
        message=message or "",
    )
    logger.info("global settlement %s requested: %s -> %s (%s)", settlement.id, user_id, to_user_id, amount)

    await _publish(publisher, to_user_id, "settlement_requested", settlement, "global")
    return settlement


async def accept_global_settlement(store: LedgerStore, publisher: EventPublisher, user_id: int, settlement_id: int):
    return await _accept(publisher, _global_scope(store), user_id, settlement_id)


async def reject_global_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    settlement_id: int,
    reason: Optional[str] = None,
):
    return await _reject(publisher, _global_scope(store), user_id, settlement_id, reason)


async def resend_global_settlement(
    store: LedgerStore,
    publisher: EventPublisher,
    user_id: int,
    settlement_id: int,
    amount=None,
    message: Optional[str] = None,
):
    source = await _load_for_resend(_global_scope(store), user_id, settlement_id)

    amount = _validate_transfer(
        user_id, source.to_user_id, source.amount if amount is None else amount
    )

    settlement = await store.create_global_settlement(
        from_user_id=user_id,
        to_user_id=source.to_user_id,
        amount=amount,
        message=source.message if message is None else message,
        resent_from_id=source.id,
    )
    logger.info("global settlement %s resent as %s", source.id, settlement.id)

    await _publish(publisher, settlement.to_user_id, "settlement_requested", settlement, "global")
    return settlement


async def get_global_settlement_history(store: LedgerStore, user_id: int, status: Optional[str] = None):
    _validate_status_filter(status)
    settlements = await store.list_global_settlements(user_id=user_id, status=status)
    return await serialize_settlements(store, settlements)
