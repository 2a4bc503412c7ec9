from typing import Optional
from fastapi import APIRouter, Depends
from app.core.dependencies import get_current_user, get_store
from app.core.events import EventPublisher, get_publisher
from app.schemas.settlements import (
    GlobalBalanceOut,
    MemberBalanceOut,
    SettlementCreate,
    SettlementHistoryOut,
    SettlementOut,
    SettlementReject,
    SettlementResend,
    SuggestedSettlement,
)
from app.services import settlement_service
from app.services.balance_service import (
    get_global_balances,
    get_global_suggestions,
    get_group_balances,
    get_suggested_settlements,
)
from app.store.ledger_store import LedgerStore

router = APIRouter()


@router.get("/pending", response_model=list[SettlementHistoryOut])
async def pending(
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await settlement_service.get_pending_settlements(store, user.id)


# global routes are declared before the /{group_id} ones so "global" is never
# parsed as a group id

@router.get("/global/balances", response_model=list[GlobalBalanceOut])
async def global_balances(
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await get_global_balances(store, user.id)


@router.get("/global/settlements", response_model=list[SuggestedSettlement])
async def global_suggested(
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await get_global_suggestions(store, user.id)


@router.get("/global/history", response_model=list[SettlementHistoryOut])
async def global_history(
    status: Optional[str] = None,
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await settlement_service.get_global_settlement_history(store, user.id, status)


@router.post("/global/record", response_model=SettlementOut, status_code=201)
async def record_global(
    data: SettlementCreate,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    return await settlement_service.record_global_settlement(
        store, publisher, user.id, data.to_user_id, data.amount, data.message
    )


@router.post("/global/{settlement_id}/accept", response_model=SettlementOut)
async def accept_global(
    settlement_id: int,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    return await settlement_service.accept_global_settlement(store, publisher, user.id, settlement_id)


@router.post("/global/{settlement_id}/reject", response_model=SettlementOut)
async def reject_global(
    settlement_id: int,
    data: Optional[SettlementReject] = None,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    reason = data.reason if data else None
    return await settlement_service.reject_global_settlement(store, publisher, user.id, settlement_id, reason)


@router.post("/global/{settlement_id}/resend", response_model=SettlementOut, status_code=201)
async def resend_global(
    settlement_id: int,
    data: Optional[SettlementResend] = None,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    data = data or SettlementResend()
    return await settlement_service.resend_global_settlement(
        store, publisher, user.id, settlement_id, data.amount, data.message
    )


@router.get("/{group_id}/balances", response_model=list[MemberBalanceOut])
async def balances(
    group_id: int,
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await get_group_balances(store, user.id, group_id)


@router.get("/{group_id}/settlements", response_model=list[SuggestedSettlement])
async def suggested(
    group_id: int,
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await get_suggested_settlements(store, user.id, group_id)


@router.get("/{group_id}/history", response_model=list[SettlementHistoryOut])
async def history(
    group_id: int,
    status: Optional[str] = None,
    store: LedgerStore = Depends(get_store),
    user = Depends(get_current_user),
):
    return await settlement_service.get_settlement_history(store, user.id, group_id, status)


@router.post("/{group_id}/record", response_model=SettlementOut, status_code=201)
async def record(
    group_id: int,
    data: SettlementCreate,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    return await settlement_service.record_settlement(
        store, publisher, user.id, group_id, data.to_user_id, data.amount, data.message
    )


@router.post("/{settlement_id}/accept", response_model=SettlementOut)
async def accept(
    settlement_id: int,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    return await settlement_service.accept_settlement(store, publisher, user.id, settlement_id)


@router.post("/{settlement_id}/reject", response_model=SettlementOut)
async def reject(
    settlement_id: int,
    data: Optional[SettlementReject] = None,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    reason = data.reason if data else None
    return await settlement_service.reject_settlement(store, publisher, user.id, settlement_id, reason)


@router.post("/{settlement_id}/resend", response_model=SettlementOut, status_code=201)
async def resend(
    settlement_id: int,
    data: Optional[SettlementResend] = None,
    store: LedgerStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
    user = Depends(get_current_user),
):
    data = data or SettlementResend()
    return await settlement_service.resend_settlement(
        store, publisher, user.id, settlement_id, data.amount, data.message
    )
