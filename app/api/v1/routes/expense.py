from fastapi import APIRouter, Depends
from app.schemas.expense import ExpenseCreate, ExpenseUpdate, ExpenseOut
from app.services.expense_services import (
    create_expense,
    delete_expense,
    update_expense,
    get_expense_by_id,
    get_expenses_by_group,
)
from app.core.dependencies import get_current_user, get_store
from app.store.ledger_store import LedgerStore

router = APIRouter()

@router.post("/{group_id}", response_model=ExpenseOut, status_code=201)
async def add_expense(
    group_id: int,
    data: ExpenseCreate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user),
):
    return await create_expense(store, current_user.id, group_id, data)

@router.get("/{group_id}/all", response_model=list[ExpenseOut])
async def all_expenses(
    group_id: int,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user),
):
    return await get_expenses_by_group(store, current_user.id, group_id)

@router.get("/exp/{expense_id}", response_model=ExpenseOut)
async def fetch(
    expense_id: int,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user),
):
    return await get_expense_by_id(store, current_user.id, expense_id)

@router.put("/{expense_id}", response_model=ExpenseOut)
async def edit(
    expense_id: int,
    data: ExpenseUpdate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user),
):
    return await update_expense(store, current_user.id, expense_id, data)

@router.delete("/{expense_id}")
async def del_expense(
    expense_id: int,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user),
):
    return await delete_expense(store, current_user.id, expense_id)
