from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.core.security import decode_token, get_bearer_token
from app.core.errors import NotFound, Forbidden
from app.store.ledger_store import LedgerStore, SqlLedgerStore

def get_store(db: AsyncSession = Depends(get_db)) -> LedgerStore:
    return SqlLedgerStore(db)

async def get_current_user(request: Request, store: LedgerStore = Depends(get_store)):
    token = get_bearer_token(request)
    payload = decode_token(token)
    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    try:
        user = await store.get_user(int(user_id))
    except ValueError:
        raise HTTPException(status_code=401, detail="Could not validate credentials")

    if user is None:
        raise HTTPException(status_code=401, detail="User not found")

    return user

async def check_group_membership(store: LedgerStore, group_id: int, user_id: int):
    group = await store.get_group(group_id)

    if not group:
        raise NotFound("Group does not exist")

    return await ensure_group_member(store, group_id, user_id)

async def ensure_group_member(store: LedgerStore, group_id: int, user_id: int):
    member = await store.get_membership(group_id, user_id)

    if not member:
        raise Forbidden("You are not a member of this group")

    return member
