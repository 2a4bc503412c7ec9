from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.services.group_services import create_group, add_member, leave_group, list_group_for_user
from app.schemas.group import GroupCreate, GroupMemberAdd, GroupMemberOut, GroupOut
from app.core.dependencies import get_current_user

router = APIRouter()

@router.post("/", response_model=GroupOut, status_code=201)
async def create_new_group(
    data: GroupCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await create_group(db, data.name, user.id, data.currency)

@router.post("/{group_id}/members", response_model=GroupMemberOut, status_code=201)
async def add_user_to_group(
    group_id: int,
    data: GroupMemberAdd,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await add_member(db, group_id, user.id, data.user_id, data.is_admin)

@router.post("/{group_id}/leave")
async def leave(group_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await leave_group(db, group_id, user.id)

@router.get("/my-groups", response_model=list[GroupOut])
async def my_groups(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await list_group_for_user(db, user.id)
