import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from app.core.config import settings
from app.core.dependencies import check_group_membership
from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.utils import TOLERANCE
from app.models.group import Group
from app.models.group_member import GroupMember
from app.services.balance_calculator import calculate_user_group_balance
from app.store.ledger_store import SqlLedgerStore

logger = logging.getLogger(__name__)

async def create_group(db: AsyncSession, name: str, creator_id: int, currency: str | None = None):
    group = Group(name=name, created_by=creator_id, currency=currency or settings.DEFAULT_CURRENCY)
    db.add(group)
    await db.flush()

    # the creator administers the group
    member = GroupMember(group_id=group.id, user_id=creator_id, is_admin=True)
    db.add(member)

    await db.commit()
    await db.refresh(group)
    return group

async def add_member(db: AsyncSession, group_id: int, requester_id: int, user_id: int, is_admin: bool = False):
    store = SqlLedgerStore(db)
    requester = await check_group_membership(store, group_id, requester_id)

    if not requester.is_admin:
        raise Forbidden("Only group admins can add members")

    if not await store.get_user(user_id):
        raise NotFound("User not found")

    if await store.get_membership(group_id, user_id):
        raise ValidationError("User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id, is_admin=is_admin)
    db.add(member)
    await db.commit()
    await db.refresh(member)
    return member

async def leave_group(db: AsyncSession, group_id: int, user_id: int):
    store = SqlLedgerStore(db)
    member = await check_group_membership(store, group_id, user_id)

    balance = await calculate_user_group_balance(store, user_id, group_id)
    if abs(balance.net_balance) > TOLERANCE:
        raise ValidationError(
            "Cannot leave group with unsettled expenses. Please settle all expenses first."
        )

    await db.delete(member)
    await db.commit()
    logger.info("user %s left group %s", user_id, group_id)
    return {"status": "left"}

async def list_group_for_user(db: AsyncSession, user_id: int):
    q = (
        select(Group)
        .join(GroupMember)
        .where(GroupMember.user_id == user_id)
        .order_by(Group.id)
    )
    result = await db.execute(q)
    return result.scalars().all()
