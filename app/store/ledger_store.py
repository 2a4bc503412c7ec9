"""Read and narrow-write access to the ledger tables.

The balance and settlement services only talk to :class:`LedgerStore`; the
SQLAlchemy implementation below is what the API wires in per request.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, update, delete, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import Conflict

from app.models.user import User
from app.models.group import Group
from app.models.group_member import GroupMember
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.models.settlement import Settlement
from app.models.global_settlement import GlobalSettlement

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_users(self, user_ids: Iterable[int]) -> List[User]: ...

    @abstractmethod
    async def get_group(self, group_id: int) -> Optional[Group]: ...

    @abstractmethod
    async def get_membership(self, group_id: int, user_id: int) -> Optional[GroupMember]: ...

    @abstractmethod
    async def list_memberships(self, group_id: int) -> List[GroupMember]: ...

    @abstractmethod
    async def list_user_memberships(self, user_id: int) -> List[GroupMember]: ...

    @abstractmethod
    async def list_expenses_and_splits(self, group_id: int) -> List[Expense]: ...

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[Expense]: ...

    @abstractmethod
    async def create_expense(self, **fields) -> Expense: ...

    @abstractmethod
    async def replace_splits(self, expense: Expense, splits: List[Tuple[int, Decimal]]) -> None: ...

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> None: ...

    @abstractmethod
    async def list_settlements(
        self,
        group_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        to_user_id: Optional[int] = None,
    ) -> List[Settlement]: ...

    @abstractmethod
    async def get_settlement(self, settlement_id: int) -> Optional[Settlement]: ...

    @abstractmethod
    async def get_settlement_resend(self, settlement_id: int) -> Optional[Settlement]: ...

    @abstractmethod
    async def create_settlement(
        self,
        group_id: int,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        message: Optional[str],
        resent_from_id: Optional[int] = None,
    ) -> Settlement: ...

    @abstractmethod
    async def cas_update_settlement_status(
        self, settlement_id: int, expected_status: str, new_status: str, **extra
    ) -> bool: ...

    @abstractmethod
    async def list_global_settlements(
        self, user_id: Optional[int] = None, status: Optional[str] = None
    ) -> List[GlobalSettlement]: ...

    @abstractmethod
    async def get_global_settlement(self, settlement_id: int) -> Optional[GlobalSettlement]: ...

    @abstractmethod
    async def get_global_settlement_resend(self, settlement_id: int) -> Optional[GlobalSettlement]: ...

    @abstractmethod
    async def create_global_settlement(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: Decimal,
        message: Optional[str],
        resent_from_id: Optional[int] = None,
    ) -> GlobalSettlement: ...

    @abstractmethod
    async def cas_update_global_settlement_status(
        self, settlement_id: int, expected_status: str, new_status: str, **extra
    ) -> bool: ...

    @abstractmethod
    async def commit(self) -> None: ...


class SqlLedgerStore(LedgerStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _one(self, q):
        res = await self.db.execute(q.execution_options(populate_existing=True))
        return res.scalar_one_or_none()

    async def _all(self, q):
        res = await self.db.execute(q.execution_options(populate_existing=True))
        return list(res.scalars().unique().all())

    # users / groups / members

    async def get_user(self, user_id: int):
        return await self._one(select(User).where(User.id == user_id))

    async def get_users(self, user_ids):
        ids = list(set(user_ids))
        if not ids:
            return []
        return await self._all(select(User).where(User.id.in_(ids)))

    async def get_group(self, group_id: int):
        return await self._one(select(Group).where(Group.id == group_id))

    async def get_membership(self, group_id: int, user_id: int):
        q = select(GroupMember).where(
            GroupMember.group_id == group_id,
            GroupMember.user_id == user_id
        )
        return await self._one(q)

    async def list_memberships(self, group_id: int):
        q = (
            select(GroupMember)
            .where(GroupMember.group_id == group_id)
            .order_by(GroupMember.user_id)
        )
        return await self._all(q)

    async def list_user_memberships(self, user_id: int):
        q = (
            select(GroupMember)
            .where(GroupMember.user_id == user_id)
            .order_by(GroupMember.group_id)
        )
        return await self._all(q)

    # expenses

    async def list_expenses_and_splits(self, group_id: int):
        q = (
            select(Expense)
            .where(Expense.group_id == group_id)
            .order_by(Expense.created_at.desc(), Expense.id.desc())
        )
        return await self._all(q)

    async def get_expense(self, expense_id: int):
        return await self._one(select(Expense).where(Expense.id == expense_id))

    async def create_expense(self, **fields):
        expense = Expense(**fields)
        expense.splits = []
        self.db.add(expense)
        await self.db.flush()  # generates expense.id
        return expense

    async def replace_splits(self, expense, splits):
        # delete-orphan cascade removes the previous rows on flush
        expense.splits = [
            ExpenseSplit(user_id=user_id, share_amount=share) for user_id, share in splits
        ]
        await self.db.flush()

    async def delete_expense(self, expense_id: int):
        await self.db.execute(delete(ExpenseSplit).where(ExpenseSplit.expense_id == expense_id))
        await self.db.execute(delete(Expense).where(Expense.id == expense_id))
        await self.db.flush()
        logger.info("deleted expense %s and its splits", expense_id)

    # group settlements

    async def list_settlements(self, group_id=None, user_id=None, status=None, to_user_id=None):
        q = select(Settlement)
        if group_id is not None:
            q = q.where(Settlement.group_id == group_id)
        if user_id is not None:
            q = q.where(or_(Settlement.from_user_id == user_id, Settlement.to_user_id == user_id))
        if to_user_id is not None:
            q = q.where(Settlement.to_user_id == to_user_id)
        if status is not None:
            q = q.where(Settlement.status == status)
        q = q.order_by(Settlement.created_at.desc(), Settlement.id.desc())
        return await self._all(q)

    async def get_settlement(self, settlement_id: int):
        return await self._one(select(Settlement).where(Settlement.id == settlement_id))

    async def get_settlement_resend(self, settlement_id: int):
        return await self._one(select(Settlement).where(Settlement.resent_from_id == settlement_id))

    async def create_settlement(self, group_id, from_user_id, to_user_id, amount, message, resent_from_id=None):
        settlement = Settlement(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            message=message,
            resent_from_id=resent_from_id,
        )
        return await self._insert(settlement)

    async def cas_update_settlement_status(self, settlement_id, expected_status, new_status, **extra):
        return await self._cas(Settlement, settlement_id, expected_status, new_status, extra)

    # global settlements

    async def list_global_settlements(self, user_id=None, status=None):
        q = select(GlobalSettlement)
        if user_id is not None:
            q = q.where(or_(
                GlobalSettlement.from_user_id == user_id,
                GlobalSettlement.to_user_id == user_id,
            ))
        if status is not None:
            q = q.where(GlobalSettlement.status == status)
        q = q.order_by(GlobalSettlement.created_at.desc(), GlobalSettlement.id.desc())
        return await self._all(q)

    async def get_global_settlement(self, settlement_id: int):
        return await self._one(select(GlobalSettlement).where(GlobalSettlement.id == settlement_id))

    async def get_global_settlement_resend(self, settlement_id: int):
        return await self._one(
            select(GlobalSettlement).where(GlobalSettlement.resent_from_id == settlement_id)
        )

    async def create_global_settlement(self, from_user_id, to_user_id, amount, message, resent_from_id=None):
        settlement = GlobalSettlement(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            message=message,
            resent_from_id=resent_from_id,
        )
        return await self._insert(settlement)

    async def cas_update_global_settlement_status(self, settlement_id, expected_status, new_status, **extra):
        return await self._cas(GlobalSettlement, settlement_id, expected_status, new_status, extra)

    async def _insert(self, settlement):
        resent_from_id = settlement.resent_from_id
        self.db.add(settlement)
        try:
            await self.db.commit()
        except IntegrityError:
            # only reachable through the one-resend-per-record constraint
            await self.db.rollback()
            logger.warning("settlement %s was resent concurrently", resent_from_id)
            raise Conflict("Settlement has already been resent")
        await self.db.refresh(settlement)
        return settlement

    async def _cas(self, model, settlement_id, expected_status, new_status, extra):
        # single conditional write: only a row still in expected_status is touched
        q = (
            update(model)
            .where(model.id == settlement_id, model.status == expected_status)
            .values(status=new_status, updated_at=func.now(), **extra)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(q)
        await self.db.commit()
        return res.rowcount == 1

    async def commit(self):
        await self.db.commit()
