from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.events import InMemoryPublisher
from app.db.session import init_models
from app.models.expense import Expense
from app.models.expense_split import ExpenseSplit
from app.schemas.user import UserCreate
from app.services.group_services import add_member, create_group
from app.services.user_service import create_user
from app.store.ledger_store import SqlLedgerStore


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    factory = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def store(db):
    return SqlLedgerStore(db)


@pytest.fixture
def publisher():
    return InMemoryPublisher()


@pytest.fixture
async def users(db):
    """alice, bob, carol and an outsider dave."""
    created = {}
    for name in ("alice", "bob", "carol", "dave"):
        created[name] = await create_user(db, UserCreate(username=name))
    return created


@pytest.fixture
async def group(db, users):
    """A group administered by alice with bob and carol as plain members."""
    group = await create_group(db, "Trip", users["alice"].id)
    await add_member(db, group.id, users["alice"].id, users["bob"].id)
    await add_member(db, group.id, users["alice"].id, users["carol"].id)
    return group


@pytest.fixture
def add_expense(db):
    """Insert an expense with explicit splits directly, bypassing the service."""

    async def _add(group_id, paid_by, amount, shares):
        expense = Expense(
            group_id=group_id,
            paid_by=paid_by,
            added_by=paid_by,
            amount=Decimal(str(amount)),
            currency="INR",
            split_type="exact",
        )
        expense.splits = [
            ExpenseSplit(user_id=uid, share_amount=Decimal(str(share)))
            for uid, share in shares.items()
        ]
        db.add(expense)
        await db.commit()
        return expense

    return _add
