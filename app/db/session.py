from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings

Base = declarative_base()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_pre_ping=True
)

async_session = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)

async def get_db():
    async with async_session() as session:
        yield session

async def init_models(bind=engine):
    # imported for their side effect of registering tables on Base.metadata
    from app.models import (  # noqa: F401
        user, group, group_member, expense, expense_split, settlement, global_settlement
    )

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
