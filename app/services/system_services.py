import logging

from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.expense import Expense
from app.models.global_settlement import GlobalSettlement
from app.models.group import Group
from app.models.settlement import PENDING, Settlement
from app.models.user import User

logger = logging.getLogger(__name__)


async def check_db_service(db: AsyncSession):
    try:
        await db.execute(text("SELECT 1"))
        return {"db": True, "message": "Database is connected"}
    except SQLAlchemyError as e:
        logger.warning("database health check failed: %s", e)
        return {"db": False, "error": str(e)}


async def system_health():
    return {"status": "ok"}


async def _count(db: AsyncSession, stmt) -> int:
    return (await db.execute(stmt)).scalar() or 0


async def system_metrics(db: AsyncSession):
    """Row counts for the ledger tables, with open settlement requests broken out."""
    return {
        "users": await _count(db, select(func.count(User.id))),
        "groups": await _count(db, select(func.count(Group.id))),
        "expenses": await _count(db, select(func.count(Expense.id))),
        "pending_settlements": await _count(
            db, select(func.count(Settlement.id)).where(Settlement.status == PENDING)
        ),
        "pending_global_settlements": await _count(
            db,
            select(func.count(GlobalSettlement.id)).where(GlobalSettlement.status == PENDING),
        ),
    }
