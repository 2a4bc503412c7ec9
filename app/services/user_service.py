import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.core.errors import NotFound, ValidationError
from app.models.user import User, SETTLEMENT_MODES
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)

async def get_user_by_id(db: AsyncSession, user_id: int):
    res = await db.execute(select(User).where(User.id == user_id))
    return res.scalar_one_or_none()

async def get_user_by_username(db: AsyncSession, username: str):
    res = await db.execute(select(User).where(User.username == username))
    return res.scalar_one_or_none()

async def create_user(db: AsyncSession, data: UserCreate):
    existing = await get_user_by_username(db, data.username)
    if existing:
        raise ValidationError("User already exists")

    user = User(username=data.username, email=data.email)

    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user

async def set_settlement_mode(db: AsyncSession, user_id: int, mode: str):
    if mode not in SETTLEMENT_MODES:
        raise ValidationError(f"Unknown settlement mode '{mode}'")

    user = await get_user_by_id(db, user_id)

    if not user:
        raise NotFound("User does not exist")

    user.settlement_mode = mode

    await db.commit()
    await db.refresh(user)
    logger.info("user %s settlement mode -> %s", user_id, mode)

    return user
