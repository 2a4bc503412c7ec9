from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.session import get_db
from app.services.user_service import create_user, set_settlement_mode
from app.core.dependencies import get_current_user
from app.schemas.user import UserCreate, UserOut, SettlementModeUpdate


router = APIRouter()


@router.post("/", response_model=UserOut, status_code=201)
async def register(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await create_user(db, data)


@router.get("/me", response_model=UserOut)
async def get_user(user = Depends(get_current_user)):
    return user


@router.put("/me/global-settlement-mode", response_model=UserOut)
async def update_settlement_mode(
    data: SettlementModeUpdate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user),
):
    return await set_settlement_mode(db, user.id, data.mode)
