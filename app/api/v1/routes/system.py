from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services.system_services import check_db_service, system_health, system_metrics

router = APIRouter()


@router.get("/health")
async def health():
    return await system_health()


@router.get("/health/db")
async def check_db(db: AsyncSession = Depends(get_db)):
    return await check_db_service(db)


@router.get("/metrics")
async def ledger_metrics(db: AsyncSession = Depends(get_db)):
    return await system_metrics(db)
