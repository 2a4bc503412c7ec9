from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.api.v1.routes.system import router as system_router
from app.api.v1.routes.user import router as user_router
from app.api.v1.routes.group import router as group_router
from app.api.v1.routes.expense import router as expense_router
from app.api.v1.routes.settlement import router as settlement_router
from app.core.db_check import wait_for_db
from app.core.logging_config import setup_logging
from app.db.session import init_models

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await wait_for_db()
    await init_models()
    yield

app = FastAPI(title="Splito Ledger", lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Splito Ledger is live"}

app.include_router(system_router, prefix="/api/v1/system")
app.include_router(user_router, prefix="/api/v1/users")
app.include_router(group_router, prefix="/api/v1/groups")
app.include_router(expense_router, prefix="/api/v1/expenses")
app.include_router(settlement_router, prefix="/api/v1/settle")
