from decimal import Decimal
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./splito.db"
    JWT_SECRET: str = "change-me"
    JWT_ALGO: str = "HS256"
    BALANCE_TOLERANCE: Decimal = Decimal("0.01")
    DEFAULT_CURRENCY: str = "INR"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
