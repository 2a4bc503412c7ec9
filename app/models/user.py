from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.db.session import Base

SETTLEMENT_MODES = ("separate", "auto_adjust", "hybrid")

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=True)
    # how global settlements fold into this user's group balances
    settlement_mode = Column(String, nullable=False, default="separate", server_default="separate")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
