from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Literal, Optional

class UserCreate(BaseModel):
    username: str
    email: Optional[EmailStr] = None

class SettlementModeUpdate(BaseModel):
    mode: Literal["separate", "auto_adjust", "hybrid"]

class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[EmailStr] = None
    settlement_mode: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
