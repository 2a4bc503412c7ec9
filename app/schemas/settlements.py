from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional

class SettlementCreate(BaseModel):
    to_user_id: int = Field(validation_alias=AliasChoices("to_user_id", "toUserId", "to_user"))
    amount: Decimal
    message: Optional[str] = None

class SettlementReject(BaseModel):
    reason: Optional[str] = Field(default=None, validation_alias=AliasChoices("reason", "rejected_reason", "rejectedReason"))

class SettlementResend(BaseModel):
    amount: Optional[Decimal] = None
    message: Optional[str] = None

class SettlementOut(BaseModel):
    id: int
    group_id: Optional[int] = None
    from_user_id: int
    to_user_id: int
    amount: Decimal
    status: str
    message: Optional[str] = None
    rejected_reason: Optional[str] = None
    resent_from_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SettlementHistoryOut(SettlementOut):
    from_username: Optional[str] = None
    to_username: Optional[str] = None

class SuggestedSettlement(BaseModel):
    from_user_id: int
    from_username: Optional[str]
    to_user_id: int
    to_username: Optional[str]
    amount: Decimal

class MemberBalanceOut(BaseModel):
    user_id: int
    username: str
    total_paid: Decimal
    total_owed: Decimal
    received_settlements: Decimal
    paid_settlements: Decimal
    net: Decimal
    original_net: Decimal
    global_adjustment: Decimal
    is_owed: bool
    owes: bool
    is_settled: bool

class GlobalBalanceOut(BaseModel):
    user_id: int
    username: Optional[str]
    group_balance: Decimal
    global_adjustment: Decimal
    net: Decimal
    is_owed: bool
    owes: bool
    is_settled: bool
