from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import List, Literal, Optional

# request models accept both snake_case and camelCase keys; everything past
# this module only sees the snake_case attributes

class SplitInput(BaseModel):
    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId"))
    share_amount: Decimal = Field(validation_alias=AliasChoices("share_amount", "shareAmount", "amount"))

class ExpenseCreate(BaseModel):
    amount: Decimal
    description: Optional[str] = None
    payer_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("payer_id", "payerId"))
    currency: Optional[str] = None
    category: Optional[str] = None
    split_type: Literal["equal", "exact"] = Field(
        default="equal", validation_alias=AliasChoices("split_type", "splitType")
    )
    note: Optional[str] = None
    splits: Optional[List[SplitInput]] = None

class ExpenseUpdate(BaseModel):
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    split_type: Optional[Literal["equal", "exact"]] = Field(
        default=None, validation_alias=AliasChoices("split_type", "splitType")
    )
    note: Optional[str] = None
    splits: Optional[List[SplitInput]] = None

class SplitOut(BaseModel):
    user_id: int
    share_amount: Decimal

    model_config = ConfigDict(from_attributes=True)

class ExpenseOut(BaseModel):
    id: int
    group_id: int
    paid_by: int
    added_by: int
    amount: Decimal
    description: Optional[str] = None
    currency: str
    category: Optional[str] = None
    split_type: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    splits: List[SplitOut]

    model_config = ConfigDict(from_attributes=True)
