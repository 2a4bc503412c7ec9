from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional

class GroupCreate(BaseModel):
    name: str
    currency: Optional[str] = None

class GroupOut(BaseModel):
    id: int
    name: str
    currency: str
    created_by: int

    model_config = ConfigDict(from_attributes=True)

class GroupMemberAdd(BaseModel):
    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId"))
    is_admin: bool = Field(default=False, validation_alias=AliasChoices("is_admin", "isAdmin"))

class GroupMemberOut(BaseModel):
    user_id: int
    group_id: int
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)
