from pydantic import BaseModel, ConfigDict
from typing import Optional

from examhall.core.constants import RoleEnum

class User(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: RoleEnum
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class TokenPayload(BaseModel):
    user_id: int
    role: RoleEnum

class UserContext(BaseModel):
    """The authenticated caller as seen by the exam session routes."""
    user: User
    role: RoleEnum

    model_config = ConfigDict(use_enum_values=True)
