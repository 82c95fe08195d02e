from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Literal

Role = Literal["admin", "nurse"]


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, description="Login name, unique")
    password: str = Field(..., min_length=6, max_length=128, description="Plain password (will be hashed)")
    role: Role = "nurse"
    full_name: str = Field(..., min_length=1)

class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=50)
    # Left out means "keep the current password"
    password: str | None = Field(None, min_length=6, max_length=128)
    role: Role | None = None
    full_name: str | None = None

class UserResponse(BaseModel):
    id: int
    username: str
    role: Role
    full_name: str

    model_config = ConfigDict(from_attributes=True)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse
