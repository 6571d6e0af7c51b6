from __future__ import annotations


from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: str
    first_name: str
    last_name: str
    is_active: bool
    last_login_at: Optional[datetime] = None


class UserCreate(BaseModel):
    email: str
    password: str
    role: str
    first_name: str
    last_name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead
