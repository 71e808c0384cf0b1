from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from hms.authz.types import Role


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8, max_length=72)
    role: Role


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


class IdentityOut(BaseModel):
    id: int
    email: str
    role: Role
    name: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: IdentityOut


class RegisterResponse(BaseModel):
    message: str
    user: UserOut
