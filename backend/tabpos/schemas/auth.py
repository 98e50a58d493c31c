"""Authentication schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Username/password login request body."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class PinLoginRequest(BaseModel):
    """Staff PIN login request body."""

    username: str = Field(..., min_length=1, max_length=50)
    pin: str = Field(..., min_length=4, max_length=6)


class GuestRequest(BaseModel):
    """Customer registration: display name and the table they sit at."""

    name: str = Field(..., min_length=1, max_length=100)
    table_num: int = Field(..., ge=1)


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    role: str
    name: str


class MeResponse(BaseModel):
    user_id: str
    username: str
    name: str
    role: str
    tenant_id: int
    permissions: Optional[dict] = None
