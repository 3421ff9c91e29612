"""
Pydantic schemas for authentication.
"""
from typing import Any
from pydantic import BaseModel, EmailStr


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PrincipalResponse(BaseModel):
    """The authenticated admin or organization."""
    id: str
    role: str
    email: str
    name: str


class TokenResponse(BaseModel):
    token: str
    role: str
    record: dict[str, Any]
