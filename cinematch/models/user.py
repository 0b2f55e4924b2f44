"""
User Models - Request/response shapes for registration and login.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class AuthRequest(BaseModel):
    """Register/login payload. Validation happens in the endpoint so the
    error messages stay stable for clients."""
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    """JWT issued after a successful register or login."""
    model_config = ConfigDict(populate_by_name=True)

    token: str
    user_id: str = Field(..., alias="userId")


class User(BaseModel):
    """Public user record."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str


class UserInDB(User):
    """User as stored, with the bcrypt hash."""
    hashed_password: str


class TokenData(BaseModel):
    """Token payload data."""
    user_id: Optional[str] = None
    email: Optional[str] = None
