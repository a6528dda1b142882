"""Pydantic schemas for accounts and sessions.

Learn: Separate request schemas (input) from read schemas (output).
UserRead never includes password_hash or the refresh slot.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from mediahub.auth.password import MIN_PASSWORD_LENGTH

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


# ─── Requests ───────────────────────────────────────────

class RegisterRequest(BaseModel):
    """Text fields of the multipart registration form."""
    fullname: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)

    @field_validator("fullname", "username", mode="before")
    @classmethod
    def strip_blank(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[str] = None
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.email and not self.username:
            raise ValueError("Email or username is required")
        return self


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class AccountUpdate(BaseModel):
    fullname: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


# ─── Responses ──────────────────────────────────────────

class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ChannelProfile(BaseModel):
    """Public view of a user (no email)."""
    id: uuid.UUID
    username: str
    fullname: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class TokenPairRead(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class SessionRead(TokenPairRead):
    """Login/registration payload. Tokens are also set as cookies."""
    user: UserRead
