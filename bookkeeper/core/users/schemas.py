"""Typed schemas for user IO."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from bookkeeper.core.users.models import User

RoleName = Literal["user", "accountant", "admin"]


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    avatar_url: Optional[str] = Field(default=None, max_length=512)


class RoleChangeRequest(BaseModel):
    role: RoleName


class UserResponse(BaseModel):
    # Persisted emails are not re-validated (demo domains, etc.)
    id: int
    email: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    is_active: bool
    role_codes: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


def serialize_user(user: "User") -> UserResponse:
    return UserResponse.model_validate(user)
