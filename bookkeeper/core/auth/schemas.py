"""Request bodies for /auth."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from bookkeeper.core.auth.password import password_problem


class LoginRequest(BaseModel):
    # Not EmailStr: seeded accounts may use reserved demo domains.
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    name: Optional[str] = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name")
    @classmethod
    def blank_name_is_none(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None

    @field_validator("password")
    @classmethod
    def strong_enough(cls, v: str) -> str:
        problem = password_problem(v)
        if problem:
            raise ValueError(problem)
        return v
