"""User profile model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from bookkeeper.extensions import db

ROLE_USER = "user"
ROLE_ACCOUNTANT = "accountant"
ROLE_ADMIN = "admin"
# Higher rank satisfies every lower requirement.
ROLE_HIERARCHY = {ROLE_USER: 1, ROLE_ACCOUNTANT: 2, ROLE_ADMIN: 3}


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)


class User(db.Model, TimestampMixin):
    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    name: Mapped[str | None] = mapped_column(db.String(255))
    avatar_url: Mapped[str | None] = mapped_column(db.String(512))
    role: Mapped[str] = mapped_column(db.String(32), nullable=False, default=ROLE_USER)
    is_active: Mapped[bool] = mapped_column(default=True)

    @property
    def role_codes(self) -> list[str]:
        return [self.role] if self.role else []
