"""Revoked JWTs, consulted by the JWT blocklist loader."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from bookkeeper.extensions import db


class RevokedToken(db.Model):
    __tablename__ = "revoked_token"

    id: Mapped[int] = mapped_column(primary_key=True)
    jti: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    token_type: Mapped[str] = mapped_column(db.String(16), nullable=False, default="refresh")
    user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id"))
    # Rows past this point can be pruned; the token would be rejected as expired anyway.
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    revoked_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
