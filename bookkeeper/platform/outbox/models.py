"""Outbox rows: domain events committed with the change that produced them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from bookkeeper.extensions import db

STATUS_PENDING = "pending"
STATUS_SENDING = "sending"
STATUS_SENT = "sent"
STATUS_RETRY = "retry"
STATUS_DEAD = "dead"
READY_STATUSES = (STATUS_PENDING, STATUS_RETRY)


class OutboxMessage(db.Model):
    __tablename__ = "platform_outbox"
    __table_args__ = (
        db.Index("ix_platform_outbox_status_available_at", "status", "available_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # Actor that caused the event, if any (CLI seeding has none).
    user_id: Mapped[int | None] = mapped_column(db.ForeignKey("user.id"), index=True)
    event_type: Mapped[str] = mapped_column(db.String(128), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(db.String(32), nullable=False, default=STATUS_PENDING)
    attempts: Mapped[int] = mapped_column(default=0)
    available_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    last_error: Mapped[str | None] = mapped_column(db.Text)
    dispatched_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)