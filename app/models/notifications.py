"""Notification ORM model — persisted alert events.

Rows are immutable once written except for the ``read`` flag.
``target`` is either a user id or the literal ``"all"``.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Enum, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import AlertPriorityEnum, AlertTypeEnum


class Notification(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One alert delivered to a user (or to everyone)."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_target_read", "target", "read"),
        Index("ix_notifications_created_at", "created_at"),
    )

    type: Mapped[AlertTypeEnum] = mapped_column(
        Enum(
            AlertTypeEnum,
            name="alert_type",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[AlertPriorityEnum] = mapped_column(
        Enum(
            AlertPriorityEnum,
            name="alert_priority",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=AlertPriorityEnum.medium,
        server_default=AlertPriorityEnum.medium.value,
    )
    target: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="all",
        server_default=text("'all'"),
    )
    source_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    data: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    read: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Notification id={self.id} type={self.type} "
            f"target={self.target!r} read={self.read}>"
        )
