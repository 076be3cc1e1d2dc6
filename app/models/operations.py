"""Inventory, task and ledger ORM models — read-only inputs of the condition monitor."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import LedgerEntryTypeEnum, TaskStatusEnum


class InventoryItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A stocked input (seed, fertilizer, chemical, feed …).

    ``min_quantity`` overrides the configured low-stock threshold when set.
    """

    __tablename__ = "inventory_items"

    farm_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    quantity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    unit: Mapped[str] = mapped_column(String(32), nullable=False, default="units")
    min_quantity: Mapped[float | None] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} name={self.name!r} qty={self.quantity}>"


class FarmTask(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A scheduled piece of work assigned to a worker."""

    __tablename__ = "farm_tasks"
    __table_args__ = (Index("ix_farm_tasks_status_due", "status", "due_date"),)

    farm_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[TaskStatusEnum] = mapped_column(
        Enum(
            TaskStatusEnum,
            name="task_status",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=TaskStatusEnum.pending,
        server_default=TaskStatusEnum.pending.value,
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<FarmTask id={self.id} title={self.title!r} status={self.status}>"


class LedgerEntry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A single income or expense line in the financial ledger."""

    __tablename__ = "ledger_entries"
    __table_args__ = (Index("ix_ledger_entries_date", "entry_date"),)

    entry_type: Mapped[LedgerEntryTypeEnum] = mapped_column(
        Enum(
            LedgerEntryTypeEnum,
            name="ledger_entry_type",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry id={self.id} type={self.entry_type} "
            f"amount={self.amount}>"
        )
