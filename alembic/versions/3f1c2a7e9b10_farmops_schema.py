"""farmops_schema

Revision ID: 3f1c2a7e9b10
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the six FarmOps tables (farms, crops, inventory_items, farm_tasks,
ledger_entries, notifications), their PostgreSQL enum types and indexes.
Primary keys default to gen_random_uuid() (PostgreSQL 13+ core).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c2a7e9b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# ── Enum type names (PostgreSQL CREATE TYPE) ────────────────────────────────
ENUM_CROP_STATUS = postgresql.ENUM(
    "planted", "growing", "harvested", "failed", name="crop_status", create_type=False
)
ENUM_TASK_STATUS = postgresql.ENUM(
    "pending", "in_progress", "completed", name="task_status", create_type=False
)
ENUM_LEDGER_ENTRY_TYPE = postgresql.ENUM(
    "income", "expense", name="ledger_entry_type", create_type=False
)
ENUM_ALERT_TYPE = postgresql.ENUM(
    "crop_status_update",
    "crop_harvested",
    "irrigation_required",
    "weeding_required",
    "fertilization_required",
    "harvest_approaching",
    "maintenance_due",
    "out_of_stock",
    "low_inventory",
    "task_overdue",
    "task_due_soon",
    "soil_ph_alert",
    "low_moisture",
    "negative_cashflow",
    "general",
    name="alert_type",
    create_type=False,
)
ENUM_ALERT_PRIORITY = postgresql.ENUM(
    "low", "medium", "high", "critical", name="alert_priority", create_type=False
)


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # ── 1. Create enum types ────────────────────────────────────────────
    ENUM_CROP_STATUS.create(op.get_bind(), checkfirst=True)
    ENUM_TASK_STATUS.create(op.get_bind(), checkfirst=True)
    ENUM_LEDGER_ENTRY_TYPE.create(op.get_bind(), checkfirst=True)
    ENUM_ALERT_TYPE.create(op.get_bind(), checkfirst=True)
    ENUM_ALERT_PRIORITY.create(op.get_bind(), checkfirst=True)

    # ── 2. Farm records ─────────────────────────────────────────────────

    # farms
    op.create_table(
        "farms",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("soil_ph", sa.Float(), nullable=True),
        sa.Column("soil_moisture_pct", sa.Float(), nullable=True),
        sa.Column("soil_measured_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )

    # crops
    op.create_table(
        "crops",
        _id_column(),
        sa.Column("farm_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("crop_type", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("variety", sa.String(255), nullable=True),
        sa.Column("planting_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            ENUM_CROP_STATUS,
            server_default=sa.text("'planted'"),
            nullable=False,
        ),
        sa.Column("harvest_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expected_harvest_days", sa.Integer(), nullable=True),
        sa.Column(
            "harvest_reminder_sent",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column(
            "status_alert_sent",
            sa.Boolean(),
            server_default=sa.text("true"),
            nullable=False,
        ),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["farm_id"], ["farms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_crops_status", "crops", ["status"])

    # ── 3. Operational records ──────────────────────────────────────────

    # inventory_items
    op.create_table(
        "inventory_items",
        _id_column(),
        sa.Column("farm_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("min_quantity", sa.Float(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["farm_id"], ["farms.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )

    # farm_tasks
    op.create_table(
        "farm_tasks",
        _id_column(),
        sa.Column("farm_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column(
            "status",
            ENUM_TASK_STATUS,
            server_default=sa.text("'pending'"),
            nullable=False,
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_to", sa.String(255), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["farm_id"], ["farms.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_farm_tasks_status_due", "farm_tasks", ["status", "due_date"])

    # ledger_entries
    op.create_table(
        "ledger_entries",
        _id_column(),
        sa.Column("entry_type", ENUM_LEDGER_ENTRY_TYPE, nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("entry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("description", sa.String(1024), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ledger_entries_date", "ledger_entries", ["entry_date"])

    # ── 4. Notifications ────────────────────────────────────────────────
    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("type", ENUM_ALERT_TYPE, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "priority",
            ENUM_ALERT_PRIORITY,
            server_default=sa.text("'medium'"),
            nullable=False,
        ),
        sa.Column(
            "target",
            sa.String(255),
            server_default=sa.text("'all'"),
            nullable=False,
        ),
        sa.Column("source_type", sa.String(32), nullable=True),
        sa.Column("source_id", sa.String(64), nullable=True),
        sa.Column("data", postgresql.JSONB(), nullable=True),
        sa.Column(
            "read",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_notifications_target_read", "notifications", ["target", "read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    # ── Drop tables in reverse dependency order ─────────────────────────
    op.drop_table("notifications")
    op.drop_table("ledger_entries")
    op.drop_table("farm_tasks")
    op.drop_table("inventory_items")
    op.drop_table("crops")
    op.drop_table("farms")

    # ── Drop enum types ─────────────────────────────────────────────────
    ENUM_ALERT_PRIORITY.drop(op.get_bind(), checkfirst=True)
    ENUM_ALERT_TYPE.drop(op.get_bind(), checkfirst=True)
    ENUM_LEDGER_ENTRY_TYPE.drop(op.get_bind(), checkfirst=True)
    ENUM_TASK_STATUS.drop(op.get_bind(), checkfirst=True)
    ENUM_CROP_STATUS.drop(op.get_bind(), checkfirst=True)
