"""PostgreSQL-backed enum types for all ORM models.

Each StrEnum maps 1:1 to a PostgreSQL CREATE TYPE ... AS ENUM.
These are separate from the settings enums in app/config.py:
config enums validate settings, ORM enums type database columns.
"""

from enum import StrEnum

# ── Crop lifecycle ──────────────────────────────────────────────────────────


class CropStatusEnum(StrEnum):
    """Crop lifecycle state; only moves forward planted → growing → harvested."""

    planted = "planted"
    growing = "growing"
    harvested = "harvested"
    failed = "failed"


class MaintenanceCategoryEnum(StrEnum):
    """Recurring husbandry categories, declared in schedule tie-break order."""

    irrigation = "irrigation"
    weeding = "weeding"
    fertilizer = "fertilizer"
    pest_control = "pest_control"


# ── Operational records ─────────────────────────────────────────────────────


class TaskStatusEnum(StrEnum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


class LedgerEntryTypeEnum(StrEnum):
    income = "income"
    expense = "expense"


# ── Alerts ──────────────────────────────────────────────────────────────────


class AlertTypeEnum(StrEnum):
    """Closed set of alert categories written to the notification store."""

    crop_status_update = "crop_status_update"
    crop_harvested = "crop_harvested"
    irrigation_required = "irrigation_required"
    weeding_required = "weeding_required"
    fertilization_required = "fertilization_required"
    harvest_approaching = "harvest_approaching"
    maintenance_due = "maintenance_due"
    out_of_stock = "out_of_stock"
    low_inventory = "low_inventory"
    task_overdue = "task_overdue"
    task_due_soon = "task_due_soon"
    soil_ph_alert = "soil_ph_alert"
    low_moisture = "low_moisture"
    negative_cashflow = "negative_cashflow"
    general = "general"


class AlertPriorityEnum(StrEnum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class SourceCollectionEnum(StrEnum):
    """External record collections the engine reads from (change-feed topics)."""

    crops = "crops"
    inventory = "inventory"
    tasks = "tasks"
    farms = "farms"
    ledger = "ledger"
