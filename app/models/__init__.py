"""ORM model registry — importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from app.models import Crop, Farm, Notification, ...
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import (
    AlertPriorityEnum,
    AlertTypeEnum,
    CropStatusEnum,
    LedgerEntryTypeEnum,
    MaintenanceCategoryEnum,
    SourceCollectionEnum,
    TaskStatusEnum,
)

# ── Farm & crop records ─────────────────────────────────────────────────────
from app.models.farm import Crop, Farm

# ── Notifications ───────────────────────────────────────────────────────────
from app.models.notifications import Notification

# ── Operational records ─────────────────────────────────────────────────────
from app.models.operations import FarmTask, InventoryItem, LedgerEntry

__all__ = [
    # Enums
    "AlertPriorityEnum",
    "AlertTypeEnum",
    # Base & mixins
    "Base",
    # Farm & crop
    "Crop",
    "CropStatusEnum",
    "Farm",
    # Operational
    "FarmTask",
    "InventoryItem",
    "LedgerEntry",
    "LedgerEntryTypeEnum",
    "MaintenanceCategoryEnum",
    # Notifications
    "Notification",
    "SourceCollectionEnum",
    "TaskStatusEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
