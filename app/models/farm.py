"""Farm and Crop ORM models — the records the lifecycle monitor walks.

Farms carry the latest soil-health snapshot (pH and moisture %) that the
condition monitor checks.  Crops carry the lifecycle status the engine
advances plus the reminder flags that stop one-time alerts from repeating.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import CropStatusEnum

# ═══════════════════════════════════════════════════════════════════════════
# Farm
# ═══════════════════════════════════════════════════════════════════════════


class Farm(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A physical farm with its most recent soil-health reading.

    ``soil_ph`` and ``soil_moisture_pct`` are both nullable; a farm
    without a reading is simply skipped by the soil rules.
    """

    __tablename__ = "farms"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    soil_ph: Mapped[float | None] = mapped_column(Float, nullable=True)
    soil_moisture_pct: Mapped[float | None] = mapped_column(Float, nullable=True)
    soil_measured_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Relationships ────────────────────────────────────────────────────
    crops: Mapped[list[Crop]] = relationship(
        back_populates="farm",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Farm id={self.id} name={self.name!r}>"


# ═══════════════════════════════════════════════════════════════════════════
# Crop
# ═══════════════════════════════════════════════════════════════════════════


class Crop(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A planted crop.

    ``crop_type`` is the growth-profile name (looked up case-insensitively).
    ``expected_harvest_days`` is only consulted when no profile matches.
    The engine is the sole writer of ``status``, ``harvest_date``,
    ``harvest_reminder_sent`` and ``status_alert_sent``.
    """

    __tablename__ = "crops"
    __table_args__ = (Index("ix_crops_status", "status"),)

    farm_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("farms.id", ondelete="CASCADE"),
        nullable=True,
    )
    crop_type: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    variety: Mapped[str | None] = mapped_column(String(255), nullable=True)
    planting_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[CropStatusEnum] = mapped_column(
        Enum(
            CropStatusEnum,
            name="crop_status",
            create_constraint=False,
            native_enum=True,
        ),
        nullable=False,
        default=CropStatusEnum.planted,
        server_default=CropStatusEnum.planted.value,
    )
    harvest_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expected_harvest_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    harvest_reminder_sent: Mapped[bool] = mapped_column(
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    status_alert_sent: Mapped[bool] = mapped_column(
        default=True,
        server_default=text("true"),
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────────
    farm: Mapped[Farm | None] = relationship(back_populates="crops")

    def __repr__(self) -> str:
        return (
            f"<Crop id={self.id} type={self.crop_type!r} "
            f"status={self.status}>"
        )
