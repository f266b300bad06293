"""Blocked time ranges: admin-defined dates on which no slot is bookable."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    String,
    Table,
    Uuid,
    func,
    true,
)

from clinic_scheduler.models.base import metadata

blocked_time_ranges = Table(
    "blocked_time_ranges",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("start_date", Date, nullable=False),
    Column("end_date", Date, nullable=False),
    Column("reason", String(50), nullable=True),
    Column("custom_reason", String(100), nullable=True),
    Column("created_by", Uuid, nullable=True),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("end_date >= start_date", name="blocked_time_ranges_dates_check"),
    Index("idx_blocked_time_ranges_dates", "start_date", "end_date"),
    Index("idx_blocked_time_ranges_active_start", "is_active", "start_date"),
)
