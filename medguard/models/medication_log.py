"""Medication log model.

One row per recorded intake or skip. Rows are never updated; undo
deletes the row. Deleting a medication cascades to its logs.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medguard.models.base import Base, TimestampMixin


class MedicationLogRecord(Base, TimestampMixin):
    """Stored medication intake (taken) or skip event."""

    __tablename__ = "medication_logs"

    __table_args__ = (
        # Rolling-window queries: one medication, a timestamp range
        Index("ix_medication_logs_medication_timestamp", "medication_id", "timestamp"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    medication_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("medications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Snapshot of the medication's display name when logged
    medication_name: Mapped[str] = mapped_column(
        String(300),
        nullable=False,
    )

    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )

    skip_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 3),
        nullable=True,
    )

    # Committed through the override path while violations existed
    overridden: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    medication = relationship("MedicationRecord", back_populates="logs")
