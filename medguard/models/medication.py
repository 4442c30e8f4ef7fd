"""Medication model.

Stores a tracked medication and its dosage constraints. Constraints
live in a JSON column as a list of tagged objects (``kind`` plus the
variant's fields) and are replaced wholesale on edit.
"""

import uuid
from decimal import Decimal

from sqlalchemy import JSON, Boolean, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medguard.models.base import Base, TimestampMixin


class MedicationRecord(Base, TimestampMixin):
    """A medication the user tracks."""

    __tablename__ = "medications"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )

    # Display text only, e.g. "500mg"
    dosage: Mapped[str | None] = mapped_column(String(100), nullable=True)

    frequency: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    custom_daily_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    category: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)
    prescribed_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Structured per-dose amount used by amount-based constraints
    dose_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 3),
        nullable=True,
    )
    dose_unit: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # ["08:00:00", "20:00:00"]
    reminder_times: Mapped[list | None] = mapped_column(JSON, nullable=True)

    constraints: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    logs = relationship(
        "MedicationLogRecord",
        back_populates="medication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
