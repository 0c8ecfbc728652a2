# companion/db/models/appointment.py

from __future__ import annotations
import datetime as dt
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companion.db.models.profile import new_uuid
from companion.db.session import Base

class Appointment(Base):
    __tablename__ = "appointments"
    # No unique (user_id, date, time): double booking is allowed
    __table_args__ = (
        sa.Index("ix_appointments_user_id", "user_id"),
        sa.Index("ix_appointments_date_time", "date", "time"),
        sa.CheckConstraint("duration > 0", name="ck_appointments_duration_positive"),
        # A session can only reference a patient of the same owner
        sa.ForeignKeyConstraint(
            ["patient_id", "user_id"],
            ["patients.id", "patients.user_id"],
            name="fk_appointments_patient_owner",
            ondelete="CASCADE",
        ),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    patient_id: Mapped[str] = mapped_column(sa.String(36), nullable=False)

    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    time: Mapped[dt.time] = mapped_column(sa.Time, nullable=False)
    duration: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="50")
    type: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="ONLINE")
    status: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="SCHEDULED")
    notes: Mapped[str | None] = mapped_column(sa.Text)
    summary: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    # Relations
    owner: Mapped["Profile"] = relationship(back_populates="appointments", overlaps="patient")
    patient: Mapped["Patient"] = relationship(back_populates="appointments", overlaps="owner,appointments")
