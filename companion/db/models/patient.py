# companion/db/models/patient.py

from __future__ import annotations
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companion.db.models.profile import new_uuid
from companion.db.session import Base

class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = (
        sa.Index("ix_patients_user_id", "user_id"),
        sa.UniqueConstraint("id", "user_id", name="uq_patients_id_user_id"),
    )

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(sa.String(36), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, server_default="")
    phone: Mapped[str] = mapped_column(sa.String(30), nullable=False, server_default="")
    notes: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    owner: Mapped["Profile"] = relationship(back_populates="patients")
    appointments: Mapped[list["Appointment"]] = relationship(back_populates="patient", overlaps="owner,appointments")
