# companion/db/models/profile.py

import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from companion.db.session import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """A clinician (or admin) account. Credentials live on the same row."""
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False, unique=True)
    full_name: Mapped[str] = mapped_column(sa.String(120), nullable=False, server_default="")
    role: Mapped[str] = mapped_column(sa.String(16), nullable=False, server_default="PSYCHOLOGIST")
    password_hash: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )

    patients: Mapped[list["Patient"]] = relationship(back_populates="owner")
    appointments: Mapped[list["Appointment"]] = relationship(back_populates="owner", overlaps="patient,appointments")
