import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class BlockedSlot(Base):
    """Manually blocked time range created by a user."""

    __tablename__ = "blocked_slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    start: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    practitioner_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    location_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    practice_id: Mapped[str] = mapped_column(String(36), nullable=False)
    is_simulation: Mapped[bool] = mapped_column(Boolean, index=True, nullable=False, default=False)
    replaces_blocked_slot_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_modified: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
