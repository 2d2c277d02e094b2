"""SQLAlchemy models for the attendance service."""
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Index, Integer, LargeBinary, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from classroll.domain.entities.identity import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class IdentityRow(Base):
    """Enrolled identity with its embedding stored as raw float32 bytes."""

    __tablename__ = "identities"
    __table_args__ = (
        Index("idx_identities_group_key", "group_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Registry insertion order, preserved across restarts
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    group_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    roll_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    embedding: Mapped[Optional[bytes]] = mapped_column(
        LargeBinary,
        nullable=True,
        comment="float32 little-endian embedding vector",
    )
    embedding_dim: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set when the identity is removed; its id is never reused",
    )


class AttendanceRecordRow(Base):
    """One identity's presence in one confirmed session."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        Index("idx_attendance_date_group", "session_date", "group_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    identity_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    group_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    is_present: Mapped[bool] = mapped_column(Boolean, nullable=False)
    manually_marked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    similarity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
