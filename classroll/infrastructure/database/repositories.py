"""Database-backed identity and attendance stores."""
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence, Set

import numpy as np
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from classroll.core.exceptions import AttendanceStorageError, RegistryStorageError
from classroll.core.logging import get_logger
from classroll.domain.entities.attendance import AttendanceRecord
from classroll.domain.entities.identity import Identity, utcnow
from classroll.domain.interfaces.storage.attendance_store import AttendanceStore
from classroll.domain.interfaces.storage.identity_store import IdentityStore
from classroll.infrastructure.database.models import AttendanceRecordRow, IdentityRow
from classroll.infrastructure.database.session import get_db_session

logger = get_logger(__name__)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _identity_from_row(row: IdentityRow) -> Identity:
    embedding = None
    if row.embedding is not None:
        embedding = np.frombuffer(row.embedding, dtype="<f4")
    return Identity(
        id=row.id,
        embedding=embedding,
        group_key=row.group_key,
        name=row.name,
        roll_number=row.roll_number,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _record_from_row(row: AttendanceRecordRow) -> AttendanceRecord:
    return AttendanceRecord(
        id=row.id,
        identity_id=row.identity_id,
        group_key=row.group_key,
        session_date=row.session_date,
        recorded_at=_aware(row.recorded_at),
        is_present=row.is_present,
        manually_marked=row.manually_marked,
        similarity=row.similarity,
    )


class SqlIdentityStore(IdentityStore):
    """Identity store on a SQLAlchemy async database.

    Removed identities keep their row with ``deleted_at`` set, which is how
    retired ids survive restarts.
    """

    def __init__(self, session_factory: async_sessionmaker) -> None:
        """Initialize store.

        Args:
            session_factory: Factory for database sessions
        """
        self._session_factory = session_factory

    async def list_identities(self) -> List[Identity]:
        try:
            async with get_db_session(self._session_factory) as session:
                stmt = (
                    select(IdentityRow)
                    .where(IdentityRow.deleted_at.is_(None))
                    .order_by(IdentityRow.position)
                )
                result = await session.execute(stmt)
                return [_identity_from_row(row) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise RegistryStorageError(f"Failed to load identities: {e}") from e

    async def list_retired_ids(self) -> Set[str]:
        try:
            async with get_db_session(self._session_factory) as session:
                stmt = select(IdentityRow.id).where(IdentityRow.deleted_at.is_not(None))
                result = await session.execute(stmt)
                return set(result.scalars())
        except SQLAlchemyError as e:
            raise RegistryStorageError(f"Failed to load retired identity ids: {e}") from e

    async def save_identity(self, identity: Identity) -> None:
        embedding = None
        if identity.embedding is not None:
            embedding = np.asarray(identity.embedding, dtype="<f4").tobytes()

        try:
            async with get_db_session(self._session_factory) as session:
                row = await session.get(IdentityRow, identity.id)
                if row is None:
                    next_position = await session.scalar(
                        select(func.coalesce(func.max(IdentityRow.position), -1) + 1)
                    )
                    row = IdentityRow(id=identity.id, position=next_position, created_at=identity.created_at)
                    session.add(row)
                elif row.deleted_at is not None:
                    raise RegistryStorageError(
                        f"Identity {identity.id} is retired",
                        details={"identity_id": identity.id},
                    )

                row.group_key = identity.group_key
                row.name = identity.name
                row.roll_number = identity.roll_number
                row.embedding = embedding
                row.embedding_dim = None if identity.embedding is None else int(identity.embedding.size)
                row.updated_at = identity.updated_at
                await session.commit()
        except SQLAlchemyError as e:
            raise RegistryStorageError(
                f"Failed to save identity {identity.id}: {e}",
                details={"identity_id": identity.id},
            ) from e

    async def retire_identity(self, identity_id: str) -> None:
        try:
            async with get_db_session(self._session_factory) as session:
                row = await session.get(IdentityRow, identity_id)
                if row is None:
                    logger.warning("Retiring identity that was never stored", identity_id=identity_id)
                    return
                row.deleted_at = utcnow()
                row.embedding = None
                row.embedding_dim = None
                await session.commit()
        except SQLAlchemyError as e:
            raise RegistryStorageError(
                f"Failed to retire identity {identity_id}: {e}",
                details={"identity_id": identity_id},
            ) from e


class SqlAttendanceStore(AttendanceStore):
    """Attendance store on a SQLAlchemy async database."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def add_records(self, records: Sequence[AttendanceRecord]) -> None:
        if not records:
            return
        try:
            async with get_db_session(self._session_factory) as session:
                session.add_all(
                    [
                        AttendanceRecordRow(
                            id=record.id,
                            identity_id=record.identity_id,
                            group_key=record.group_key,
                            session_date=record.session_date,
                            recorded_at=record.recorded_at,
                            is_present=record.is_present,
                            manually_marked=record.manually_marked,
                            similarity=record.similarity,
                        )
                        for record in records
                    ]
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise AttendanceStorageError(f"Failed to store attendance records: {e}") from e

    async def list_records(
        self,
        session_date: Optional[date] = None,
        group_key: Optional[str] = None,
    ) -> List[AttendanceRecord]:
        stmt = select(AttendanceRecordRow)
        if session_date is not None:
            stmt = stmt.where(AttendanceRecordRow.session_date == session_date)
        if group_key is not None:
            stmt = stmt.where(AttendanceRecordRow.group_key == group_key)
        stmt = stmt.order_by(AttendanceRecordRow.recorded_at.desc(), AttendanceRecordRow.identity_id)

        try:
            async with get_db_session(self._session_factory) as session:
                result = await session.execute(stmt)
                return [_record_from_row(row) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise AttendanceStorageError(f"Failed to read attendance records: {e}") from e
