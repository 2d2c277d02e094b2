"""Attendance store interface."""
from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional, Sequence

from ...entities.attendance import AttendanceRecord


class AttendanceStore(ABC):
    """Interface for persisting confirmed attendance records."""

    @abstractmethod
    async def add_records(self, records: Sequence[AttendanceRecord]) -> None:
        """
        Store records atomically.

        Raises:
            AttendanceStorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_records(
        self,
        session_date: Optional[date] = None,
        group_key: Optional[str] = None,
    ) -> List[AttendanceRecord]:
        """
        Query records, newest first, optionally filtered by date and/or group.

        Raises:
            AttendanceStorageError: If the store cannot be read
        """
        pass
