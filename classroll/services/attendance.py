"""Attendance aggregation, reviewer corrections and confirmed sessions."""
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from classroll.core.logging import get_logger
from classroll.domain.entities.attendance import AttendanceRecord
from classroll.domain.entities.identity import Identity, utcnow
from classroll.domain.interfaces.storage.attendance_store import AttendanceStore
from classroll.domain.value_objects.attendance import (
    AttendanceSession,
    AttendanceSummary,
    GroupAttendanceSummary,
    ManualCorrections,
)
from classroll.domain.value_objects.recognition import Match
from classroll.services.identity_registry import IdentityRegistry

logger = get_logger(__name__)

RosterEntry = Union[str, Identity]


def _roster_ids(roster: Iterable[RosterEntry]) -> List[str]:
    ids = []
    seen = set()
    for entry in roster:
        identity_id = entry.id if isinstance(entry, Identity) else entry
        if identity_id not in seen:
            seen.add(identity_id)
            ids.append(identity_id)
    return ids


class AttendanceAggregator:
    """Reduces matches to presence flags for the expected roster.

    Only roster identities appear in the output: a face that resembles a
    student of another class never marks that student present here.
    """

    def aggregate(self, matches: Sequence[Match], expected_roster: Iterable[RosterEntry]) -> Dict[str, bool]:
        """
        Args:
            matches: Matcher output (possibly corrected by a reviewer)
            expected_roster: Identities or identity ids expected in the session

        Returns:
            Identity id -> present, in roster order
        """
        claimed = {match.identity_id for match in matches if match.identity_id is not None}
        return {identity_id: identity_id in claimed for identity_id in _roster_ids(expected_roster)}


def apply_face_assignments(
    matches: Sequence[Match],
    face_assignments: Mapping[int, Optional[str]],
) -> List[Match]:
    """Apply reviewer face assignments on top of the matcher output.

    A face assigned to an identity takes it away from whichever face the
    matcher had given it to, so each identity is still claimed at most once.
    Assigning None clears the face's suggestion.

    Raises:
        ValueError: If a face index is unknown or one identity is assigned to two faces
    """
    corrected = list(matches)
    positions = {match.face_index: i for i, match in enumerate(corrected)}

    assigned = [identity_id for identity_id in face_assignments.values() if identity_id is not None]
    if len(assigned) != len(set(assigned)):
        raise ValueError("An identity can be assigned to at most one face")

    for face_index, identity_id in sorted(face_assignments.items()):
        if face_index not in positions:
            raise ValueError(f"Unknown face index: {face_index}")

        if identity_id is not None:
            for i, match in enumerate(corrected):
                if match.identity_id == identity_id and match.face_index != face_index:
                    corrected[i] = Match(face_index=match.face_index, manual=True)

        corrected[positions[face_index]] = Match(
            face_index=face_index,
            identity_id=identity_id,
            manual=True,
        )
    return corrected


def apply_presence_overrides(presence: Mapping[str, bool], overrides: Mapping[str, bool]) -> Dict[str, bool]:
    """Apply reviewer presence toggles; ids outside the roster are ignored."""
    result = dict(presence)
    for identity_id, is_present in overrides.items():
        if identity_id in result:
            result[identity_id] = bool(is_present)
    return result


class AttendanceService:
    """Confirms reviewed recognition results into attendance records.

    Example:
        ```python
        result = await recognition.recognize(photo, group_key="5A")
        session = await attendance.confirm(
            result.matches,
            group_key="5A",
            corrections=ManualCorrections(face_assignments={2: "student-17"}),
        )
        ```
    """

    def __init__(
        self,
        registry: IdentityRegistry,
        store: AttendanceStore,
        aggregator: Optional[AttendanceAggregator] = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.aggregator = aggregator or AttendanceAggregator()

    async def confirm(
        self,
        matches: Sequence[Match],
        group_key: Optional[str] = None,
        corrections: Optional[ManualCorrections] = None,
        session_date: Optional[date] = None,
    ) -> AttendanceSession:
        """Record one attendance record per roster identity.

        Args:
            matches: Matcher output for the session photo
            group_key: Group whose identities form the roster; every identity when None
            corrections: Reviewer corrections, applied after matching
            session_date: Session date; today (UTC) when None

        Raises:
            ValueError: If the corrections are inconsistent
            AttendanceStorageError: If the records cannot be stored
        """
        corrections = corrections or ManualCorrections()
        session_date = session_date or utcnow().date()
        roster = self.registry.get_all(group_key)

        corrected = apply_face_assignments(matches, corrections.face_assignments)
        presence = self.aggregator.aggregate(corrected, roster)
        final = apply_presence_overrides(presence, corrections.presence)

        by_identity = {match.identity_id: match for match in corrected if match.identity_id is not None}
        records = []
        for identity_id, is_present in final.items():
            match = by_identity.get(identity_id)
            manually_marked = (match is not None and match.manual) or (
                identity_id in corrections.presence and final[identity_id] != presence[identity_id]
            )
            records.append(
                AttendanceRecord(
                    identity_id=identity_id,
                    group_key=group_key,
                    session_date=session_date,
                    is_present=is_present,
                    manually_marked=manually_marked,
                    similarity=match.similarity if match is not None and is_present else None,
                )
            )

        await self.store.add_records(records)
        session = AttendanceSession(group_key=group_key, session_date=session_date, records=records)
        logger.info(
            "Attendance confirmed",
            group_key=group_key,
            session_date=session_date.isoformat(),
            present=session.present_count,
            total=session.total,
        )
        return session

    async def list_records(
        self,
        session_date: Optional[date] = None,
        group_key: Optional[str] = None,
    ) -> List[AttendanceRecord]:
        return await self.store.list_records(session_date=session_date, group_key=group_key)

    async def summary(self, session_date: date, group_key: Optional[str] = None) -> AttendanceSummary:
        """Enrolled and present counts per group for one date.

        An identity counts as present if any confirmation of that date marked
        it present, however many sessions were confirmed. Identities are
        counted in their current group; removed identities are not counted.

        Args:
            session_date: Date to summarize
            group_key: Restrict the summary to one group; every group when None

        Raises:
            AttendanceStorageError: If the records cannot be read
        """
        enrolled: Dict[Optional[str], Set[str]] = {}
        for identity in self.registry.get_all(group_key):
            enrolled.setdefault(identity.group_key, set()).add(identity.id)

        records = await self.store.list_records(session_date=session_date)
        present_ids = {record.identity_id for record in records if record.is_present}

        groups = [
            GroupAttendanceSummary(
                group_key=key,
                enrolled=len(members),
                present=len(members & present_ids),
            )
            for key, members in sorted(enrolled.items(), key=lambda item: (item[0] is None, item[0] or ""))
        ]
        return AttendanceSummary(session_date=session_date, groups=groups)
