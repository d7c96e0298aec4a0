import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from schedule_engine.models.attendance import AttendanceRecord, AttendanceStatus
from schedule_engine.models.roster import Roster
from schedule_engine.models.session import ScheduledSession
from schedule_engine.models.student import Student
from schedule_engine.utils.serialization import parse_date, parse_status
from schedule_engine.utils.time_grid import parse_clock
from schedule_engine.utils.utils import generate_id

logger = logging.getLogger(__name__)


class AttendanceBook:
    """
    Attendance records of one tenant, keyed by (student, session, date).

    Records reference sessions weakly: removing a session from the schedule
    leaves its records here as history.
    """

    def __init__(self, records: Iterable[AttendanceRecord] = ()):
        self._records: List[AttendanceRecord] = list(records)
        self._index: Dict[Tuple[str, str, date], int] = {
            record.key: position for position, record in enumerate(self._records)
        }

    @property
    def records(self) -> Tuple[AttendanceRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def get(self, student_id: str, session_id: str, on: date) -> Optional[AttendanceRecord]:
        position = self._index.get((student_id, session_id, on))
        return self._records[position] if position is not None else None

    def record(self, entries: Iterable[Dict[str, Any]]) -> List[AttendanceRecord]:
        """
        Upserts attendance by (student_id, session_id, date).

        An existing record only gets its status replaced, keeping its id;
        otherwise a new record with a fresh id is appended. Submitting the
        same entry twice leaves the book unchanged.

        Args:
            entries: dicts with student_id, session_id, date (date or
                     YYYY-MM-DD) and status (AttendanceStatus or its value)

        Returns:
            The stored records, in the order of the entries
        """
        stored = []
        for entry in entries:
            on = parse_date(entry["date"])
            status = parse_status(entry["status"])
            key = (entry["student_id"], entry["session_id"], on)

            position = self._index.get(key)
            if position is not None:
                existing = self._records[position]
                if existing.status != status:
                    existing = AttendanceRecord(existing.id, *key, status=status)
                    self._records[position] = existing
                stored.append(existing)
            else:
                record = AttendanceRecord(generate_id("att"), *key, status=status)
                self._index[key] = len(self._records)
                self._records.append(record)
                stored.append(record)

        logger.info(f"Recorded {len(stored)} attendance entries")
        return stored

    def for_session(self, session_id: str, on: date) -> List[AttendanceRecord]:
        return [r for r in self._records if r.session_id == session_id and r.date == on]

    def has_attendance(self, session_id: str, on: Optional[date] = None) -> bool:
        """Whether anything was recorded for the session on a date (default today)"""
        return bool(self.for_session(session_id, on or date.today()))

    def sessions_with_attendance(self, on: Optional[date] = None) -> set:
        on = on or date.today()
        return {r.session_id for r in self._records if r.date == on}


def eligible_students(session: ScheduledSession, roster: Roster) -> List[Student]:
    """Students currently in the session's group, resolved at call time"""
    return roster.students_in_group(session.group_id)


def statuses_for(book: AttendanceBook, session: ScheduledSession, on: date,
                 roster: Roster) -> Dict[str, Optional[AttendanceStatus]]:
    """Pre-fills an attendance sheet: status per eligible student, None when unmarked"""
    sheet = {}
    for student in eligible_students(session, roster):
        record = book.get(student.id, session.id, on)
        sheet[student.id] = record.status if record else None
    return sheet


def mark_all_present(session: ScheduledSession, on: date, roster: Roster) -> List[Dict[str, Any]]:
    """Entries marking every eligible student present, ready for AttendanceBook.record"""
    return [
        {
            "student_id": student.id,
            "session_id": session.id,
            "date": on,
            "status": AttendanceStatus.PRESENT,
        }
        for student in eligible_students(session, roster)
    ]


def daily_report(book: AttendanceBook, on: date, sessions: Iterable[ScheduledSession],
                 roster: Roster, group_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Attendance of one day joined with the schedule and the roster.

    Records whose student or session no longer exists are kept in the book
    but left out of the report.

    Returns:
        Rows sorted by session start time, then student name
    """
    sessions_by_id = {s.id: s for s in sessions}
    rows = []
    for record in book.records:
        if record.date != on:
            continue
        student = roster.students.get(record.student_id)
        session = sessions_by_id.get(record.session_id)
        if student is None or session is None:
            continue
        if group_id is not None and session.group_id != group_id:
            continue

        group = roster.groups.get(session.group_id)
        rows.append({
            "id": record.id,
            "student_id": student.id,
            "student_name": student.name,
            "session_id": session.id,
            "group_name": group.name if group else "N/A",
            "session_name": roster.entity_name(session) or "N/A",
            "session_time": session.time_slot,
            "status": record.status.value,
        })

    rows.sort(key=lambda row: (parse_clock(row["session_time"]), row["student_name"]))
    return rows
