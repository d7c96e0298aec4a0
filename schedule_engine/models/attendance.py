from dataclasses import dataclass
from datetime import date
from enum import Enum


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


@dataclass(frozen=True)
class AttendanceRecord:
    """
    Presence of one student at one occurrence of a session.

    session_id is a weak reference: the session may be deleted later while
    the record stays as history.

    Attributes:
        id: Unique identifier for the record
        student_id: Student the record is about
        session_id: Scheduled session the occurrence belongs to
        date: Calendar date of the occurrence
        status: present, absent, late or excused
    """
    id: str
    student_id: str
    session_id: str
    date: date
    status: AttendanceStatus

    @property
    def key(self):
        return self.student_id, self.session_id, self.date
