from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class SubjectRef:
    """Session taught as part of a regular subject"""
    id: str


@dataclass(frozen=True)
class CourseRef:
    """Session of an extracurricular course"""
    id: str


EntityRef = Union[SubjectRef, CourseRef]


@dataclass(frozen=True)
class ScheduledSession:
    """
    Represents one recurring weekly session on the schedule grid.

    A session is taught to exactly one group, in one classroom, and belongs
    to exactly one subject or course. It recurs every week on the same day
    at the same time.

    Attributes:
        id: Unique identifier for the session
        group_id: Class section attending the session
        entity: The subject or course taught (SubjectRef or CourseRef)
        day: Weekday tag (saturday, sunday, monday, ...)
        time_slot: Start time in HH:MM format (e.g., "08:00", "14:30")
        classroom: Free-text room label (e.g., "101", "Lab A"), may be empty
        duration: Length in minutes, one of the allowed grid durations
    """
    id: str
    group_id: str
    entity: EntityRef
    day: str
    time_slot: str
    classroom: str
    duration: int

    @property
    def subject_id(self) -> Optional[str]:
        return self.entity.id if isinstance(self.entity, SubjectRef) else None

    @property
    def course_id(self) -> Optional[str]:
        return self.entity.id if isinstance(self.entity, CourseRef) else None

    @property
    def room_key(self) -> str:
        """Normalized classroom label used for double-booking checks"""
        return self.classroom.strip().lower()
