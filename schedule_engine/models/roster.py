from dataclasses import dataclass, field
from typing import Dict, List, Optional

from schedule_engine.models.course import Course
from schedule_engine.models.group import Group
from schedule_engine.models.session import ScheduledSession
from schedule_engine.models.student import Student
from schedule_engine.models.subject import Subject
from schedule_engine.models.teacher import Teacher


@dataclass()
class Roster:
    """
    Read-only school data the scheduling engine resolves display
    metadata and attendance eligibility from.

    The engine never owns or mutates these entities; they are loaded from
    the tenant snapshot together with the sessions.

    Attributes:
        students: Map of student ID to Student
        groups: Map of group ID to Group
        subjects: Map of subject ID to Subject
        courses: Map of course ID to Course
        teachers: Map of teacher ID to Teacher
    """

    students: Dict[str, Student] = field(default_factory=dict)
    groups: Dict[str, Group] = field(default_factory=dict)
    subjects: Dict[str, Subject] = field(default_factory=dict)
    courses: Dict[str, Course] = field(default_factory=dict)
    teachers: Dict[str, Teacher] = field(default_factory=dict)

    def entity_name(self, session: ScheduledSession) -> Optional[str]:
        if session.subject_id is not None:
            subject = self.subjects.get(session.subject_id)
            return subject.name if subject else None
        course = self.courses.get(session.course_id)
        return course.name if course else None

    def teacher_for(self, session: ScheduledSession) -> Optional[Teacher]:
        """
        First teacher assigned to the session's subject or course.

        Teachers list what they teach; a course may also name its teachers
        itself, which is used when no teacher lists the course.
        """
        for teacher in self.teachers.values():
            if session.course_id is not None and session.course_id in teacher.course_ids:
                return teacher
            if session.subject_id is not None and session.subject_id in teacher.subject_ids:
                return teacher
        course = self.courses.get(session.course_id) if session.course_id is not None else None
        if course is not None:
            return next((self.teachers[t] for t in course.teacher_ids if t in self.teachers), None)
        return None

    def students_in_group(self, group_id: str) -> List[Student]:
        return [s for s in self.students.values() if group_id in s.group_ids]
