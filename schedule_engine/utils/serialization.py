from datetime import date, datetime
from typing import Any, Dict, List

from schedule_engine.errors import ParseError, ValidationError
from schedule_engine.models.attendance import AttendanceRecord, AttendanceStatus
from schedule_engine.models.course import Course
from schedule_engine.models.group import Group
from schedule_engine.models.layout import PrintableSession, SessionLayout
from schedule_engine.models.roster import Roster
from schedule_engine.models.session import CourseRef, EntityRef, ScheduledSession, SubjectRef
from schedule_engine.models.student import Student
from schedule_engine.models.subject import Subject
from schedule_engine.models.teacher import Teacher

# Wire keys of an editable session field -> repository field name
SESSION_FIELD_KEYS = {
    "groupId": "group_id",
    "day": "day",
    "timeSlot": "time_slot",
    "classroom": "classroom",
    "duration": "duration",
}


def parse_date(value: Any) -> date:
    """Accepts a date or a YYYY-MM-DD string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), "%Y-%m-%d").date()
    except ValueError:
        raise ParseError(f"Invalid date '{value}', expected YYYY-MM-DD")


def parse_status(value: Any) -> AttendanceStatus:
    try:
        return AttendanceStatus(value)
    except ValueError:
        allowed = ', '.join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid attendance status '{value}', expected one of: {allowed}")


def parse_duration(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(f"Invalid duration '{value}'")


def entity_from_dict(data: Dict[str, Any]) -> EntityRef:
    """
    Resolves the subject/course reference of a payload.

    Accepts either the stored form ({"subjectId": ...} or {"courseId": ...})
    or the form used by edit dialogs ({"entityType": "subject", "entityId": ...}).
    Exactly one reference must be present.
    """
    if "entityType" in data:
        entity_type, entity_id = data["entityType"], data.get("entityId")
        if not entity_id:
            raise ValidationError("Missing required fields: entity")
        if entity_type == "subject":
            return SubjectRef(entity_id)
        if entity_type == "course":
            return CourseRef(entity_id)
        raise ValidationError(f"Unknown entity type '{entity_type}'")

    subject_id, course_id = data.get("subjectId"), data.get("courseId")
    if subject_id and course_id:
        raise ValidationError("A session references either a subject or a course, not both")
    if subject_id:
        return SubjectRef(subject_id)
    if course_id:
        return CourseRef(course_id)
    raise ValidationError("A session must reference a subject or a course")


def has_entity(data: Dict[str, Any]) -> bool:
    return any(key in data for key in ("entityType", "subjectId", "courseId"))


def session_from_dict(data: Dict[str, Any]) -> ScheduledSession:
    try:
        return ScheduledSession(
            id=data["id"],
            group_id=data["groupId"],
            entity=entity_from_dict(data),
            day=data["day"],
            time_slot=data["timeSlot"],
            classroom=data.get("classroom") or "",
            duration=parse_duration(data["duration"]),
        )
    except KeyError as e:
        raise ParseError(f"Session is missing field {e}")


def session_to_dict(session: ScheduledSession) -> Dict[str, Any]:
    data = {
        "id": session.id,
        "groupId": session.group_id,
        "day": session.day,
        "timeSlot": session.time_slot,
        "classroom": session.classroom,
        "duration": session.duration,
    }
    if isinstance(session.entity, SubjectRef):
        data["subjectId"] = session.entity.id
    else:
        data["courseId"] = session.entity.id
    return data


def session_fields_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Editable fields present in a payload, keyed by repository field name"""
    fields = {
        field_name: data[key] for key, field_name in SESSION_FIELD_KEYS.items() if key in data
    }
    if "duration" in fields:
        fields["duration"] = parse_duration(fields["duration"])
    if has_entity(data):
        fields["entity"] = entity_from_dict(data)
    return fields


def attendance_from_dict(data: Dict[str, Any]) -> AttendanceRecord:
    try:
        return AttendanceRecord(
            id=data["id"],
            student_id=data["studentId"],
            session_id=data["sessionId"],
            date=parse_date(data["date"]),
            status=parse_status(data["status"]),
        )
    except KeyError as e:
        raise ParseError(f"Attendance record is missing field {e}")


def attendance_to_dict(record: AttendanceRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "studentId": record.student_id,
        "sessionId": record.session_id,
        "date": record.date.isoformat(),
        "status": record.status.value,
    }


def attendance_entry_from_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """Incoming attendance entry (no id) in the form AttendanceBook.record expects"""
    try:
        return {
            "student_id": data["studentId"],
            "session_id": data["sessionId"],
            "date": parse_date(data["date"]),
            "status": parse_status(data["status"]),
        }
    except KeyError as e:
        raise ParseError(f"Attendance entry is missing field {e}")


def parse_roster(data: Dict[str, Any]) -> Roster:
    """
    Builds the Roster from a tenant snapshot.

    Expected format (only the keys used by scheduling are read):
    {
        "students": [{"id": "s1", "name": "...", "levelId": "l1", "groupIds": ["g1"]}, ...],
        "groups": [{"id": "g1", "name": "1A", "levelId": "l1"}, ...],
        "subjects": [{"id": "sub1", "name": "Math", "classroom": "101",
                      "levelId": "l1", "color": "#bfdbfe"}, ...],
        "courses": [{"id": "c1", "name": "Chess", "teacherIds": ["t1"]}, ...],
        "teachers": [{"id": "t1", "name": "...", "subjects": ["sub1"],
                      "courseIds": ["c1"]}, ...]
    }
    """
    students = {}
    for student in data.get("students", []):
        students[student["id"]] = Student(
            id=student["id"],
            name=student["name"],
            level_id=student.get("levelId", ""),
            group_ids=list(student.get("groupIds") or []),
        )

    groups = {}
    for group in data.get("groups", []):
        groups[group["id"]] = Group(id=group["id"], name=group["name"],
                                    level_id=group.get("levelId", ""))

    subjects = {}
    for subject in data.get("subjects", []):
        subjects[subject["id"]] = Subject(
            id=subject["id"],
            name=subject["name"],
            classroom=subject.get("classroom") or "",
            level_id=subject.get("levelId", ""),
            color=subject.get("color"),
        )

    courses = {}
    for course in data.get("courses", []):
        courses[course["id"]] = Course(
            id=course["id"],
            name=course["name"],
            teacher_ids=list(course.get("teacherIds") or []),
            color=course.get("color"),
        )

    teachers = {}
    for teacher in data.get("teachers", []):
        teachers[teacher["id"]] = Teacher(
            id=teacher["id"],
            name=teacher["name"],
            subject_ids=list(teacher.get("subjects") or []),
            course_ids=list(teacher.get("courseIds") or []),
        )

    return Roster(students=students, groups=groups, subjects=subjects,
                  courses=courses, teachers=teachers)


def layout_to_dict(layout: SessionLayout) -> Dict[str, Any]:
    return {
        "sessionId": layout.session_id,
        "day": layout.day,
        "column": layout.column,
        "maxColumns": layout.max_columns,
        "top": layout.top,
        "height": layout.height,
        "left": layout.left,
        "width": layout.width,
    }


def printable_to_dict(row: PrintableSession) -> Dict[str, Any]:
    return {
        "sessionId": row.session_id,
        "day": row.day,
        "entityName": row.entity_name,
        "teacherName": row.teacher_name,
        "classroom": row.classroom,
        "start": row.start,
        "end": row.end,
    }


def sessions_to_list(sessions) -> List[Dict[str, Any]]:
    return [session_to_dict(s) for s in sessions]
