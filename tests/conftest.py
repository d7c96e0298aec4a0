import pytest

from schedule_engine.models.session import CourseRef, ScheduledSession, SubjectRef
from schedule_engine.services.storage import MemoryTenantStore
from schedule_engine.services.workspace import WorkspaceRegistry
from schedule_engine.utils.time_grid import TimeGrid


@pytest.fixture
def grid():
    return TimeGrid()


@pytest.fixture
def make_session():
    counter = {"n": 0}

    def _make(time_slot="09:00", duration=60, group_id="g1", day="monday",
              classroom="101", subject_id="sub1", course_id=None, id=None):
        counter["n"] += 1
        entity = CourseRef(course_id) if course_id else SubjectRef(subject_id)
        return ScheduledSession(
            id=id or f"s{counter['n']}",
            group_id=group_id,
            entity=entity,
            day=day,
            time_slot=time_slot,
            classroom=classroom,
            duration=duration,
        )

    return _make


@pytest.fixture
def school_snapshot():
    return {
        "id": "school_1",
        "name": "Test School",
        "levels": [{"id": "l1", "name": "Level 1"}],
        "groups": [
            {"id": "g1", "name": "1A", "levelId": "l1"},
            {"id": "g2", "name": "1B", "levelId": "l1"},
        ],
        "subjects": [
            {"id": "sub1", "name": "Mathematics", "classroom": "101", "levelId": "l1", "color": "#bfdbfe"},
            {"id": "sub2", "name": "Arabic", "classroom": "102", "levelId": "l1"},
        ],
        "courses": [{"id": "c1", "name": "Chess", "teacherIds": ["t1"]}],
        "teachers": [
            {"id": "t1", "name": "Khaled", "subjects": ["sub1"], "courseIds": ["c1"]},
            {"id": "t2", "name": "Fatima", "subjects": ["sub2"]},
        ],
        "students": [
            {"id": "st1", "name": "Ahmed", "levelId": "l1", "groupIds": ["g1"]},
            {"id": "st2", "name": "Amina", "levelId": "l1", "groupIds": ["g1", "g2"]},
            {"id": "st3", "name": "Yacine", "levelId": "l1", "groupIds": ["g2"]},
        ],
        "scheduledSessions": [
            {"id": "ss1", "groupId": "g1", "subjectId": "sub1", "day": "monday",
             "timeSlot": "09:00", "classroom": "101", "duration": 60},
            {"id": "ss2", "groupId": "g2", "subjectId": "sub2", "day": "monday",
             "timeSlot": "09:00", "classroom": "102", "duration": 60},
            {"id": "ss3", "groupId": "g1", "courseId": "c1", "day": "tuesday",
             "timeSlot": "14:00", "classroom": "Hall", "duration": 90},
        ],
        "attendance": [],
    }


@pytest.fixture
def store(school_snapshot):
    return MemoryTenantStore([school_snapshot])


@pytest.fixture
def registry(store):
    return WorkspaceRegistry(store)


@pytest.fixture
def workspace(registry):
    return registry.get("school_1")
