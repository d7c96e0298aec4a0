import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from schedule_engine.errors import NotFoundError, PersistenceError, ScheduleError, ValidationError
from schedule_engine.models.attendance import AttendanceRecord
from schedule_engine.models.course import Course
from schedule_engine.models.layout import PrintableSession, SessionLayout
from schedule_engine.models.session import CourseRef, EntityRef, SubjectRef
from schedule_engine.models.subject import Subject
from schedule_engine.services.attendance import (
    AttendanceBook,
    daily_report,
    eligible_students,
    statuses_for,
)
from schedule_engine.services.conflicts import DEFAULT_AXES
from schedule_engine.services.layout import layout_week
from schedule_engine.services.printable import printable_sessions
from schedule_engine.services.repository import SessionRepository
from schedule_engine.services.storage import TenantStore
from schedule_engine.utils.serialization import (
    attendance_from_dict,
    attendance_to_dict,
    parse_roster,
    session_from_dict,
    sessions_to_list,
)
from schedule_engine.utils.time_grid import TimeGrid
from schedule_engine.utils.utils import generate_id

logger = logging.getLogger(__name__)


class TenantWorkspace:
    """
    In-memory working copy of one tenant's schedule and attendance.

    Schedule commands only change memory and mark the workspace dirty;
    save() writes the session list back to the store. A failed save keeps
    the in-memory state and the dirty flag, so the caller can retry.

    Attendance is written through on every record_attendance call, since
    it is kept independently of the schedule.
    """

    def __init__(self, tenant_id: str, store: TenantStore,
                 grid: Optional[TimeGrid] = None, axes: Sequence[str] = DEFAULT_AXES):
        self.tenant_id = tenant_id
        self.store = store
        self.grid = grid or TimeGrid()
        self.axes = tuple(axes)
        self.dirty = False
        self.attendance_dirty = False
        self._snapshot: Dict[str, Any] = {}
        self.roster = parse_roster({})
        self.repository = SessionRepository(grid=self.grid, axes=self.axes)
        self.attendance = AttendanceBook()

    def load(self) -> "TenantWorkspace":
        snapshot = self.store.get(self.tenant_id)
        if snapshot is None:
            raise NotFoundError(f"Tenant {self.tenant_id} not found")

        self._snapshot = snapshot
        self.roster = parse_roster(snapshot)
        self.repository = SessionRepository(
            [session_from_dict(s) for s in snapshot.get("scheduledSessions", [])],
            grid=self.grid, axes=self.axes, roster=self.roster,
        )
        self.attendance = AttendanceBook(
            attendance_from_dict(r) for r in snapshot.get("attendance", [])
        )
        self.dirty = False
        self.attendance_dirty = False
        logger.info(f"Loaded tenant {self.tenant_id}: {len(self.repository)} sessions, "
                    f"{len(self.attendance)} attendance records")
        return self

    def _apply(self, repository: SessionRepository):
        if repository is not self.repository:
            self.repository = repository
            self.dirty = True

    # ---- schedule commands ----

    def check_conflict(self, session_id: str, day: str, time_slot: str) -> bool:
        return self.repository.has_conflict(session_id, day, time_slot)

    def add_session(self, group_id: str, entity: EntityRef, day: str, time_slot: str,
                    classroom: str, duration: int) -> str:
        repository, session_id = self.repository.add(group_id, entity, day, time_slot,
                                                     classroom, duration)
        self._apply(repository)
        logger.info(f"Tenant {self.tenant_id}: added session {session_id}")
        return session_id

    def update_session(self, session_id: str, **fields):
        self._apply(self.repository.update(session_id, **fields))
        logger.info(f"Tenant {self.tenant_id}: updated session {session_id}")

    def move_session(self, session_id: str, day: str, time_slot: str):
        self._apply(self.repository.move(session_id, day, time_slot))
        logger.info(f"Tenant {self.tenant_id}: moved session {session_id} to {day} {time_slot}")

    def duplicate_session(self, session_id: str) -> str:
        repository, copy_id = self.repository.duplicate(session_id)
        self._apply(repository)
        logger.info(f"Tenant {self.tenant_id}: duplicated session {session_id} as {copy_id}")
        return copy_id

    def remove_session(self, session_id: str):
        self._apply(self.repository.remove(session_id))
        logger.info(f"Tenant {self.tenant_id}: removed session {session_id}")

    def add_entity_with_sessions(self, entity_type: str, entity_fields: Dict[str, Any],
                                 occurrences: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Creates a subject or course together with its first sessions.

        The new entity, the new sessions and any pending schedule edits are
        written in one snapshot put. Nothing changes in memory unless that
        write succeeds, so a store failure never leaves sessions pointing at
        an entity the store does not know.

        Returns:
            {"entityId": ..., "sessionIds": [...]}
        """
        if not entity_fields.get("name"):
            raise ValidationError("Missing required fields: name")

        entity_id = generate_id("id")
        if entity_type == "subject":
            entity: EntityRef = SubjectRef(entity_id)
            key = "subjects"
            self.roster.subjects[entity_id] = Subject(
                id=entity_id, name=entity_fields["name"],
                classroom=entity_fields.get("classroom") or "",
                level_id=entity_fields.get("levelId", ""),
                color=entity_fields.get("color"),
            )
        elif entity_type == "course":
            entity = CourseRef(entity_id)
            key = "courses"
            self.roster.courses[entity_id] = Course(
                id=entity_id, name=entity_fields["name"],
                teacher_ids=list(entity_fields.get("teacherIds") or []),
                color=entity_fields.get("color"),
            )
        else:
            raise ValidationError(f"Unknown entity type '{entity_type}'")

        try:
            repository, session_ids = self.repository.add_with_occurrences(entity, occurrences)
            snapshot = dict(self._snapshot)
            snapshot[key] = list(snapshot.get(key, [])) + [dict(entity_fields, id=entity_id)]
            snapshot["scheduledSessions"] = sessions_to_list(repository)
            snapshot["attendance"] = [attendance_to_dict(r) for r in self.attendance.records]
            self._put_snapshot(snapshot)
        except ScheduleError:
            self.roster.subjects.pop(entity_id, None)
            self.roster.courses.pop(entity_id, None)
            raise

        self.repository = repository
        self._snapshot = snapshot
        self.dirty = False
        self.attendance_dirty = False

        logger.info(f"Tenant {self.tenant_id}: created {entity_type} {entity_id} "
                    f"with {len(session_ids)} sessions")
        return {"entityId": entity_id, "sessionIds": session_ids}

    # ---- persistence ----

    def _put_snapshot(self, snapshot: Dict[str, Any]):
        try:
            self.store.put(snapshot)
        except PersistenceError:
            logger.error(f"Tenant {self.tenant_id}: snapshot write failed, changes kept in memory")
            raise

    def save(self):
        """
        Writes the session list, and any attendance not yet written, to the
        store. Nothing is rolled back on failure.

        Raises:
            PersistenceError: the store rejected the write; the workspace
                              stays dirty
        """
        try:
            if self.dirty:
                self.store.replace_sessions(self.tenant_id, sessions_to_list(self.repository))
                self.dirty = False
            if self.attendance_dirty:
                self._write_attendance()
        except PersistenceError:
            logger.error(f"Tenant {self.tenant_id}: save failed, unsaved changes kept in memory")
            raise
        logger.info(f"Tenant {self.tenant_id}: schedule saved ({len(self.repository)} sessions)")

    def _write_attendance(self):
        self.store.replace_attendance(
            self.tenant_id, [attendance_to_dict(r) for r in self.attendance.records]
        )
        self.attendance_dirty = False

    # ---- views ----

    def layout(self, group_id: Optional[str] = None) -> Dict[str, SessionLayout]:
        return layout_week(self.repository, self.grid, group_id)

    def printable(self, group_id: Optional[str] = None) -> List[PrintableSession]:
        return printable_sessions(self.repository, self.roster, self.grid, group_id)

    # ---- attendance ----

    def record_attendance(self, entries: Iterable[Dict[str, Any]]) -> List[AttendanceRecord]:
        """
        Upserts attendance entries and writes them through to the store.

        Raises:
            PersistenceError: the write failed; the records stay in memory
                              and are written by the next save()
        """
        records = self.attendance.record(entries)
        self.attendance_dirty = True
        try:
            self._write_attendance()
        except PersistenceError:
            logger.error(f"Tenant {self.tenant_id}: attendance write failed, kept in memory")
            raise
        return records

    def attendance_sheet(self, session_id: str, on: Optional[date] = None) -> Dict[str, Any]:
        """Students expected at a session occurrence and what is already recorded"""
        on = on or date.today()
        session = self.repository.get(session_id)
        statuses = statuses_for(self.attendance, session, on, self.roster)
        return {
            "sessionId": session.id,
            "date": on.isoformat(),
            "recorded": self.attendance.has_attendance(session.id, on),
            "students": [
                {
                    "studentId": student.id,
                    "name": student.name,
                    "status": statuses[student.id].value if statuses[student.id] else None,
                }
                for student in eligible_students(session, self.roster)
            ],
        }

    def attendance_report(self, on: date, group_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return daily_report(self.attendance, on, self.repository, self.roster, group_id)


class WorkspaceRegistry:
    """Loaded workspaces by tenant id; a tenant is loaded on first use"""

    def __init__(self, store: TenantStore, grid: Optional[TimeGrid] = None,
                 axes: Sequence[str] = DEFAULT_AXES):
        self.store = store
        self.grid = grid or TimeGrid()
        self.axes = tuple(axes)
        self._workspaces: Dict[str, TenantWorkspace] = {}

    def get(self, tenant_id: str) -> TenantWorkspace:
        workspace = self._workspaces.get(tenant_id)
        if workspace is None:
            workspace = TenantWorkspace(tenant_id, self.store, self.grid, self.axes).load()
            self._workspaces[tenant_id] = workspace
        return workspace

    def reload(self, tenant_id: str) -> TenantWorkspace:
        """Drops unsaved changes and reads the tenant again"""
        self._workspaces.pop(tenant_id, None)
        return self.get(tenant_id)

    def reset(self):
        self._workspaces.clear()
