import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from schedule_engine.errors import NotFoundError, ValidationError
from schedule_engine.models.roster import Roster
from schedule_engine.models.session import EntityRef, ScheduledSession
from schedule_engine.services.conflicts import DEFAULT_AXES, find_conflicts, has_conflict
from schedule_engine.utils.time_grid import TimeGrid
from schedule_engine.utils.utils import generate_id

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("group_id", "entity", "day", "time_slot", "classroom", "duration")


class SessionRepository:
    """
    Ordered, immutable collection of one tenant's scheduled sessions.

    Every command returns a new repository and leaves the receiver untouched,
    so a snapshot handed to a caller never changes under its feet. Rejected
    commands raise before anything is built.

    Args:
        sessions: Initial sessions, in display order
        grid: Time grid used for validation and conflict checks
        axes: Conflict axes checked on add, update and move
        roster: School data, needed only for the teacher axis
    """

    def __init__(self, sessions: Iterable[ScheduledSession] = (),
                 grid: Optional[TimeGrid] = None,
                 axes: Sequence[str] = DEFAULT_AXES,
                 roster: Optional[Roster] = None):
        self._sessions: Tuple[ScheduledSession, ...] = tuple(sessions)
        self.grid = grid or TimeGrid()
        self.axes = tuple(axes)
        self.roster = roster

    def _with(self, sessions: Iterable[ScheduledSession]) -> "SessionRepository":
        return SessionRepository(sessions, self.grid, self.axes, self.roster)

    # ---- queries ----

    @property
    def sessions(self) -> Tuple[ScheduledSession, ...]:
        return self._sessions

    def __iter__(self) -> Iterator[ScheduledSession]:
        return iter(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return self.find(session_id) is not None

    def find(self, session_id: str) -> Optional[ScheduledSession]:
        return next((s for s in self._sessions if s.id == session_id), None)

    def get(self, session_id: str) -> ScheduledSession:
        session = self.find(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session

    def for_group(self, group_id: str) -> List[ScheduledSession]:
        return [s for s in self._sessions if s.group_id == group_id]

    def for_day(self, day: str) -> List[ScheduledSession]:
        return [s for s in self._sessions if s.day == day]

    def has_conflict(self, session_id: str, day: str, time_slot: str) -> bool:
        """Drag preview: would moving session_id to (day, time_slot) collide?"""
        return has_conflict(session_id, day, time_slot, self._sessions,
                            self.grid, self.axes, self.roster)

    def conflicts_for(self, candidate: ScheduledSession) -> List[ScheduledSession]:
        return find_conflicts(candidate, self._sessions, self.grid, self.axes, self.roster)

    # ---- validation ----

    def _validate_fields(self, session: ScheduledSession):
        missing = [name for name, value in (
            ("group_id", session.group_id),
            ("entity", session.entity.id if session.entity is not None else None),
            ("day", session.day),
            ("time_slot", session.time_slot),
            ("classroom", session.classroom.strip() if session.classroom else ""),
        ) if not value]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        self.grid.validate_day(session.day)
        self.grid.validate_time_slot(session.time_slot)
        self.grid.validate_duration(session.duration)
        self.grid.validate_span(session.time_slot, session.duration)

    def _clock(self, time_slot: str) -> str:
        return self.grid.normalize(time_slot) if time_slot else time_slot

    def _validate_placement(self, session: ScheduledSession, others: Sequence[ScheduledSession]):
        conflicts = find_conflicts(session, others, self.grid, self.axes, self.roster)
        if conflicts:
            ids = [c.id for c in conflicts]
            logger.warning(f"Placement of {session.id} on {session.day} {session.time_slot} "
                           f"conflicts with {ids}")
            raise ValidationError(
                f"Schedule conflict on {session.day} at {session.time_slot}", conflicts=ids
            )

    # ---- commands ----

    def add(self, group_id: str, entity: EntityRef, day: str, time_slot: str,
            classroom: str, duration: int) -> Tuple["SessionRepository", str]:
        """
        Appends a new session with a fresh id.

        Raises:
            ValidationError: missing field, invalid day/time/duration, or the
                             placement collides with an existing session
        """
        session = ScheduledSession(
            id=generate_id("ss"),
            group_id=group_id,
            entity=entity,
            day=day,
            time_slot=self._clock(time_slot),
            classroom=classroom,
            duration=duration,
        )
        self._validate_fields(session)
        self._validate_placement(session, self._sessions)
        return self._with(self._sessions + (session,)), session.id

    def add_with_occurrences(self, entity: EntityRef,
                             occurrences: Iterable[Dict[str, Any]]) -> Tuple["SessionRepository", List[str]]:
        """
        Creates the initial sessions of a newly created subject or course.

        Each occurrence carries group_id, day, time_slot, classroom and
        duration. Occurrences are validated against the existing sessions and
        against each other; one invalid occurrence rejects them all.
        """
        added: List[ScheduledSession] = []
        for occurrence in occurrences:
            session = ScheduledSession(
                id=generate_id("ss"),
                group_id=occurrence.get("group_id", ""),
                entity=entity,
                day=occurrence.get("day", ""),
                time_slot=self._clock(occurrence.get("time_slot", "")),
                classroom=occurrence.get("classroom", ""),
                duration=occurrence.get("duration", 0),
            )
            self._validate_fields(session)
            self._validate_placement(session, self._sessions + tuple(added))
            added.append(session)

        return self._with(self._sessions + tuple(added)), [s.id for s in added]

    def update(self, session_id: str, **fields) -> "SessionRepository":
        """
        Replaces the editable fields of a session.

        Passing a new entity switches the subject/course variant; the
        previous reference is dropped with it.

        Raises:
            NotFoundError: unknown session id
            ValidationError: unknown field, invalid values or a conflict
        """
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if "time_slot" in fields:
            fields["time_slot"] = self._clock(fields["time_slot"])

        updated = replace(self.get(session_id), **fields)
        self._validate_fields(updated)
        self._validate_placement(updated, self._sessions)
        return self._with(updated if s.id == session_id else s for s in self._sessions)

    def move(self, session_id: str, day: str, time_slot: str) -> "SessionRepository":
        """
        Drops a session on a new day and start time.

        A move onto the current position returns this same repository.

        Raises:
            NotFoundError: unknown session id
            ValidationError: target off the grid, running past the end of
                             the day, or conflicting
        """
        current = self.get(session_id)
        time_slot = self.grid.normalize(time_slot)
        if current.day == day and self.grid.normalize(current.time_slot) == time_slot:
            return self

        self.grid.validate_day(day)
        self.grid.validate_time_slot(time_slot)
        self.grid.validate_span(time_slot, current.duration)

        moved = replace(current, day=day, time_slot=time_slot)
        if self.has_conflict(session_id, day, time_slot):
            logger.warning(f"Move of {session_id} to {day} {time_slot} rejected: conflict")
            raise ValidationError(
                f"Schedule conflict on {day} at {time_slot}",
                conflicts=[c.id for c in self.conflicts_for(moved)],
            )
        return self._with(moved if s.id == session_id else s for s in self._sessions)

    def duplicate(self, session_id: str) -> Tuple["SessionRepository", str]:
        """Clones a session under a new id, without any conflict check"""
        copy = replace(self.get(session_id), id=generate_id("ss"))
        return self._with(self._sessions + (copy,)), copy.id

    def remove(self, session_id: str) -> "SessionRepository":
        """Deletes a session; its attendance history is left in place"""
        self.get(session_id)
        return self._with(s for s in self._sessions if s.id != session_id)
