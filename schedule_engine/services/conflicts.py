from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from schedule_engine.models.roster import Roster
from schedule_engine.models.session import ScheduledSession
from schedule_engine.utils.time_grid import TimeGrid

GROUP_AXIS = "group"
CLASSROOM_AXIS = "classroom"
TEACHER_AXIS = "teacher"

DEFAULT_AXES = (GROUP_AXIS, CLASSROOM_AXIS)
KNOWN_AXES = (GROUP_AXIS, CLASSROOM_AXIS, TEACHER_AXIS)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Strict overlap of half-open intervals: touching ends do not collide"""
    return start_a < end_b and end_a > start_b


def _same_teacher(a: ScheduledSession, b: ScheduledSession, roster: Optional[Roster]) -> bool:
    if roster is None:
        return False
    teacher_a = roster.teacher_for(a)
    teacher_b = roster.teacher_for(b)
    return teacher_a is not None and teacher_b is not None and teacher_a.id == teacher_b.id


def shares_resource(a: ScheduledSession, b: ScheduledSession,
                    axes: Sequence[str] = DEFAULT_AXES,
                    roster: Optional[Roster] = None) -> bool:
    """
    Checks whether two sessions compete for the same resource.

    - group: a class cannot attend two sessions at once
    - classroom: a non-empty room label cannot host two sessions at once
      (labels compared trimmed and case-insensitive)
    - teacher: opt-in, the resolved teacher cannot teach two sessions at once
    """
    if GROUP_AXIS in axes and a.group_id == b.group_id:
        return True
    if CLASSROOM_AXIS in axes and a.room_key and a.room_key == b.room_key:
        return True
    if TEACHER_AXIS in axes and _same_teacher(a, b, roster):
        return True
    return False


def find_conflicts(candidate: ScheduledSession, sessions: Iterable[ScheduledSession],
                   grid: TimeGrid, axes: Sequence[str] = DEFAULT_AXES,
                   roster: Optional[Roster] = None) -> List[ScheduledSession]:
    """
    Lists the sessions a candidate placement collides with.

    The candidate does not need to be stored yet; any session sharing its id
    is skipped so an existing session never collides with itself.

    Args:
        candidate: Session with the day, time slot and duration to test
        sessions: Current sessions of the tenant
        grid: Time grid used to convert clock strings to minutes
        axes: Conflict axes to check
        roster: Needed only for the teacher axis

    Returns:
        Sessions on the same day whose interval overlaps the candidate and
        that share at least one checked resource
    """
    new_start = grid.to_minutes(candidate.time_slot)
    new_end = new_start + candidate.duration

    conflicts = []
    for other in sessions:
        if other.id == candidate.id or other.day != candidate.day:
            continue
        other_start = grid.to_minutes(other.time_slot)
        other_end = other_start + other.duration
        if intervals_overlap(new_start, new_end, other_start, other_end) \
                and shares_resource(candidate, other, axes, roster):
            conflicts.append(other)
    return conflicts


def has_conflict(candidate_id: str, target_day: str, target_time_slot: str,
                 sessions: Sequence[ScheduledSession], grid: TimeGrid,
                 axes: Sequence[str] = DEFAULT_AXES,
                 roster: Optional[Roster] = None) -> bool:
    """
    Decides whether moving a stored session to (target_day, target_time_slot)
    is legal. Keeps the session's own duration, group and classroom.

    An unknown candidate id has nothing to place and never conflicts, and
    neither does dropping a session back on its current position.
    """
    current = next((s for s in sessions if s.id == candidate_id), None)
    if current is None:
        return False
    if current.day == target_day \
            and grid.to_minutes(current.time_slot) == grid.to_minutes(target_time_slot):
        return False

    moved = replace(current, day=target_day, time_slot=target_time_slot)
    return bool(find_conflicts(moved, sessions, grid, axes, roster))


def validate_axes(axes: Iterable[str]) -> tuple:
    axes = tuple(axes)
    unknown = [axis for axis in axes if axis not in KNOWN_AXES]
    if unknown:
        raise ValueError(f"Unknown conflict axes: {', '.join(unknown)}")
    return axes
