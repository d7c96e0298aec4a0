from typing import Dict, Iterable, List, Optional, Tuple

from schedule_engine.models.layout import EnrichedSession, SessionLayout
from schedule_engine.models.session import ScheduledSession
from schedule_engine.utils.time_grid import TimeGrid

# Horizontal gap, in percent, between side-by-side cards
COLUMN_GUTTER = 0.5


def enrich(sessions: Iterable[ScheduledSession], grid: TimeGrid) -> List[EnrichedSession]:
    """Resolves start and end minutes for every session"""
    enriched = []
    for session in sessions:
        start = grid.to_minutes(session.time_slot)
        enriched.append(EnrichedSession(session=session, start=start, end=start + session.duration))
    return enriched


def find_overlap_group(start_session: EnrichedSession,
                       day_sessions: List[EnrichedSession]) -> List[EnrichedSession]:
    """
    Collects the maximal set of sessions connected to start_session through
    a chain of overlapping intervals.

    Overlap is followed transitively: if A overlaps B and B overlaps C, all
    three are returned even when A and C are disjoint.

    Returns:
        Group members in the order they appear in day_sessions
    """
    processed = {start_session.id}
    to_process = [start_session]

    while to_process:
        current = to_process.pop()
        for other in day_sessions:
            if other.id in processed:
                continue
            if current.overlaps(other):
                processed.add(other.id)
                to_process.append(other)

    return [s for s in day_sessions if s.id in processed]


def layout_group(group: List[EnrichedSession]) -> Tuple[int, Dict[str, int]]:
    """
    Assigns a column to every session of an overlap group.

    Sessions are taken by ascending start time and placed in the first column
    whose last session ends at or before their start; a new column is opened
    when none fits (greedy interval-graph coloring).

    Returns:
        (max_columns, {session_id: column_index})
    """
    ordered = sorted(group, key=lambda s: s.start)
    columns: List[List[EnrichedSession]] = []
    session_columns: Dict[str, int] = {}

    for session in ordered:
        for index, column in enumerate(columns):
            if session.start >= column[-1].end:
                column.append(session)
                session_columns[session.id] = index
                break
        else:
            session_columns[session.id] = len(columns)
            columns.append([session])

    return len(columns), session_columns


def layout_day(sessions: Iterable[ScheduledSession], grid: TimeGrid) -> Dict[str, SessionLayout]:
    """
    Computes render geometry for sessions that all share one day.

    Each overlap group is laid out independently: its sessions share the day
    width equally between the group's columns, while a session overlapping
    nothing takes the full width.
    """
    day_sessions = enrich(sessions, grid)
    geometry: Dict[str, SessionLayout] = {}
    processed = set()

    for session in day_sessions:
        if session.id in processed:
            continue

        group = find_overlap_group(session, day_sessions)
        processed.update(s.id for s in group)

        max_columns, session_columns = layout_group(group)
        width = 100 / max_columns

        for member in group:
            column = session_columns[member.id]
            geometry[member.id] = SessionLayout(
                session_id=member.id,
                day=member.session.day,
                column=column,
                max_columns=max_columns,
                top=member.start * grid.px_per_minute,
                height=member.session.duration * grid.px_per_minute,
                left=column * width,
                width=width - COLUMN_GUTTER if max_columns > 1 else width,
            )

    return geometry


def layout_week(sessions: Iterable[ScheduledSession], grid: TimeGrid,
                group_id: Optional[str] = None) -> Dict[str, SessionLayout]:
    """
    Lays out a whole week, one day at a time.

    Args:
        sessions: Sessions of the tenant
        grid: Time grid (days, pixel scale)
        group_id: When given, only that group's sessions are displayed and
                  laid out, as in the per-class schedule view

    Returns:
        Geometry keyed by session id
    """
    displayed = [s for s in sessions if group_id is None or s.group_id == group_id]

    by_day: Dict[str, List[ScheduledSession]] = {}
    for session in displayed:
        by_day.setdefault(session.day, []).append(session)

    geometry: Dict[str, SessionLayout] = {}
    for day in sorted(by_day, key=grid.day_index):
        geometry.update(layout_day(by_day[day], grid))
    return geometry
