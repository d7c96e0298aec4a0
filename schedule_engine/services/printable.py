from typing import Iterable, List, Optional

from schedule_engine.models.layout import PrintableSession
from schedule_engine.models.roster import Roster
from schedule_engine.models.session import ScheduledSession
from schedule_engine.utils.time_grid import TimeGrid, end_clock

UNRESOLVED = "N/A"


def printable_sessions(sessions: Iterable[ScheduledSession], roster: Roster, grid: TimeGrid,
                       group_id: Optional[str] = None) -> List[PrintableSession]:
    """
    Flattens the schedule for printing or export.

    Rows are sorted by weekday (grid display order), then by start time.
    Subject and teacher names that cannot be resolved read "N/A".
    """
    rows = []
    for session in sessions:
        if group_id is not None and session.group_id != group_id:
            continue
        teacher = roster.teacher_for(session)
        rows.append(PrintableSession(
            session_id=session.id,
            day=session.day,
            entity_name=roster.entity_name(session) or UNRESOLVED,
            teacher_name=teacher.name if teacher else UNRESOLVED,
            classroom=session.classroom,
            start=session.time_slot,
            end=end_clock(session.time_slot, session.duration),
        ))

    rows.sort(key=lambda row: (grid.day_index(row.day), grid.to_minutes(row.start)))
    return rows
