from dataclasses import dataclass

from schedule_engine.models.session import ScheduledSession


@dataclass(frozen=True)
class EnrichedSession:
    """A session with its interval resolved to grid minutes (never persisted)"""

    session: ScheduledSession
    start: int  # minutes since day start
    end: int  # start + duration

    @property
    def id(self) -> str:
        return self.session.id

    def overlaps(self, other: "EnrichedSession") -> bool:
        return self.start < other.end and self.end > other.start


@dataclass(frozen=True)
class SessionLayout:
    """
    Render geometry of a session card inside its day column.

    Attributes:
        session_id: Session the geometry belongs to
        day: Weekday column
        column: Index of the sub-column inside the overlap group
        max_columns: Number of sub-columns opened by the overlap group
        top: Offset from the top of the day, in pixels
        height: Card height, in pixels
        left: Horizontal offset, in percent of the day width
        width: Card width, in percent of the day width
    """
    session_id: str
    day: str
    column: int
    max_columns: int
    top: float
    height: float
    left: float
    width: float


@dataclass(frozen=True)
class PrintableSession:
    """Flattened session row for the printable/export view"""
    session_id: str
    day: str
    entity_name: str
    teacher_name: str
    classroom: str
    start: str  # HH:MM
    end: str  # HH:MM
