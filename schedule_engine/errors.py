from typing import List, Optional


class ScheduleError(Exception):
    """Base class for every recoverable scheduling failure"""

    status = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(ScheduleError):
    """Malformed clock string or payload"""


class ValidationError(ScheduleError):
    """
    A command was rejected before touching the repository.

    Attributes:
        conflicts: Ids of the sessions that collide with the rejected placement
    """

    def __init__(self, message: str, conflicts: Optional[List[str]] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class NotFoundError(ScheduleError):
    """The referenced session or tenant no longer exists"""

    status = "not_found"


class PersistenceError(ScheduleError):
    """The tenant store could not be read or written"""
